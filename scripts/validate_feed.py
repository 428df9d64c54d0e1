from __future__ import annotations

import argparse
from pathlib import Path


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate generated ICS feed")
    parser.add_argument("--feed", required=True, help="Path to ICS file")
    args = parser.parse_args()

    path = Path(args.feed)
    if not path.exists():
        raise SystemExit(f"Feed not found: {path}")

    data = path.read_bytes()
    text = data.decode("utf-8")
    if not text.startswith("BEGIN:VCALENDAR\r\n"):
        raise SystemExit("Feed does not start with BEGIN:VCALENDAR")
    if not text.endswith("END:VCALENDAR\r\n"):
        raise SystemExit("Feed does not end with END:VCALENDAR")

    lines = data.split(b"\r\n")
    long_lines = [idx for idx, line in enumerate(lines, start=1) if len(line) > 75]
    if long_lines:
        raise SystemExit(f"Lines longer than 75 octets: {long_lines[:10]}")

    if text.count("BEGIN:VEVENT") != text.count("END:VEVENT"):
        raise SystemExit("Unbalanced VEVENT blocks")

    print(f"Feed sanity check OK ({text.count('BEGIN:VEVENT')} events)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
