from __future__ import annotations

import argparse

from discord_events_cal.updater.build_feed import main as build_feed_main


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discord events calendar updater")
    subparsers = parser.add_subparsers(dest="command", required=True)
    build_feed = subparsers.add_parser("build-feed", help="Fetch events and write the ICS feed")
    build_feed.add_argument("--config", help="Path to feed.yaml")
    build_feed.add_argument("--out", help="Output ICS path")
    build_feed.add_argument("--validate-only", action="store_true", help="Build without writing")
    build_feed.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command == "build-feed":
        return build_feed_main(
            (["--config", args.config] if args.config else [])
            + (["--out", args.out] if args.out else [])
            + (["--validate-only"] if args.validate_only else [])
            + ["--log-level", args.log_level]
        )
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
