"""CLI entrypoint for pr-threshold."""

import argparse
import logging
import sys
from pathlib import Path

from pr_threshold.config import DEFAULT_CONFIG_PATH, load_config
from pr_threshold.exceptions import ConfigError
from pr_threshold.gates.threshold_gate import inert_thresholds
from pr_threshold.github_client import build_client
from pr_threshold.server import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Enforce pull request complexity thresholds from GitHub webhooks",
        prog="pr-threshold",
    )
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Config file path")
    parser.add_argument("--host", help="Address to listen on")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--max-files", type=int, help="Maximum changed files (0 disables)")
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Close offending PRs instead of setting a failing status",
    )
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    from dotenv import load_dotenv
    load_dotenv()

    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            Path(args.config),
            overrides={
                "server": {"host": args.host, "port": args.port},
                "thresholds": {"max_files": args.max_files, "strict": args.strict},
                "log_level": args.log_level,
            },
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    try:
        client = build_client(config.github)
    except (ConfigError, ValueError) as e:
        logger.critical("Could not create GitHub client: %s", e)
        return 1

    for name in inert_thresholds(config.thresholds):
        logger.warning("thresholds.%s is set but not evaluated yet; it has no effect", name)

    thresholds = config.thresholds
    logger.info(
        "Listening on %s:%d (max_files=%d, strict=%s)",
        config.server.host, config.server.port, thresholds.max_files, thresholds.strict,
    )
    app = create_app(config, client)
    app.run(host=config.server.host, port=config.server.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
