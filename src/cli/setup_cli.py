"""
Command-line interface for loader setup.

Usage:
    python -m src.cli.setup_cli [config_file] [options]
"""

import argparse
import sys

from dotenv import load_dotenv

from src.core.errors import ConfigFileError, FatalError
from src.observability.logger import configure_root_logger, get_logger
from src.observability.metrics import write_metrics
from src.setup.config_loader import DEFAULT_CONFIG_PATH, SetupConfigLoader
from src.setup.driver import configure_loaders
from src.setup.pipeline import __version__

EXIT_OK = 0
EXIT_NO_LOADER_CONFIGURED = 1
EXIT_FATAL = 255

# Named explicitly so the logger joins the "src" tree under `python -m`
logger = get_logger("src.cli.setup_cli")


def setup_command(args) -> int:
    """
    Execute the setup command.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    logger.info(f"Reading setup configuration from {args.config}")

    try:
        document = SetupConfigLoader(args.config).load()
    except ConfigFileError as e:
        logger.error(str(e))
        return EXIT_NO_LOADER_CONFIGURED

    try:
        outcomes = configure_loaders(document)
    except FatalError as e:
        logger.critical(f"Setup aborted: {e}", exc_info=True)
        return EXIT_FATAL
    finally:
        if args.metrics_file:
            write_metrics(args.metrics_file)

    for outcome in outcomes:
        if outcome.success:
            logger.info(
                f"Loader {outcome.index} configured: s3://{outcome.s3_prefix} -> {outcome.table}",
                extra={"current_batch": outcome.current_batch},
            )
        else:
            logger.warning(
                f"Loader {outcome.index} not configured: {outcome.error}",
                extra={"field_name": outcome.field_name},
            )

    logger.info("Done")

    if outcomes and not any(outcome.success for outcome in outcomes):
        return EXIT_NO_LOADER_CONFIGURED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Register Redshift loader configurations in DynamoDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Configure the loader described in ./config.json
  python -m src.cli.setup_cli

  # Configure several loaders sharing base fields
  python -m src.cli.setup_cli config/loaders.yaml

  # Human-readable logs and a textfile metrics dump
  python -m src.cli.setup_cli config.json --log-format text --metrics-file setup.prom
        """
    )

    parser.add_argument(
        "config",
        nargs="?",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the JSON or YAML setup document (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: $LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "text"],
        help="Log format (default: $LOG_FORMAT or json)"
    )
    parser.add_argument(
        "--metrics-file",
        default=None,
        help="Write Prometheus metrics to this textfile when done"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()

    args = build_parser().parse_args(argv)

    configure_root_logger(level=args.log_level, format_type=args.log_format)

    return setup_command(args)


if __name__ == "__main__":
    sys.exit(main())
