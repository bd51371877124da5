"""Command line interface for extracting a zip archive."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .common import ConfigLoader, ZipExtractError, setup_logging_from_config
from .config import ZipExtractConfig
from .extractor import ExtractionOptions, extract

# Application name derived from package name
_package = __package__ or "zip_extract"
APP_NAME = _package.replace('_', '-')


def extract_command(config: ZipExtractConfig, source: Path, target: Path) -> int:
    """Extract one archive.

    Args:
        config: Loaded configuration
        source: Zip archive to extract
        target: Destination directory (made absolute here)

    Returns:
        Exit code (0 for success)
    """
    logger = logging.getLogger(__package__ or __name__)

    options = ExtractionOptions(
        dir=str(target.resolve()),
        default_file_mode=config.extraction.default_file_mode,
        default_dir_mode=config.extraction.default_dir_mode,
        skip_macos_metadata=config.extraction.skip_macos_metadata,
    )

    try:
        summary = extract(source, options)
    except ZipExtractError as e:
        logger.error(f"{e.kind}: {e.message}")
        return 1

    logger.info(f"Extracted {summary.entries} entries into {summary.target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Safely extract a zip archive"
    )
    parser.add_argument("source", type=Path, help="Zip archive to extract")
    parser.add_argument(
        "target",
        type=Path,
        nargs="?",
        default=Path.cwd(),
        help="Directory to extract into (defaults to the current directory)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML config file"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)"
    )
    parser.add_argument(
        "--log-format",
        choices=["simple", "detailed", "json"],
        help="Log format (overrides config)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the zip-extract command."""
    args = build_parser().parse_args(argv)

    loader = ConfigLoader(config_class=ZipExtractConfig, app_name=APP_NAME)
    try:
        config = loader.load(defaults_path=args.config)
    except (OSError, ValueError) as e:
        print(f"{APP_NAME}: invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.log_level:
        config.logging.level = args.log_level
    if args.log_format:
        config.logging.format = args.log_format
    setup_logging_from_config(config.logging)

    return extract_command(config, args.source, args.target)


if __name__ == "__main__":
    sys.exit(main())
