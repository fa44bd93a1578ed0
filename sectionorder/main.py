"""
Command-line entry point for sectionorder
"""

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Sequence

from .config import Config
from .errors import ConfigError
from .platform_utils import get_data_dir


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None) -> None:
    """Set up logging configuration"""
    log_dir = log_dir or get_data_dir()
    os.makedirs(log_dir, exist_ok=True)

    effective_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear any existing handlers
    logging.getLogger().handlers.clear()

    # File handler with rotation
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'sectionorder.log'),
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(effective_level)
    file_handler.setFormatter(formatter)

    # Console output would draw over the terminal UI
    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)
    root_logger.addHandler(file_handler)

    logging.getLogger('asyncio').setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger('textual').setLevel(logging.INFO if verbose else logging.WARNING)
    logging.getLogger('sectionorder').setLevel(effective_level)


def parse_args(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description="Reorder the subjects of a class section")
    parser.add_argument("--section", required=True, help="Class section id")
    parser.add_argument("--api-url", help="Base URL of the school API (default: config file)")
    parser.add_argument("--token", help="API bearer token")
    parser.add_argument(
        "--quiet-period",
        type=float,
        help="Seconds without changes before the order is saved",
    )
    parser.add_argument(
        "--hierarchy-mode",
        choices=["global", "sibling"],
        help="Number subjects in one sequence or per parent",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = Config()
    verbose = args.verbose or bool(config.get_setting('debug_enabled', False))
    setup_logging(verbose)

    # Textual is only needed once we actually start the UI
    from .tui.app import build_app

    try:
        app = build_app(args, config)
    except ConfigError as e:
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        print(f"sectionorder: {e}", file=sys.stderr)
        return 2

    try:
        app.run()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == '__main__':
    sys.exit(main())
