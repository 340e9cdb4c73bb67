"""Command-Line Interface handler for the LiveTalk SubRip converter."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

from .config_loader import ConfigLoader
from .log_setup import setup_logging
from .converter import SubRipConverter
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__) # Get logger for this module

DEFAULT_CONFIG_PATH = "config.yaml"

def resolve_config_path(config_arg: Optional[str]) -> Optional[str]:
    """Explicit path wins; otherwise ./config.yaml if present, else None (defaults)."""
    if config_arg:
        return config_arg
    if os.path.isfile(DEFAULT_CONFIG_PATH):
        return DEFAULT_CONFIG_PATH
    return None

def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by the single-file and batch entry points."""
    parser.add_argument(
        "-s", "--offset",
        type=int,
        default=None, # Default taken from config
        help="Seconds at which the first subtitle starts. May be negative."
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help=f"Path to the configuration YAML file. Uses ./{DEFAULT_CONFIG_PATH} when present."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level for console and file output."
    )
    parser.add_argument(
        "--log-dir",
        default=None, # Default taken from config
        help="Override the log directory specified in the config file."
    )

def load_settings(args: argparse.Namespace, default_log_file: str) -> dict:
    """
    Sets up logging, loads the configuration and applies CLI overrides.

    Exits the process with status 1 when the configuration cannot be loaded.
    """
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    # Console only until the configured log directory is known
    setup_logging(log_level=log_level, log_dir=None)

    config_path = resolve_config_path(args.config)
    try:
        config = ConfigLoader().load_config(config_path)
    except ConfigurationError as e:
        logger.critical(f"Failed to load configuration from {config_path}: {e}")
        sys.exit(1)
    except FileNotFoundError:
        logger.critical(f"Configuration file not found: {config_path}")
        sys.exit(1)

    if args.log_dir:
        config['log_dir'] = args.log_dir
    setup_logging(
        log_level=log_level,
        log_dir=config.get('log_dir', 'logs'),
        log_file=config.get('log_file') or default_log_file
    )

    if args.offset is not None:
        logger.info(f"Overriding offset_seconds from config with CLI argument: {args.offset}")
        config['offset_seconds'] = args.offset
    return config


class CLIHandler:
    """Parses arguments and runs a single conversion."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="Convert a LiveTalk CSV transcript into a SubRip (.srt) subtitle file.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-i", "--input",
            required=True,
            help="Path to the LiveTalk CSV file."
        )
        parser.add_argument(
            "-o", "--output",
            default=None,
            help="Path of the .srt file to write. Defaults to the input path with a .srt extension."
        )
        parser.add_argument(
            "--no-progress",
            action="store_true",
            help="Do not show the progress bar."
        )
        add_common_arguments(parser)
        return parser

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the conversion."""
        args = self.parser.parse_args(argv)
        config = load_settings(args, default_log_file='livetalk_srt.log')

        if not os.path.isfile(args.input):
            logger.critical(f"Input CSV file not found or is not a file: {args.input}")
            sys.exit(1)

        try:
            converter = SubRipConverter.from_config(config)
            with tqdm(unit="step", desc="Converting", disable=args.no_progress) as pbar:
                def on_status(message: str) -> None:
                    pbar.set_description(message)
                    pbar.update(1)

                result = converter.convert(
                    args.input,
                    offset_seconds=config['offset_seconds'],
                    destination=args.output,
                    progress_callback=on_status
                )
        except KeyboardInterrupt:
             logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
             sys.exit(1)
        except Exception as e:
             logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
             sys.exit(2) # Use a different exit code for unexpected crashes

        if not result.succeeded:
            logger.error(f"Conversion failed: {result.error}")
            sys.exit(1)
        logger.info(f"Wrote {result.entry_count} subtitles to {result.destination}")
        sys.exit(0)
