#!/usr/bin/env python3
"""
LiveTalk SubRip Batch Processing Entry Point

Converts every LiveTalk CSV transcript in a directory into a SubRip file,
written next to its source or into a separate output directory.
"""

import argparse
import logging
import os
import sys
import time
from typing import List, Optional

# Progress bar library
from tqdm import tqdm

from livetalk_srt.cli import add_common_arguments, load_settings
from livetalk_srt.converter import SubRipConverter
from livetalk_srt.exceptions import FileSystemError
from livetalk_srt.utils import ensure_dir_exists, srt_path_for

# Initialize logger for this script
logger = logging.getLogger(__name__)

def find_csv_files(input_dir: str) -> List[str]:
    """
    Finds all .csv files in the input directory, sorted by name.

    Args:
        input_dir: The directory to search for transcript files.

    Returns:
        Full paths of the CSV files.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    logger.info(f"Scanning directory for CSV files: {input_dir}")
    csv_files = []
    for filename in sorted(os.listdir(input_dir)):
        # Case-insensitive check for .csv extension
        filepath = os.path.join(input_dir, filename)
        if filename.lower().endswith(".csv") and os.path.isfile(filepath):
            csv_files.append(filepath)
    logger.info(f"Found {len(csv_files)} CSV files.")
    return csv_files


def run_batch_processing(argv: Optional[List[str]] = None) -> None:
    """Parses arguments, sets up, and converts every CSV file in a directory."""
    parser = argparse.ArgumentParser(
        description="LiveTalk SubRip Batch: convert all CSV transcripts in a directory.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-i", "--input-dir",
        required=True,
        help="Directory containing the LiveTalk CSV files."
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=None,
        help="Directory for the .srt files. Defaults to the input directory."
    )
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    config = load_settings(args, default_log_file='livetalk_srt_batch.log')

    try:
        csv_files = find_csv_files(args.input_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Input directory error: {e}")
        sys.exit(1)
    if not csv_files:
        logger.warning(f"No .csv files found in {args.input_dir}. Exiting.")
        sys.exit(0)

    if args.output_dir:
        try:
            ensure_dir_exists(args.output_dir)
        except FileSystemError as e:
            logger.critical(f"Could not create output directory: {e}")
            sys.exit(1)

    # One converter for all files
    converter = SubRipConverter.from_config(config)
    total_files = len(csv_files)
    files_converted = 0
    files_failed = 0
    batch_start_time = time.time()

    logger.info(f"--- Starting batch conversion of {total_files} files ---")

    with tqdm(total=total_files, unit="file", desc="Starting Batch") as pbar:
        for csv_path in csv_files:
            csv_filename = os.path.basename(csv_path)
            pbar.set_description(f"Converting: {csv_filename[:30]}")

            destination = srt_path_for(csv_path)
            if args.output_dir:
                destination = os.path.join(args.output_dir, os.path.basename(destination))

            try:
                result = converter.convert(
                    csv_path,
                    offset_seconds=config['offset_seconds'],
                    destination=destination
                )
            except KeyboardInterrupt:
                 logger.warning("Batch process interrupted by user (Ctrl+C). Exiting.")
                 sys.exit(1)
            finally:
                 pbar.update(1) # Increment progress bar regardless of success/failure

            if result.succeeded:
                files_converted += 1
            else:
                logger.error(f"Conversion failed for '{csv_filename}': {result.error}")
                files_failed += 1

    batch_end_time = time.time()
    logger.info("--- Batch Conversion Finished ---")
    logger.info(f"Total time: {batch_end_time - batch_start_time:.2f} seconds")
    logger.info(f"Successfully converted: {files_converted}/{total_files} files")
    logger.info(f"Failed: {files_failed}/{total_files} files")

    sys.exit(1 if files_failed > 0 else 0)


if __name__ == "__main__":
    run_batch_processing()
