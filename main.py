#!/usr/bin/env python3
"""
LiveTalk SubRip Converter Entry Point

This script initializes the CLI handler and converts one CSV transcript.
"""

import sys
from livetalk_srt.cli import CLIHandler

def main() -> None:
    if sys.version_info < (3, 8):
        sys.stderr.write("livetalk-srt requires Python 3.8 or later.\n")
        sys.exit(1)

    cli = CLIHandler()
    cli.run()

if __name__ == "__main__":
    main()
