"""Handles writing subtitle entries to subtitle files (SRT)."""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .models import SubtitleEntry
from .exceptions import FileSystemError, FormattingError
from .utils import format_time_srt

logger = logging.getLogger(__name__)

class SubtitleFormatter(ABC):
    """Abstract base class for subtitle formatters."""

    @abstractmethod
    def format_subtitles(
        self,
        entries: List[SubtitleEntry],
        baseline: Optional[datetime],
        output_path: str,
        on_written: Optional[Callable[[SubtitleEntry], None]] = None
    ) -> int:
        """
        Writes the entries to a subtitle file.

        Args:
            entries: Adjusted entries in output order.
            baseline: Zero point that timestamps are measured from. May be
                      None only when `entries` is empty.
            output_path: The path to save the formatted subtitle file.
            on_written: Called after each entry has been written.

        Returns:
            The number of subtitle blocks written.

        Raises:
            FormattingError: If an entry cannot be rendered.
            FileSystemError: If the output file cannot be written.
        """
        pass


class SRTFormatter(SubtitleFormatter):
    """Formats subtitles into the SRT (SubRip Text) format."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def _elapsed(self, moment: datetime, baseline: datetime, entry: SubtitleEntry) -> str:
        elapsed = moment - baseline
        if elapsed < timedelta(0):
            logger.warning(f"Subtitle {entry.sequence_number} is {-elapsed} before the baseline. Clamping to 00:00:00,000.")
        return format_time_srt(elapsed)

    def format_block(self, entry: SubtitleEntry, baseline: datetime) -> str:
        """Renders one entry as an SRT block, including the trailing blank line."""
        try:
            start_time_str = self._elapsed(entry.start_time, baseline, entry)
            end_time_str = self._elapsed(entry.end_time, baseline, entry)
        except TypeError as e:
            # Mixing timezone-aware and naive timestamps
            raise FormattingError(f"Cannot compute times for subtitle {entry.sequence_number}: {e}") from e
        return f"{entry.sequence_number}\n{start_time_str} --> {end_time_str}\n{entry.text}\n\n"

    def format_subtitles(
        self,
        entries: List[SubtitleEntry],
        baseline: Optional[datetime],
        output_path: str,
        on_written: Optional[Callable[[SubtitleEntry], None]] = None
    ) -> int:
        """
        Writes entries as an SRT file, replacing `output_path` atomically.

        The blocks go to a temporary file next to `output_path` which is renamed
        over it once complete, so a failed write leaves any previous file intact
        and no partial output behind. An empty entry list produces an empty file.
        """
        if entries and baseline is None:
            raise FormattingError("A baseline is required when there are entries to write.")

        logger.info(f"Formatting subtitles to SRT: {output_path}")
        output_dir = os.path.dirname(os.path.abspath(output_path))
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=output_dir,
                prefix=f".{os.path.basename(output_path)}.",
                suffix=".tmp"
            )
        except OSError as e:
            logger.error(f"Cannot create a file in {output_dir}: {e}")
            raise FileSystemError(f"Could not write SRT file {output_path}: {e}") from e

        written = 0
        try:
            with os.fdopen(fd, 'w', encoding=self.encoding) as f:
                for entry in entries:
                    f.write(self.format_block(entry, baseline))
                    written += 1
                    if on_written:
                        on_written(entry)
            # mkstemp creates 0600 files; keep the mode of the file being replaced
            if os.path.exists(output_path):
                mode = os.stat(output_path).st_mode & 0o777
            else:
                mode = self._new_file_mode()
            os.chmod(temp_path, mode)
            os.replace(temp_path, output_path)
        except OSError as e:
            self._discard(temp_path)
            logger.error(f"Failed to write SRT file to {output_path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not write SRT file {output_path}: {e}") from e
        except BaseException:
            self._discard(temp_path)
            raise

        logger.info(f"Successfully wrote {written} subtitle blocks to {output_path}")
        return written

    @staticmethod
    def _new_file_mode() -> int:
        """Mode a plain open() would give a new file under the current umask."""
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask

    @staticmethod
    def _discard(temp_path: str) -> None:
        try:
            os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temporary file {temp_path}: {e}")
