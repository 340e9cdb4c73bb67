"""Orchestrates the CSV to SubRip conversion."""

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from typing import Callable, Optional

from .csv_parser import RecordParser
from .subtitle_builder import SubtitleBuilder
from .subtitle_formatter import SubtitleFormatter, SRTFormatter
from .models import (
    DEFAULT_CHARS_PER_SECOND, DEFAULT_MIN_DISPLAY_SECONDS,
    ConversionResult, ConversionRun, SubtitleEntry, TimingRules
)
from .exceptions import ConversionCancelled, ConverterError, ConfigurationError, FileSystemError
from .utils import srt_path_for

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

END_OF_FILE_MESSAGE = "End of file"


class SubRipConverter:
    """
    Converts LiveTalk CSV transcripts into SubRip subtitle files.

    Progress is reported as plain status strings through an optional callback;
    failures are returned in the ConversionResult instead of being raised.
    """

    def __init__(
        self,
        parser: Optional[RecordParser] = None,
        builder: Optional[SubtitleBuilder] = None,
        formatter: Optional[SubtitleFormatter] = None
    ):
        self.parser = parser or RecordParser()
        self.builder = builder or SubtitleBuilder()
        self.formatter = formatter or SRTFormatter()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict) -> "SubRipConverter":
        """Builds a converter from a configuration dictionary (see ConfigLoader)."""
        rules = TimingRules(
            min_display_seconds=config.get('min_display_seconds', DEFAULT_MIN_DISPLAY_SECONDS),
            chars_per_second=config.get('chars_per_second', DEFAULT_CHARS_PER_SECOND)
        )
        return cls(
            parser=RecordParser(timestamp_formats=config.get('timestamp_formats')),
            builder=SubtitleBuilder(rules),
            formatter=SRTFormatter(encoding=config.get('output_encoding', 'utf-8'))
        )

    @staticmethod
    def _notify(progress_callback: Optional[ProgressCallback], message: str) -> None:
        logger.debug(message)
        if progress_callback is None:
            return
        try:
            progress_callback(message)
        except Exception as e:
            # Progress listeners must not affect the conversion
            logger.warning(f"Progress callback failed on {message!r}: {e}", exc_info=True)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], sequence_number: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ConversionCancelled(f"Conversion cancelled at SeqNo={sequence_number}", sequence_number)

    def _validate(self, run: ConversionRun) -> None:
        if isinstance(run.offset_seconds, bool) or not isinstance(run.offset_seconds, int):
            raise ConfigurationError(f"Offset must be a whole number of seconds, got {run.offset_seconds!r}")
        if os.path.abspath(run.source) == os.path.abspath(run.destination):
            raise FileSystemError(f"Destination would overwrite the source file: {run.source}")

    def _run(
        self,
        run: ConversionRun,
        progress_callback: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event]
    ) -> None:
        # 1. Read every record; the whole transcript is needed before trimming
        with closing(self.parser.iter_records(run.source)) as records:
            for record in records:
                seq_no = len(run.entries) + 1
                self._check_cancelled(cancel_event, seq_no)
                run.entries.append(self.builder.create_entry(record, seq_no))
                self._notify(progress_callback, f"Read CSV File : SeqNo={seq_no}")
        logger.info(f"Read {len(run.entries)} records from {run.source}")

        # 2. Trim overlapping display windows
        self.builder.trim_overlaps(
            run.entries,
            on_checked=lambda entry: self._notify(progress_callback, f"Check lines : SeqNo={entry.sequence_number}")
        )

        # 3. Baseline
        run.baseline = self.builder.compute_baseline(run.entries, run.offset_seconds)
        if run.baseline is None:
            logger.warning(f"No records found in {run.source}. Writing an empty subtitle file.")

        # 4. Write
        def on_written(entry: SubtitleEntry) -> None:
            self._notify(progress_callback, f"Write SRT File : SeqNo={entry.sequence_number}")
            self._check_cancelled(cancel_event, entry.sequence_number)

        self.formatter.format_subtitles(run.entries, run.baseline, run.destination, on_written=on_written)
        self._notify(progress_callback, END_OF_FILE_MESSAGE)

    def convert(
        self,
        source: str,
        offset_seconds: int = 0,
        destination: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> ConversionResult:
        """
        Converts one CSV transcript into a SubRip file.

        Args:
            source: Path to the LiveTalk CSV file.
            offset_seconds: Where the first subtitle starts, in seconds. May be negative.
            destination: Output path. Defaults to `source` with a .srt extension.
            progress_callback: Receives status strings in order. Exceptions it
                               raises are logged and ignored.
            cancel_event: When set, the conversion stops at the next record
                          boundary and no output file is produced.

        Returns:
            A ConversionResult; its `error` holds the single failure, if any,
            with the original exception chained as `__cause__`.
        """
        destination = destination or srt_path_for(source)
        run = ConversionRun(source=source, destination=destination, offset_seconds=offset_seconds)
        result = ConversionResult(source=source, destination=destination)
        start_time = time.time()
        logger.info(f"--- Converting {source} -> {destination} (offset {offset_seconds}s) ---")

        try:
            self._validate(run)
            self._run(run, progress_callback, cancel_event)
            result.entry_count = len(run.entries)
            logger.info(f"--- Conversion completed: {result.entry_count} subtitles in {time.time() - start_time:.2f} seconds ---")
        except ConversionCancelled as e:
            logger.warning(f"Conversion of {source} cancelled: {e}")
            result.error = e
        except ConverterError as e:
            logger.error(f"Conversion of {source} failed: {e}", exc_info=False)
            result.error = e
        except OSError as e:
            logger.error(f"File system error while converting {source}: {e}", exc_info=True)
            result.error = FileSystemError(f"File system error: {e}")
            result.error.__cause__ = e
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred while converting {source}: {e}", exc_info=True)
            result.error = ConverterError(f"An unexpected critical error occurred: {e}")
            result.error.__cause__ = e
        return result

    def submit(
        self,
        source: str,
        offset_seconds: int = 0,
        destination: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> "Future[ConversionResult]":
        """
        Runs `convert` on the converter's background worker thread.

        Conversions submitted to the same converter run one after another.
        """
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="livetalk-srt")
            return self._executor.submit(
                self.convert, source, offset_seconds, destination, progress_callback, cancel_event
            )

    def shutdown(self, wait: bool = True) -> None:
        """
        Stops the background worker, if one was started.

        Work submitted while this call waits, for instance from a progress
        callback, goes to a fresh worker that a later shutdown stops.
        """
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> "SubRipConverter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
