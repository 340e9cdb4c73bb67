"""End-to-end tests for SubRipConverter."""

import re
import threading
import time
from datetime import timedelta
from pathlib import Path
from typing import List

import pytest

from livetalk_srt.converter import END_OF_FILE_MESSAGE, SubRipConverter
from livetalk_srt.exceptions import (
    ConfigurationError,
    ConversionCancelled,
    ConverterError,
    FileSystemError,
    ParseError,
)
from livetalk_srt.subtitle_formatter import SRTFormatter

from conftest import SCENARIO_LINES

BLOCK_RE = re.compile(
    r"(\d+)\n(\d{2,}):(\d{2}):(\d{2}),(\d{3}) --> (\d{2,}):(\d{2}):(\d{2}),(\d{3})\n(.*)\n\n"
)


def parse_srt(text: str):
    """Returns (seq, start, end, text) tuples from SRT output."""
    blocks = []
    for match in BLOCK_RE.finditer(text):
        g = match.groups()
        start = timedelta(hours=int(g[1]), minutes=int(g[2]), seconds=int(g[3]), milliseconds=int(g[4]))
        end = timedelta(hours=int(g[5]), minutes=int(g[6]), seconds=int(g[7]), milliseconds=int(g[8]))
        blocks.append((int(g[0]), start, end, g[9]))
    return blocks


class TestConvertScenarios:
    """Tests for the documented conversion scenarios."""

    def test_two_record_scenario(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter().convert(str(source), offset_seconds=0)

        assert result.succeeded
        assert result.entry_count == 2
        assert result.destination == str(source.with_suffix(".srt"))
        assert Path(result.destination).read_text(encoding="utf-8") == (
            "1\n00:00:00,000 --> 00:00:01,000\nHi\n\n"
            "2\n00:00:01,000 --> 00:00:04,000\nBye\n\n"
        )

    def test_positive_offset_moves_first_start(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter().convert(str(source), offset_seconds=30)
        blocks = parse_srt(Path(result.destination).read_text(encoding="utf-8"))
        assert blocks[0][1] == timedelta(seconds=30)
        assert blocks[1][1] == timedelta(seconds=31)

    def test_negative_offset_shifts_later(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter().convert(str(source), offset_seconds=-5)
        assert result.succeeded
        blocks = parse_srt(Path(result.destination).read_text(encoding="utf-8"))
        assert blocks[0][1] == timedelta(seconds=5)
        assert blocks[1][1] == timedelta(seconds=6)
        assert blocks[1][2] == timedelta(seconds=9)

    def test_empty_input_writes_empty_file(self, write_csv) -> None:
        source = write_csv([])
        events: List[str] = []
        result = SubRipConverter().convert(str(source), progress_callback=events.append)

        assert result.succeeded
        assert result.entry_count == 0
        assert Path(result.destination).read_bytes() == b""
        assert events == [END_OF_FILE_MESSAGE]

    def test_sub_second_timestamps(self, write_csv) -> None:
        source = write_csv([
            '"2020/06/01 09:00:00.250","A","first","x"',
            '"2020/06/01 09:00:01.750","A","second","y"',
        ])
        result = SubRipConverter().convert(str(source), offset_seconds=0)
        text = Path(result.destination).read_text(encoding="utf-8")
        assert "00:00:00,000 --> 00:00:01,500" in text
        assert "00:00:01,500 --> 00:00:04,500" in text

    def test_long_transcript_properties(self, write_csv) -> None:
        texts = ["short", "x" * 40, "a medium length line", "y" * 7, "z" * 60, "end"]
        seconds = [0, 1, 20, 22, 23, 40]
        lines = [
            f'"2024-01-01 10:00:{s:02d}","S","{t}","t"' for s, t in zip(seconds, texts)
        ]
        source = write_csv(lines)
        result = SubRipConverter().convert(str(source), offset_seconds=2)
        blocks = parse_srt(Path(result.destination).read_text(encoding="utf-8"))

        assert [b[0] for b in blocks] == list(range(1, len(texts) + 1))
        assert [b[3] for b in blocks] == texts
        assert blocks[0][1] == timedelta(seconds=2)
        for current, following in zip(blocks, blocks[1:]):
            assert current[2] <= following[1]
        assert blocks[2][2] - blocks[2][1] == timedelta(seconds=2)  # cut at the next start
        assert blocks[4][2] - blocks[4][1] == timedelta(seconds=12)
        assert blocks[5][2] - blocks[5][1] == timedelta(seconds=3)

    def test_timezone_aware_timestamps(self, write_csv) -> None:
        source = write_csv([
            '"2024-01-01T00:00:10+09:00","A","Hi","x"',
            '"2024-01-01T00:00:11+09:00","B","Bye","y"',
        ])
        result = SubRipConverter().convert(str(source))
        assert result.succeeded
        blocks = parse_srt(Path(result.destination).read_text(encoding="utf-8"))
        assert [(b[1], b[2]) for b in blocks] == [
            (timedelta(0), timedelta(seconds=1)),
            (timedelta(seconds=1), timedelta(seconds=4)),
        ]

    def test_explicit_destination(self, write_csv, tmp_path: Path) -> None:
        source = write_csv(SCENARIO_LINES)
        destination = tmp_path / "custom.srt"
        result = SubRipConverter().convert(str(source), destination=str(destination))
        assert result.destination == str(destination)
        assert destination.exists()
        assert not source.with_suffix(".srt").exists()


class TestStatusEvents:
    """Tests for the progress channel."""

    def test_event_order(self, write_csv) -> None:
        source = write_csv([
            '"2024-01-01 00:00:10","A","one","1"',
            '"2024-01-01 00:00:20","B","two","2"',
            '"2024-01-01 00:00:30","A","three","3"',
        ])
        events: List[str] = []
        SubRipConverter().convert(str(source), progress_callback=events.append)
        assert events == [
            "Read CSV File : SeqNo=1",
            "Read CSV File : SeqNo=2",
            "Read CSV File : SeqNo=3",
            "Check lines : SeqNo=1",
            "Check lines : SeqNo=2",
            "Write SRT File : SeqNo=1",
            "Write SRT File : SeqNo=2",
            "Write SRT File : SeqNo=3",
            "End of file",
        ]

    def test_failing_callback_does_not_stop_conversion(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)

        def bad_listener(message: str) -> None:
            raise RuntimeError("listener broke")

        result = SubRipConverter().convert(str(source), progress_callback=bad_listener)
        assert result.succeeded
        assert Path(result.destination).exists()


class TestFailures:
    """Tests for the error channel."""

    def test_malformed_line_reports_parse_error_and_writes_nothing(self, write_csv) -> None:
        source = write_csv([SCENARIO_LINES[0], '"2024-01-01 00:00:11","B","Bye"'])
        events: List[str] = []
        result = SubRipConverter().convert(str(source), progress_callback=events.append)

        assert not result.succeeded
        assert isinstance(result.error, ParseError)
        assert result.error.line_number == 2
        assert not Path(result.destination).exists()
        assert END_OF_FILE_MESSAGE not in events

    def test_malformed_line_keeps_existing_output(self, write_csv) -> None:
        source = write_csv(['"bad date","A","Hi","x"'])
        destination = source.with_suffix(".srt")
        destination.write_text("earlier run", encoding="utf-8")
        result = SubRipConverter().convert(str(source))
        assert isinstance(result.error, ParseError)
        assert destination.read_text(encoding="utf-8") == "earlier run"

    def test_mixed_timezone_awareness_reports_parse_error(self, write_csv) -> None:
        source = write_csv([
            '"2024-01-01T00:00:10+09:00","A","Hi","x"',
            '"2024-01-01 00:00:11","B","Bye","y"',
        ])
        result = SubRipConverter().convert(str(source))
        assert isinstance(result.error, ParseError)
        assert result.error.line_number == 2
        assert not Path(result.destination).exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        result = SubRipConverter().convert(str(tmp_path / "missing.csv"))
        assert isinstance(result.error, FileSystemError)
        assert isinstance(result.error.__cause__, FileNotFoundError)
        assert not (tmp_path / "missing.srt").exists()

    def test_unwritable_destination(self, write_csv, tmp_path: Path) -> None:
        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter().convert(str(source), destination=str(tmp_path / "no_dir" / "out.srt"))
        assert isinstance(result.error, FileSystemError)

    def test_destination_equal_to_source_rejected(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES, name="transcript.srt")
        result = SubRipConverter().convert(str(source))
        assert isinstance(result.error, FileSystemError)
        assert source.read_text(encoding="utf-8").startswith('"2024-01-01')

    @pytest.mark.parametrize("offset", [1.5, "5", True, None])
    def test_non_integer_offset_rejected(self, write_csv, offset) -> None:
        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter().convert(str(source), offset_seconds=offset)
        assert isinstance(result.error, ConfigurationError)

    def test_unexpected_error_is_wrapped_with_cause(self, write_csv) -> None:
        class BrokenFormatter(SRTFormatter):
            def format_subtitles(self, *args, **kwargs):
                raise KeyError("unexpected")

        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter(formatter=BrokenFormatter()).convert(str(source))
        assert type(result.error) is ConverterError
        assert isinstance(result.error.__cause__, KeyError)

    def test_raw_os_error_is_wrapped(self, write_csv) -> None:
        class FullDiskFormatter(SRTFormatter):
            def format_subtitles(self, *args, **kwargs):
                raise OSError(28, "No space left on device")

        source = write_csv(SCENARIO_LINES)
        result = SubRipConverter(formatter=FullDiskFormatter()).convert(str(source))
        assert isinstance(result.error, FileSystemError)
        assert isinstance(result.error.__cause__, OSError)


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_before_start(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        cancel = threading.Event()
        cancel.set()
        result = SubRipConverter().convert(str(source), cancel_event=cancel)
        assert isinstance(result.error, ConversionCancelled)
        assert result.error.sequence_number == 1
        assert not Path(result.destination).exists()

    def test_cancel_while_reading(self, write_csv) -> None:
        source = write_csv([
            '"2024-01-01 00:00:10","A","one","1"',
            '"2024-01-01 00:00:20","B","two","2"',
            '"2024-01-01 00:00:30","A","three","3"',
        ])
        cancel = threading.Event()
        events: List[str] = []

        def listener(message: str) -> None:
            events.append(message)
            if message == "Read CSV File : SeqNo=2":
                cancel.set()

        result = SubRipConverter().convert(str(source), progress_callback=listener, cancel_event=cancel)
        assert isinstance(result.error, ConversionCancelled)
        assert result.error.sequence_number == 3
        assert events == ["Read CSV File : SeqNo=1", "Read CSV File : SeqNo=2"]
        assert not Path(result.destination).exists()

    def test_cancel_while_writing_leaves_no_file(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        cancel = threading.Event()

        def listener(message: str) -> None:
            if message.startswith("Write SRT File"):
                cancel.set()

        result = SubRipConverter().convert(str(source), progress_callback=listener, cancel_event=cancel)
        assert isinstance(result.error, ConversionCancelled)
        assert list(source.parent.iterdir()) == [source]


class TestBackgroundWorker:
    """Tests for running conversions off the caller's thread."""

    def test_submit_returns_future_with_result(self, write_csv) -> None:
        source = write_csv(SCENARIO_LINES)
        caller = threading.current_thread()
        threads = []

        with SubRipConverter() as converter:
            future = converter.submit(
                str(source),
                offset_seconds=0,
                progress_callback=lambda _m: threads.append(threading.current_thread())
            )
            result = future.result(timeout=30)

        assert result.succeeded
        assert result.entry_count == 2
        assert threads and all(t is not caller for t in threads)

    def test_submitted_failures_are_results(self, tmp_path: Path) -> None:
        with SubRipConverter() as converter:
            result = converter.submit(str(tmp_path / "missing.csv")).result(timeout=30)
        assert isinstance(result.error, FileSystemError)

    def test_conversions_run_in_submission_order(self, write_csv) -> None:
        first = write_csv(SCENARIO_LINES, name="first.csv")
        second = write_csv(SCENARIO_LINES, name="second.csv")
        finished = []

        def listener_for(name: str):
            def listener(message: str) -> None:
                if message == END_OF_FILE_MESSAGE:
                    finished.append(name)
            return listener

        with SubRipConverter() as converter:
            futures = [
                converter.submit(str(path), progress_callback=listener_for(path.name))
                for path in (first, second)
            ]
            results = [f.result(timeout=30) for f in futures]
        assert all(r.succeeded for r in results)
        assert finished == ["first.csv", "second.csv"]


class TestFromConfig:
    """Tests for building a converter from configuration."""

    def test_timing_rules_from_config(self, write_csv) -> None:
        source = write_csv(['"2024-01-01 00:00:10","A","0123456789","x"'])
        converter = SubRipConverter.from_config({'min_display_seconds': 1, 'chars_per_second': 2})
        result = converter.convert(str(source))
        assert "00:00:00,000 --> 00:00:05,000" in Path(result.destination).read_text(encoding="utf-8")

    def test_timestamp_formats_from_config(self, write_csv) -> None:
        source = write_csv(['"10h00m05s 2024","A","Hi","x"'])
        converter = SubRipConverter.from_config({'timestamp_formats': ["%Hh%Mm%Ss %Y"]})
        assert converter.convert(str(source)).succeeded

    def test_callback_can_submit_while_shutting_down(self, write_csv) -> None:
        """Test shutdown does not block a callback that queues more work."""
        first = write_csv(SCENARIO_LINES, name="first.csv")
        second = write_csv(SCENARIO_LINES, name="second.csv")
        converter = SubRipConverter()
        reached_end = threading.Event()
        resume = threading.Event()
        follow_ups = []

        def listener(message: str) -> None:
            if message == END_OF_FILE_MESSAGE:
                reached_end.set()
                resume.wait(timeout=30)
                follow_ups.append(converter.submit(str(second)))

        future = converter.submit(str(first), progress_callback=listener)
        assert reached_end.wait(timeout=30)
        stopper = threading.Thread(target=converter.shutdown)
        stopper.start()
        time.sleep(0.1)
        resume.set()
        stopper.join(timeout=30)

        try:
            assert not stopper.is_alive()
            assert future.result(timeout=30).succeeded
            assert len(follow_ups) == 1
            assert follow_ups[0].result(timeout=30).succeeded
        finally:
            converter.shutdown()
