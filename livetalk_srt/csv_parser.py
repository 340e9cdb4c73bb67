"""Reads LiveTalk CSV transcript logs into RawRecord objects."""

import logging
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

from .exceptions import FileSystemError, ParseError
from .models import RawRecord

logger = logging.getLogger(__name__)

FIELD_COUNT = 4
QUOTE = '"'
SEPARATOR = ','

# Tried in order after ISO 8601. LiveTalk itself writes the first form.
DEFAULT_TIMESTAMP_FORMATS = (
    "%Y/%m/%d %H:%M:%S.%f",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %I:%M:%S %p",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    # fromisoformat only takes 3 or 6 fraction digits before Python 3.11
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%m/%d/%Y %H:%M:%S.%f",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d.%m.%Y %H:%M:%S.%f",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%b %d, %Y %H:%M:%S",
    "%b %d, %Y %I:%M:%S %p",
    "%B %d, %Y %H:%M:%S",
    "%B %d, %Y %I:%M:%S %p",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y %H:%M:%S",
    "%d %B %Y %H:%M:%S",
    "%d-%b-%Y %H:%M:%S",
    "%a, %d %b %Y %H:%M:%S",
)


def split_quoted_fields(line: str) -> List[str]:
    """
    Splits a line on commas that are not enclosed in double quotes.

    Quote characters are kept in the returned fields; stripping them is left
    to the caller.

    Args:
        line: A single line of text without its line terminator.

    Returns:
        The list of raw fields, in order.

    Raises:
        ValueError: If the line ends while a quoted section is still open.
    """
    fields = []
    current = []
    in_quotes = False
    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
            current.append(char)
        elif char == SEPARATOR and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    if in_quotes:
        raise ValueError("Unbalanced quotes")
    fields.append("".join(current))
    return fields


def unquote_field(field: str) -> str:
    """Removes exactly one leading and one trailing double quote."""
    if len(field) < 2 or field[0] != QUOTE or field[-1] != QUOTE:
        raise ValueError(f"Field is not enclosed in double quotes: {field!r}")
    return field[1:-1]


def parse_timestamp(text: str, formats: Sequence[str] = DEFAULT_TIMESTAMP_FORMATS) -> datetime:
    """
    Parses free-form timestamp text into a datetime.

    ISO 8601 is tried first, then each of `formats` with strptime.

    Raises:
        ValueError: If no format matches.
    """
    value = text.strip()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date-time: {text!r}")


class RecordParser:
    """Turns LiveTalk CSV lines into RawRecord objects."""

    def __init__(self, timestamp_formats: Optional[Sequence[str]] = None, encoding: str = 'utf-8-sig'):
        """
        Args:
            timestamp_formats: strptime formats tried after ISO 8601.
                               Defaults to DEFAULT_TIMESTAMP_FORMATS.
            encoding: Source encoding. 'utf-8-sig' also accepts a leading BOM.
        """
        self.timestamp_formats = tuple(timestamp_formats) if timestamp_formats else DEFAULT_TIMESTAMP_FORMATS
        self.encoding = encoding

    def parse_line(self, line: str, line_number: int) -> RawRecord:
        """
        Parses one CSV line.

        Raises:
            ParseError: If the line does not hold four quoted fields or the
                        timestamp cannot be parsed.
        """
        try:
            fields = split_quoted_fields(line)
        except ValueError as e:
            raise ParseError(line_number, line, str(e)) from e

        if len(fields) != FIELD_COUNT:
            raise ParseError(line_number, line, f"Expected {FIELD_COUNT} fields, found {len(fields)}")

        try:
            timestamp_text, speaker_name, text, translated_text = (unquote_field(f) for f in fields)
        except ValueError as e:
            raise ParseError(line_number, line, str(e)) from e

        try:
            timestamp = parse_timestamp(timestamp_text, self.timestamp_formats)
        except ValueError as e:
            raise ParseError(line_number, line, f"Invalid timestamp {timestamp_text!r}") from e

        return RawRecord(
            timestamp=timestamp,
            speaker_name=speaker_name,
            text=text,
            translated_text=translated_text,
            line_number=line_number
        )

    def iter_records(self, source_path: str) -> Iterator[RawRecord]:
        """
        Lazily yields records from a CSV file in line order.

        The generator holds the file open until exhausted or closed; to read
        the file again, call this method again.

        Raises:
            FileSystemError: If the file cannot be opened or read.
            ParseError: On the first malformed line, or the first timestamp
                        whose timezone awareness differs from the first
                        record's (such times cannot be compared).
        """
        logger.info(f"Reading LiveTalk CSV: {source_path}")
        try:
            f = open(source_path, 'r', encoding=self.encoding)
        except OSError as e:
            logger.error(f"Cannot open CSV file {source_path}: {e}")
            raise FileSystemError(f"Could not open CSV file {source_path}: {e}") from e

        with f:
            line_number = 0
            first_is_aware = None
            while True:
                try:
                    raw = f.readline()
                except UnicodeDecodeError as e:
                    raise ParseError(line_number + 1, "", f"Not valid {self.encoding} text: {e}") from e
                except OSError as e:
                    logger.error(f"Failed reading {source_path} after line {line_number}: {e}")
                    raise FileSystemError(f"Could not read CSV file {source_path}: {e}") from e
                if not raw:
                    break
                line_number += 1
                line = raw.rstrip('\n')
                record = self.parse_line(line, line_number)
                is_aware = record.timestamp.utcoffset() is not None
                if first_is_aware is None:
                    first_is_aware = is_aware
                elif is_aware != first_is_aware:
                    raise ParseError(line_number, line, "Timezone-aware and naive timestamps mixed")
                yield record
        logger.info(f"Finished reading {line_number} lines from {source_path}")
