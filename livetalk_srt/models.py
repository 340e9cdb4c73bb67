"""Data models for the LiveTalk SubRip converter."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .exceptions import ConverterError

DEFAULT_MIN_DISPLAY_SECONDS = 3
DEFAULT_CHARS_PER_SECOND = 5

@dataclass(frozen=True)
class RawRecord:
    """One line of a LiveTalk CSV transcript."""
    timestamp: datetime
    speaker_name: str
    text: str
    translated_text: str
    line_number: int = 0

@dataclass
class SubtitleEntry:
    """A single numbered subtitle with its display window."""
    sequence_number: int
    start_time: datetime
    end_time: datetime
    text: str

@dataclass(frozen=True)
class TimingRules:
    """Reading-speed heuristic used to derive end times."""
    min_display_seconds: int = DEFAULT_MIN_DISPLAY_SECONDS
    chars_per_second: int = DEFAULT_CHARS_PER_SECOND

@dataclass
class ConversionRun:
    """State of one conversion, owned by the worker executing it."""
    source: str
    destination: str
    offset_seconds: int = 0
    entries: List[SubtitleEntry] = field(default_factory=list)
    baseline: Optional[datetime] = None

@dataclass
class ConversionResult:
    """Terminal outcome of a conversion. `error` is None on success."""
    source: str
    destination: str
    entry_count: int = 0
    error: Optional[ConverterError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
