"""Derives timed subtitle entries from transcript records."""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from .models import RawRecord, SubtitleEntry, TimingRules

logger = logging.getLogger(__name__)


class SubtitleBuilder:
    """
    Builds SubtitleEntry objects in two passes.

    The first pass gives every record a display window long enough to read it
    (one second per `chars_per_second` characters, rounded up, never less than
    `min_display_seconds`). The second pass cuts each window short where it
    would run into the next subtitle. Windows are never extended.
    """

    def __init__(self, rules: Optional[TimingRules] = None):
        self.rules = rules or TimingRules()

    def display_seconds(self, text: str) -> int:
        """Reading time for `text` in whole seconds."""
        reading = math.ceil(len(text) / self.rules.chars_per_second)
        return max(reading, self.rules.min_display_seconds)

    def create_entry(self, record: RawRecord, sequence_number: int) -> SubtitleEntry:
        """Creates the untrimmed entry for a single record."""
        return SubtitleEntry(
            sequence_number=sequence_number,
            start_time=record.timestamp,
            end_time=record.timestamp + timedelta(seconds=self.display_seconds(record.text)),
            text=record.text
        )

    def build(self, records: Iterable[RawRecord]) -> List[SubtitleEntry]:
        """First pass: numbers records from 1 and assigns reading-time end times."""
        return [self.create_entry(record, seq_no) for seq_no, record in enumerate(records, start=1)]

    def trim_overlaps(
        self,
        entries: List[SubtitleEntry],
        on_checked: Optional[Callable[[SubtitleEntry], None]] = None
    ) -> int:
        """
        Second pass: ends each entry no later than the next one starts.

        Mutates `entries` in place. `on_checked` is called for every entry
        that has a successor, in order.

        Returns:
            The number of entries whose end time was reduced.
        """
        trimmed = 0
        for current, following in zip(entries, entries[1:]):
            if on_checked:
                on_checked(current)
            if current.end_time > following.start_time:
                current.end_time = following.start_time
                trimmed += 1
        logger.debug(f"Trimmed {trimmed} of {len(entries)} subtitle end times.")
        return trimmed

    @staticmethod
    def compute_baseline(entries: List[SubtitleEntry], offset_seconds: int) -> Optional[datetime]:
        """
        Zero point for output timestamps: the first start minus the offset.

        SubRip times cannot be negative, so the offset always moves subtitles
        later; a negative offset is applied by its magnitude.

        Returns None when there are no entries.
        """
        if not entries:
            return None
        if offset_seconds < 0:
            logger.warning(f"Negative offset {offset_seconds}s; subtitles are shifted {-offset_seconds}s later.")
        return entries[0].start_time - timedelta(seconds=abs(offset_seconds))
