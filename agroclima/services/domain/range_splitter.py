"""
Domain service: split a date range into provider-sized chunks.
"""
from datetime import date, timedelta
from typing import List

from agroclima.domain.models import DateRange


def split_date_range(start: date, end: date, max_days: int) -> List[DateRange]:
    """
    Decompose [start, end] into contiguous chunks of at most ``max_days``.

    Chunks are ordered and non-overlapping; only the last one may be shorter.
    An inverted range yields no chunks, callers validate ordering beforehand.

    Args:
        start: First day, inclusive
        end: Last day, inclusive
        max_days: Maximum inclusive days per chunk

    Returns:
        List of DateRange covering exactly [start, end]

    Raises:
        ValueError: If max_days is less than 1
    """
    if max_days < 1:
        raise ValueError(f"max_days must be at least 1, got {max_days}")

    chunks: List[DateRange] = []
    cursor = start
    while cursor <= end:
        chunk_end = min(cursor + timedelta(days=max_days - 1), end)
        chunks.append(DateRange(start=cursor, end=chunk_end))
        cursor = chunk_end + timedelta(days=1)
    return chunks
