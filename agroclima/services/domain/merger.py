"""
Domain service: combine record batches into one canonical sequence.
"""
from datetime import date
from typing import Dict, Iterable, List

from agroclima.domain.models import DailyRecord


def merge_record_batches(batches: Iterable[Iterable[DailyRecord]]) -> List[DailyRecord]:
    """
    Merge batches keyed by date.

    When two records share a date the one processed later wins. The result
    is sorted ascending by date; merging a merged sequence again yields the
    same sequence.
    """
    by_date: Dict[date, DailyRecord] = {}
    for batch in batches:
        for record in batch:
            by_date[record.date] = record
    return [by_date[day] for day in sorted(by_date)]
