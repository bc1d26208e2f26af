"""
Unit tests for the date range splitter.
"""
import pytest
from datetime import date, timedelta

from agroclima.services.domain.range_splitter import split_date_range


class TestSplitDateRange:
    """Tests for chunk decomposition of inclusive ranges."""

    def test_three_years_split_into_two_chunks(self):
        """1,095 days with a 730-day limit yields 730 + 365."""
        start = date(2021, 1, 1)
        end = start + timedelta(days=1094)

        chunks = split_date_range(start, end, 730)

        assert [c.days for c in chunks] == [730, 365]
        assert chunks[0].start == start
        assert chunks[-1].end == end

    def test_chunks_are_contiguous(self):
        """Each chunk starts the day after the previous one ends."""
        chunks = split_date_range(date(2000, 1, 1), date(2020, 12, 31), 730)

        for previous, current in zip(chunks, chunks[1:]):
            assert current.start == previous.end + timedelta(days=1)

    def test_chunk_count_is_ceiling(self):
        """Number of chunks equals ceil(total / max_days)."""
        start, end = date(2023, 1, 1), date(2023, 1, 10)

        chunks = split_date_range(start, end, 3)

        assert len(chunks) == 4
        assert [c.days for c in chunks] == [3, 3, 3, 1]
        assert sum(c.days for c in chunks) == 10

    def test_single_day(self):
        """A one-day range is one chunk."""
        chunks = split_date_range(date(2023, 5, 5), date(2023, 5, 5), 730)

        assert len(chunks) == 1
        assert chunks[0].days == 1

    def test_exact_multiple(self):
        """A range of exactly max_days is not split."""
        start = date(2022, 1, 1)
        chunks = split_date_range(start, start + timedelta(days=729), 730)

        assert len(chunks) == 1

    def test_inverted_range_yields_nothing(self):
        """end before start produces an empty list."""
        assert split_date_range(date(2023, 2, 1), date(2023, 1, 1), 30) == []

    @pytest.mark.parametrize("max_days", [0, -5])
    def test_invalid_max_days(self, max_days):
        """max_days below 1 is rejected."""
        with pytest.raises(ValueError):
            split_date_range(date(2023, 1, 1), date(2023, 1, 2), max_days)
