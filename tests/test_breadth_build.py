"""Tests for daily breadth aggregation."""

import itertools
import threading

import pandas as pd
import pytest

from breadth_index.core.types import Contribution, Outcome
from breadth_index.pipeline.breadth_build import BreadthAggregator, build_breadth
from breadth_index.pipeline.symbol_process import EmaBreadthSet, ExtremaNetSet

P = Outcome.POSITIVE
N = Outcome.NEGATIVE
Z = Outcome.NEUTRAL


def ema_contributions(date, signal, above_fast, above_slow):
    return [
        Contribution(date, "above50", P if above_fast else N),
        Contribution(date, "above200", P if above_slow else N),
        Contribution(date, "signal", P if signal else N),
    ]


class TestBreadthAggregator:
    """Tests for the thread-safe accumulator."""

    def test_counts_by_category(self):
        """Test that outcomes are counted per date and category."""
        aggregator = BreadthAggregator()
        aggregator.add([Contribution("2024-01-01", "signal", P), Contribution("2024-01-01", "signal", N)])
        aggregator.add([Contribution("2024-01-01", "signal", Z), Contribution("2024-01-02", "signal", P)])

        cell = aggregator.get("2024-01-01")
        assert (cell.positive, cell.negative, cell.neutral, cell.evaluated) == (1, 1, 1, 3)
        assert aggregator.get("2024-01-02").evaluated == 1
        assert aggregator.get("2024-01-03").evaluated == 0
        assert len(aggregator) == 2

    def test_counts_sorted_by_date(self):
        """Test that the counts table is ordered by date."""
        aggregator = BreadthAggregator()
        aggregator.add([Contribution("2024-01-03", "signal", P)])
        aggregator.add([Contribution("2024-01-01", "signal", N)])
        assert list(aggregator.counts().index) == ["2024-01-01", "2024-01-03"]

    def test_order_independent(self):
        """Test that every insertion order gives the same table."""
        batches = [
            [Contribution("2024-01-01", "signal", P), Contribution("2024-01-02", "signal", P)],
            [Contribution("2024-01-01", "signal", N)],
            [Contribution("2024-01-02", "signal", Z), Contribution("2024-01-03", "signal", N)],
        ]
        tables = []
        for order in itertools.permutations(batches):
            aggregator = BreadthAggregator()
            for batch in order:
                aggregator.add(batch)
            tables.append(aggregator.counts())
        for table in tables[1:]:
            pd.testing.assert_frame_equal(tables[0], table)

    def test_concurrent_adds(self):
        """Test that no update is lost across threads."""
        aggregator = BreadthAggregator()
        contributions = [Contribution(f"2024-01-{d:02d}", "signal", P) for d in range(1, 11)]

        def worker():
            for _ in range(50):
                aggregator.add(contributions)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        counts = aggregator.counts()
        assert (counts["positive"] == 400).all()
        assert len(counts) == 10


class TestEmaBreadthTable:
    """Tests for the dual-EMA aggregate table."""

    def test_percentages(self):
        """Test that 7 of 10 positive gives 70.00 / 30.00."""
        aggregator = BreadthAggregator()
        for i in range(10):
            aggregator.add(ema_contributions("2024-01-01", i < 7, i < 8, i < 7))
        breadth = build_breadth(aggregator, EmaBreadthSet("ema_50_200", 50, 200))

        row = breadth.iloc[0]
        assert row["date"] == "2024-01-01"
        assert (row["positive"], row["negative"]) == (7, 3)
        assert (row["positive_pct"], row["negative_pct"]) == ("70.00", "30.00")
        assert row["pct_above50"] == "80.00"
        assert row["pct_above200"] == "70.00"

    def test_columns(self):
        """Test aggregate column order."""
        aggregator = BreadthAggregator()
        aggregator.add(ema_contributions("2024-01-01", True, True, True))
        breadth = build_breadth(aggregator, EmaBreadthSet("ema_50_200", 50, 200))
        assert list(breadth.columns) == [
            "date", "positive", "negative", "positive_pct", "negative_pct", "pct_above50", "pct_above200",
        ]

    def test_dates_without_signal_omitted(self):
        """Test that dates with only per-EMA contributions produce no row."""
        aggregator = BreadthAggregator()
        aggregator.add([Contribution("2024-01-01", "above50", P)])
        aggregator.add(ema_contributions("2024-01-02", False, False, False))
        breadth = build_breadth(aggregator, EmaBreadthSet("ema_50_200", 50, 200))
        assert list(breadth["date"]) == ["2024-01-02"]
        assert breadth.iloc[0]["negative_pct"] == "100.00"

    def test_empty(self):
        """Test that no contributions give an empty table."""
        breadth = build_breadth(BreadthAggregator(), EmaBreadthSet("ema_50_200", 50, 200))
        assert breadth.empty
        assert "positive_pct" in breadth.columns


class TestExtremaNetTable:
    """Tests for the higher-high / lower-low table."""

    def test_net_counts(self):
        """Test hh, ll and net columns."""
        aggregator = BreadthAggregator()
        aggregator.add([Contribution("2024-01-01", "signal", P)])
        aggregator.add([Contribution("2024-01-01", "signal", P)])
        aggregator.add([Contribution("2024-01-01", "signal", N)])
        aggregator.add([Contribution("2024-01-01", "signal", Z)])
        breadth = build_breadth(aggregator, ExtremaNetSet("hh_ll_90", 90))

        assert list(breadth.columns) == ["date", "hh_count", "ll_count", "net_count"]
        row = breadth.iloc[0]
        assert (row["hh_count"], row["ll_count"], row["net_count"]) == (2, 1, 1)

    def test_neutral_only_date_kept(self):
        """Test that a date with only neutral outcomes still has a row."""
        aggregator = BreadthAggregator()
        aggregator.add([Contribution("2024-01-01", "signal", Z)])
        breadth = build_breadth(aggregator, ExtremaNetSet("hh_ll_90", 90))
        assert len(breadth) == 1
        assert breadth.iloc[0]["net_count"] == 0


@pytest.mark.parametrize("positive,total,expected", [(1, 1, "100.00"), (0, 4, "0.00"), (2, 3, "66.67")])
def test_positive_pct_rounding(positive, total, expected):
    """Test two-decimal rounding of aggregate percentages."""
    aggregator = BreadthAggregator()
    for i in range(total):
        aggregator.add(ema_contributions("2024-01-01", i < positive, True, True))
    breadth = build_breadth(aggregator, EmaBreadthSet("ema_50_200", 50, 200))
    assert breadth.iloc[0]["positive_pct"] == expected
