"""Tests for tolerance-aware metric comparison."""

from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from credit_engines.comparator import (
    ComparisonThresholds,
    DeltaStatus,
    compare_snapshot_metrics,
)

metric_values = st.one_of(
    st.none(),
    st.decimals(
        min_value=Decimal("-1000000"),
        max_value=Decimal("1000000"),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    ),
)
metric_maps = st.dictionaries(st.sampled_from(list("abcdefgh")), metric_values, max_size=8)


class TestCompareSnapshotMetrics:
    def test_identical_inputs(self):
        metrics = {"dscr": Decimal("1.5"), "leverage": Decimal("3.2")}
        comparison = compare_snapshot_metrics(metrics, dict(metrics))

        assert comparison.identical
        assert comparison.summary.unchanged == 2
        assert comparison.summary.max_absolute_delta == Decimal("0")

    def test_added_and_removed(self):
        comparison = compare_snapshot_metrics({"a": 1, "b": 2}, {"b": 2, "c": 3})
        by_key = {d.key: d for d in comparison.deltas}

        assert by_key["a"].status is DeltaStatus.REMOVED
        assert by_key["c"].status is DeltaStatus.ADDED
        assert by_key["c"].after == Decimal("3")
        assert comparison.summary.added == 1
        assert comparison.summary.removed == 1
        assert not comparison.identical

    def test_deltas_sorted_by_key(self):
        comparison = compare_snapshot_metrics({"z": 1, "m": 1}, {"a": 1})
        assert [d.key for d in comparison.deltas] == ["a", "m", "z"]

    def test_changed_with_percent(self):
        comparison = compare_snapshot_metrics({"A": 100}, {"A": 110})
        delta = comparison.deltas[0]

        assert delta.status is DeltaStatus.CHANGED
        assert delta.absolute_delta == Decimal("10")
        assert delta.percent_delta == Decimal("0.1")
        assert comparison.summary.max_percent_delta == Decimal("0.1")
        assert comparison.summary.max_absolute_delta == Decimal("10")

    def test_wider_percent_tolerance_absorbs_change(self):
        comparison = compare_snapshot_metrics(
            {"A": 100}, {"A": 110}, ComparisonThresholds(percent_tolerance="0.2")
        )
        assert comparison.deltas[0].status is DeltaStatus.UNCHANGED
        assert comparison.identical

    def test_absolute_tolerance_is_a_floor(self):
        comparison = compare_snapshot_metrics({"A": Decimal("0.001")}, {"A": Decimal("0.005")})
        assert comparison.deltas[0].status is DeltaStatus.UNCHANGED

    def test_percent_tolerance_scales(self):
        thresholds = ComparisonThresholds(absolute_tolerance="0.01", percent_tolerance="0.001")
        comparison = compare_snapshot_metrics(
            {"revenue": Decimal("10000000")}, {"revenue": Decimal("10000500")}, thresholds
        )
        assert comparison.deltas[0].status is DeltaStatus.UNCHANGED

    def test_zero_before_has_no_percent(self):
        comparison = compare_snapshot_metrics({"A": 0}, {"A": 5})
        delta = comparison.deltas[0]

        assert delta.percent_delta is None
        assert delta.status is DeltaStatus.CHANGED

    def test_one_sided_null(self):
        comparison = compare_snapshot_metrics({"A": None, "B": 4}, {"A": 7, "B": None})
        by_key = {d.key: d for d in comparison.deltas}

        assert by_key["A"].status is DeltaStatus.CHANGED
        assert by_key["A"].absolute_delta == Decimal("7")
        assert by_key["B"].absolute_delta == Decimal("-4")
        assert comparison.summary.max_absolute_delta == Decimal("0")

    def test_both_null_is_unchanged(self):
        comparison = compare_snapshot_metrics({"A": None}, {"A": None})
        assert comparison.identical

    def test_inputs_not_mutated(self):
        before, after = {"a": 1}, {"b": 2}
        compare_snapshot_metrics(before, after)
        assert before == {"a": 1}
        assert after == {"b": 2}


class TestComparatorProperties:
    @given(metric_maps)
    def test_self_comparison_is_identical(self, metrics):
        comparison = compare_snapshot_metrics(metrics, metrics)
        assert comparison.identical
        assert comparison.summary.unchanged == len(metrics)

    @given(metric_maps, metric_maps)
    def test_added_and_removed_are_symmetric(self, before, after):
        forward = compare_snapshot_metrics(before, after).summary
        backward = compare_snapshot_metrics(after, before).summary

        assert forward.added == backward.removed
        assert forward.removed == backward.added
        assert forward.added + forward.removed + forward.changed + forward.unchanged == len(
            set(before) | set(after)
        )
