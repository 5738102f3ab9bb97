"""Unit tests for the retention analyzer."""

import pytest

from audiosnip.analyzers.retention import merge_ranges, removed_duration, resolve
from audiosnip.models import TimeRange


def _r(start: float, end: float) -> TimeRange:
    return TimeRange(start=start, end=end)


class TestResolveBasic:
    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    @pytest.mark.parametrize("duration", [0.5, 10.0, 3600.0])
    def test_no_deletions_keeps_everything(self, mode, duration):
        assert resolve(duration, [], mode=mode) == [_r(0.0, duration)]

    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    def test_middle_deletion(self, mode):
        assert resolve(10.0, [_r(3, 5)], mode=mode) == [_r(0.0, 3), _r(5, 10.0)]

    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    def test_full_coverage_keeps_nothing(self, mode):
        assert resolve(5.0, [_r(0, 5)], mode=mode) == []
        assert resolve(10.0, [_r(0, 10)], mode=mode) == []

    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    def test_adjacent_deletions_covering_everything(self, mode):
        assert resolve(6.0, [_r(0, 2), _r(2, 4), _r(4, 6)], mode=mode) == []

    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    def test_deletion_at_start(self, mode):
        assert resolve(10.0, [_r(0, 4)], mode=mode) == [_r(4, 10.0)]

    @pytest.mark.parametrize("mode", ["merged", "cursor"])
    def test_deletion_at_end(self, mode):
        assert resolve(10.0, [_r(7, 10)], mode=mode) == [_r(0.0, 7)]

    def test_zero_duration(self):
        assert resolve(0.0, []) == []

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            resolve(-1.0, [])

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError, match="Unknown resolve mode"):
            resolve(10.0, [], mode="sorted")


class TestCursorMode:
    """The legacy walk: caller order, no clamping, no merging."""

    def test_out_of_order_input_overlaps(self):
        keep = resolve(10.0, [_r(5, 8), _r(2, 3)], mode="cursor")
        # The second deletion moves the cursor back to 3, so 3..5 is kept twice
        assert keep == [_r(0.0, 5), _r(3, 10.0)]

    def test_deletion_past_duration_is_not_clamped(self):
        assert resolve(10.0, [_r(12, 15)], mode="cursor") == [_r(0.0, 12)]

    def test_zero_length_deletion_only_moves_cursor(self):
        assert resolve(10.0, [_r(4, 4)], mode="cursor") == [_r(0.0, 4), _r(4, 10.0)]

    def test_overlapping_deletions(self):
        assert resolve(10.0, [_r(2, 6), _r(4, 8)], mode="cursor") == [_r(0.0, 2), _r(8, 10.0)]

    def test_backwards_cursor_logs_warning(self, caplog):
        with caplog.at_level("WARNING"):
            resolve(10.0, [_r(5, 8), _r(2, 3)], mode="cursor")
        assert "overlapping or out-of-bounds" in caplog.text


class TestMergedMode:
    def test_sorts_out_of_order_input(self):
        keep = resolve(10.0, [_r(5, 8), _r(2, 3)])
        assert keep == [_r(0.0, 2), _r(3, 5), _r(8, 10.0)]

    def test_merges_overlaps(self):
        assert resolve(10.0, [_r(4, 8), _r(2, 6)]) == [_r(0.0, 2), _r(8, 10.0)]

    def test_clamps_out_of_bounds(self):
        assert resolve(10.0, [_r(-3, 1), _r(9, 15)]) == [_r(1, 9)]

    def test_deletion_entirely_past_end_is_ignored(self):
        assert resolve(10.0, [_r(12, 15)]) == [_r(0.0, 10.0)]

    def test_zero_length_deletion_is_dropped(self):
        assert resolve(10.0, [_r(4, 4)]) == [_r(0.0, 10.0)]

    def test_inverted_range_is_ignored(self):
        assert resolve(10.0, [_r(6, 4)]) == [_r(0.0, 10.0)]

    def test_result_is_sorted_and_disjoint(self):
        deletions = [_r(7, 7.5), _r(1, 2), _r(1.5, 3), _r(9, 9.5), _r(0.2, 0.4)]
        keep = resolve(10.0, deletions)
        assert keep == sorted(keep, key=lambda r: r.start)
        assert all(r.start < r.end for r in keep)
        assert all(a.end <= b.start for a, b in zip(keep, keep[1:]))
        assert all(0.0 <= r.start and r.end <= 10.0 for r in keep)

    def test_does_not_mutate_input(self):
        deletions = [_r(4, 8), _r(2, 6)]
        resolve(10.0, deletions)
        assert deletions == [_r(4, 8), _r(2, 6)]


class TestComplementIdempotence:
    """Deleting the retention set again gives back the original deletions."""

    @pytest.mark.parametrize(
        "deletions",
        [
            [_r(3, 5)],
            [_r(0, 1), _r(4, 6), _r(9, 10)],
            [_r(2.25, 2.75), _r(7.1, 8.3)],
            [_r(5, 8), _r(1, 2), _r(1.5, 3)],
        ],
    )
    def test_double_complement(self, deletions):
        duration = 10.0
        keep = resolve(duration, deletions)
        again = resolve(duration, keep)
        expected = merge_ranges(deletions, duration)
        assert len(again) == len(expected)
        for got, want in zip(again, expected):
            assert got.start == pytest.approx(want.start)
            assert got.end == pytest.approx(want.end)


class TestMergeRanges:
    def test_touching_ranges_fuse(self):
        assert merge_ranges([_r(2, 4), _r(0, 2)]) == [_r(0, 4)]

    def test_without_duration_no_clamping(self):
        assert merge_ranges([_r(-1, 2), _r(20, 30)]) == [_r(-1, 2), _r(20, 30)]

    def test_contained_range_absorbed(self):
        assert merge_ranges([_r(1, 9), _r(3, 4)]) == [_r(1, 9)]


class TestRemovedDuration:
    def test_sum(self):
        keep = resolve(10.0, [_r(3, 5)])
        assert removed_duration(10.0, keep) == pytest.approx(2.0)

    def test_nothing_removed(self):
        assert removed_duration(10.0, [_r(0, 10)]) == 0.0
