"""Tests for operation filtering — path, change type, time range, limit, composition."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ops_history.filters import (
    TimestampParseError,
    filter_by_change_type,
    filter_by_date_range,
    filter_by_file_path,
    filter_by_since,
    filter_by_until,
    filter_operations,
    group_by_file_path,
    parse_timestamp,
)
from ops_history.models import ChangeType, FilterOptions, Operation


def _ids(operations: list[Operation]) -> list[str]:
    return [op.id for op in operations]


def _is_subsequence(sub: list[Operation], full: list[Operation]) -> bool:
    it = iter(full)
    return all(any(op is candidate for candidate in it) for op in sub)


class TestParseTimestamp:
    def test_zulu(self) -> None:
        parsed = parse_timestamp("2025-09-18T14:30:45.123Z")
        assert parsed == datetime(2025, 9, 18, 14, 30, 45, 123000, tzinfo=timezone.utc)

    def test_offset_compares_by_instant(self) -> None:
        assert parse_timestamp("2025-09-18T16:30:00+02:00") == parse_timestamp("2025-09-18T14:30:00Z")

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp("2025-09-18T14:30:00").tzinfo is not None

    def test_date_only(self) -> None:
        assert parse_timestamp("2025-09-18") == datetime(2025, 9, 18, tzinfo=timezone.utc)

    @pytest.mark.parametrize("bad", ["not-a-date", "2025-13-45T00:00:00Z", "   "])
    def test_invalid_names_value(self, bad: str) -> None:
        with pytest.raises(TimestampParseError, match="Invalid timestamp format"):
            parse_timestamp(bad)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_timestamp("garbage")


class TestFilterByFilePathLightweight:
    def test_empty_pattern_keeps_everything(self, sample_operations: list) -> None:
        assert filter_by_file_path(sample_operations, "") == sample_operations

    def test_none_pattern_keeps_everything(self, sample_operations: list) -> None:
        assert filter_by_file_path(sample_operations, None) == sample_operations

    def test_exact(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "/Users/test/project/src/index.ts")
        assert _ids(result) == ["op-1"]

    def test_substring(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "helpers.ts")
        assert _ids(result) == ["op-2", "op-3"]

    def test_leading_wildcard_glob(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "*.tsx")
        assert _ids(result) == ["op-5"]

    def test_glob_suffix_shared_by_many(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "*.ts")
        assert _ids(result) == ["op-1", "op-2", "op-3"]

    def test_drops_operations_without_path(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "*")
        assert "op-4" not in _ids(result)
        assert len(result) == 4

    def test_relative_pattern_without_root_is_substring(self, sample_operations: list) -> None:
        result = filter_by_file_path(sample_operations, "./src/index.ts")
        assert result == []


class TestFilterByFilePathWorkspace:
    def test_relative_pattern(self, sample_operations: list, workspace_root: str) -> None:
        result = filter_by_file_path(sample_operations, "./src/index.ts", workspace_root)
        assert _ids(result) == ["op-1"]

    def test_partial_pattern(self, sample_operations: list, workspace_root: str) -> None:
        result = filter_by_file_path(sample_operations, "components/ui", workspace_root)
        assert _ids(result) == ["op-5"]

    def test_no_match(self, sample_operations: list, workspace_root: str) -> None:
        assert filter_by_file_path(sample_operations, "nonexistent", workspace_root) == []

    def test_empty_pattern_keeps_everything(
        self, sample_operations: list, workspace_root: str
    ) -> None:
        assert filter_by_file_path(sample_operations, "", workspace_root) == sample_operations

    def test_drops_operations_without_path(
        self, sample_operations: list, workspace_root: str
    ) -> None:
        result = filter_by_file_path(sample_operations, "src", workspace_root)
        assert "op-4" not in _ids(result)


class TestFilterByChangeType:
    def test_none_keeps_everything(self, sample_operations: list) -> None:
        assert filter_by_change_type(sample_operations, None) == sample_operations

    def test_empty_keeps_everything_including_untyped(self, sample_operations: list) -> None:
        untyped = Operation(id="op-x", timestamp="2025-09-18T15:00:00Z", tool="Custom", summary="")
        ops = [*sample_operations, untyped]
        assert filter_by_change_type(ops, []) == ops

    def test_keeps_members(self, sample_operations: list) -> None:
        result = filter_by_change_type(sample_operations, [ChangeType.CREATE, ChangeType.DELETE])
        assert _ids(result) == ["op-1", "op-5"]

    def test_accepts_values(self, sample_operations: list) -> None:
        result = filter_by_change_type(sample_operations, ["update"])
        assert _ids(result) == ["op-3"]

    def test_accepts_uppercase_names(self, sample_operations: list) -> None:
        assert _ids(filter_by_change_type(sample_operations, ["CREATE"])) == ["op-1"]
        assert _ids(filter_by_change_type(sample_operations, [" Delete "])) == ["op-5"]

    def test_unknown_restriction_matches_nothing(self, sample_operations: list) -> None:
        odd = Operation(
            id="op-x", timestamp="2025-09-18T15:00:00Z", tool="Move", summary="", change_type="rename"
        )
        assert filter_by_change_type([*sample_operations, odd], ["rename"]) == []

    def test_untyped_dropped_when_restricted(self) -> None:
        untyped = Operation(id="op-x", timestamp="2025-09-18T15:00:00Z", tool="Custom", summary="")
        assert filter_by_change_type([untyped], [ChangeType.READ]) == []

    def test_unknown_value_never_matches(self) -> None:
        odd = Operation(
            id="op-x", timestamp="2025-09-18T15:00:00Z", tool="Move", summary="", change_type="rename"
        )
        assert filter_by_change_type([odd], list(ChangeType)) == []


class TestTimeFilters:
    def test_since_inclusive(self, sample_operations: list) -> None:
        result = filter_by_since(sample_operations, "2025-09-18T12:00:00.000Z")
        assert _ids(result) == ["op-3", "op-4", "op-5"]

    def test_until_inclusive(self, sample_operations: list) -> None:
        result = filter_by_until(sample_operations, "2025-09-18T12:00:00.000Z")
        assert _ids(result) == ["op-1", "op-2", "op-3"]

    def test_absent_bounds_are_noops(self, sample_operations: list) -> None:
        assert filter_by_since(sample_operations, None) == sample_operations
        assert filter_by_until(sample_operations, None) == sample_operations

    def test_invalid_since_raises(self, sample_operations: list) -> None:
        with pytest.raises(TimestampParseError, match="yesterday"):
            filter_by_since(sample_operations, "yesterday")

    def test_invalid_until_raises(self, sample_operations: list) -> None:
        with pytest.raises(TimestampParseError):
            filter_by_until(sample_operations, "soon")

    def test_offset_bound(self, sample_operations: list) -> None:
        result = filter_by_since(sample_operations, "2025-09-18T13:30:00+02:00")
        assert _ids(result) == ["op-3", "op-4", "op-5"]

    def test_malformed_record_timestamp_excluded(self) -> None:
        bad = Operation(id="bad", timestamp="???", tool="Edit", summary="")
        assert filter_by_since([bad], "2000-01-01T00:00:00Z") == []

    def test_date_range(self, sample_operations: list) -> None:
        result = filter_by_date_range(
            sample_operations,
            datetime(2025, 9, 18, 11, tzinfo=timezone.utc),
            datetime(2025, 9, 18, 13),
        )
        assert _ids(result) == ["op-2", "op-3", "op-4"]


class TestFilterOperations:
    def test_no_options(self, sample_operations: list) -> None:
        assert filter_operations(sample_operations, FilterOptions()) == sample_operations

    def test_time_window_then_limit(self, sample_operations: list) -> None:
        options = FilterOptions(
            since="2025-09-18T11:30:00.000Z", until="2025-09-18T14:00:00.000Z", limit=2
        )
        assert _ids(filter_operations(sample_operations, options)) == ["op-3", "op-4"]

    def test_limit_applies_after_path_filter(self, sample_operations: list) -> None:
        options = FilterOptions(file_path="helpers.ts", limit=1)
        assert _ids(filter_operations(sample_operations, options)) == ["op-2"]

        options = FilterOptions(file_path="Button.tsx", limit=1)
        assert _ids(filter_operations(sample_operations, options)) == ["op-5"]

    @pytest.mark.parametrize("limit", [0, -1, -100])
    def test_non_positive_limit_is_empty(self, sample_operations: list, limit: int) -> None:
        assert filter_operations(sample_operations, FilterOptions(limit=limit)) == []

    def test_limit_larger_than_result(self, sample_operations: list) -> None:
        options = FilterOptions(file_path="*.ts", limit=50)
        assert filter_operations(sample_operations, options) == filter_by_file_path(
            sample_operations, "*.ts"
        )

    def test_change_types(self, sample_operations: list) -> None:
        options = FilterOptions(change_types=[ChangeType.READ])
        assert _ids(filter_operations(sample_operations, options)) == ["op-2", "op-4"]

    def test_change_type_names(self, sample_operations: list) -> None:
        options = FilterOptions(change_types=["DELETE"])
        assert _ids(filter_operations(sample_operations, options)) == ["op-5"]

    def test_workspace_root(self, sample_operations: list, workspace_root: str) -> None:
        options = FilterOptions(file_path="src/index.ts")
        result = filter_operations(sample_operations, options, workspace_root=workspace_root)
        assert _ids(result) == ["op-1"]

    def test_invalid_bound_fails_before_filtering(self, sample_operations: list) -> None:
        with pytest.raises(TimestampParseError):
            filter_operations(sample_operations, FilterOptions(until="nope", limit=0))

    def test_result_is_subsequence(self, sample_operations: list) -> None:
        options = FilterOptions(file_path="src", since="2025-09-18T10:30:00Z")
        result = filter_operations(sample_operations, options)
        assert _is_subsequence(result, sample_operations)

    def test_input_not_mutated(self, sample_operations: list) -> None:
        before = list(sample_operations)
        filter_operations(sample_operations, FilterOptions(file_path="helpers", limit=1))
        assert sample_operations == before


class TestGroupByFilePath:
    def test_groups_in_first_seen_order(self, sample_operations: list) -> None:
        groups = group_by_file_path(sample_operations)
        assert list(groups) == [
            "/Users/test/project/src/index.ts",
            "/Users/test/project/src/utils/helpers.ts",
            "<no-file>",
            "/Users/test/project/src/components/ui/Button.tsx",
        ]
        assert _ids(groups["/Users/test/project/src/utils/helpers.ts"]) == ["op-2", "op-3"]
