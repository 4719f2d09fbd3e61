"""Tests for the merge of historical and recent activities."""

from activity_proxy.core.models import effective_time, record_status, ActivityStatus
from activity_proxy.sync.merge import merge_activities

T0 = "2024-06-01T08:00:00Z"
T1 = "2024-06-01T09:00:00Z"
T2 = "2024-06-01T10:00:00Z"
T3 = "2024-06-01T11:00:00Z"


class TestMergeActivities:
    """Test merge_activities."""

    def test_empty_inputs(self):
        assert merge_activities([], []) == []

    def test_empty_historical_returns_recent_sorted(self, make_record):
        a = make_record("a", start=T1, status="OK")
        b = make_record("b", start=T2, status="FAILED")

        merged = merge_activities([], [a, b])

        assert [r["id"] for r in merged] == ["b", "a"]
        statuses = [record_status(r) for r in merged]
        assert statuses.count(ActivityStatus.OK) == 1
        assert statuses.count(ActivityStatus.FAILED) == 1

    def test_empty_recent_returns_historical(self, make_record):
        historical = [make_record("a", start=T1), make_record("b", start=T2)]

        merged = merge_activities(historical, [])

        assert [r["id"] for r in merged] == ["b", "a"]

    def test_recent_wins_on_conflict(self, make_record):
        historical = [make_record("a", end=T0, status="OK")]
        recent = [make_record("a", end=T1, status="FAILED")]

        merged = merge_activities(historical, recent)

        assert len(merged) == 1
        assert merged[0]["result"]["status"] == "FAILED"
        assert merged[0]["endTime"] == T1

    def test_recent_wins_for_every_shared_id(self, make_record):
        historical = [make_record(f"id-{i}", start=T1, status="OK", version="old") for i in range(5)]
        recent = [make_record(f"id-{i}", start=T1, status="RUNNING", version="new") for i in range(0, 5, 2)]

        merged = {r["id"]: r for r in merge_activities(historical, recent)}

        assert len(merged) == 5
        for i in range(5):
            expected = "new" if i % 2 == 0 else "old"
            assert merged[f"id-{i}"]["version"] == expected

    def test_conflicting_record_is_positioned_by_recent_time(self, make_record):
        historical = [
            make_record("a", end=T0),
            make_record("b", end=T2),
        ]
        recent = [make_record("a", end=T3)]

        merged = merge_activities(historical, recent)

        assert [r["id"] for r in merged] == ["a", "b"]

    def test_records_without_id_are_dropped(self, make_record):
        historical = [{"startTime": T1, "result": {"status": "OK"}}, make_record("a", start=T1)]
        recent = [{"id": "", "startTime": T2}, make_record("b", start=T2)]

        merged = merge_activities(historical, recent)

        assert [r["id"] for r in merged] == ["b", "a"]

    def test_sorted_descending_by_effective_time(self, make_record):
        records = [
            make_record("start-only", start=T1),
            make_record("ended", start=T0, end=T3),
            make_record("mid", start=T0, end=T2),
        ]

        merged = merge_activities([], records)

        assert [r["id"] for r in merged] == ["ended", "mid", "start-only"]
        times = [effective_time(r) for r in merged]
        assert times == sorted(times, reverse=True)

    def test_missing_timestamps_sort_last_in_stable_order(self, make_record):
        records = [
            make_record("undated-1"),
            make_record("dated", start=T1),
            make_record("undated-2", start="not-a-date"),
            make_record("undated-3"),
        ]

        merged = merge_activities([], records)

        assert [r["id"] for r in merged] == ["dated", "undated-1", "undated-2", "undated-3"]

    def test_merge_with_empty_recent_is_idempotent(self, make_record):
        historical = [
            make_record("a", start=T1),
            make_record("b", end=T2),
            make_record("c"),
            make_record("d", start=T1),
        ]
        recent = [make_record("b", end=T3, status="FAILED"), make_record("e", start=T0)]

        direct = merge_activities(historical, recent)
        via_empty = merge_activities(merge_activities(historical, []), recent)

        assert direct == via_empty

    def test_inputs_are_not_modified(self, make_record):
        historical = [make_record("a", start=T1)]
        recent = [make_record("a", start=T2), make_record("b", start=T0)]
        historical_copy = list(historical)
        recent_copy = list(recent)

        merge_activities(historical, recent)

        assert historical == historical_copy
        assert recent == recent_copy

    def test_fields_are_preserved(self, make_record):
        record = make_record("a", start=T1, host={"name": "server-01"},
                             stats={"bytesTransferred": 2048}, classType="JOB_GROUP")

        merged = merge_activities([record], [])

        assert merged[0] == record
