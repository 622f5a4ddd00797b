"""Tests for active-thread detection."""

from datetime import datetime, timedelta, timezone

from threadline.context.thread import ThreadStatus, detect_active_thread
from threadline.history.records import ConversationRecord

NOW = datetime(2026, 2, 10, 15, 0, tzinfo=timezone.utc)


def _ended(session_id: str, minutes_ago: float) -> ConversationRecord:
    ended = NOW - timedelta(minutes=minutes_ago)
    return ConversationRecord(
        session_id=session_id,
        started_at=(ended - timedelta(minutes=5)).isoformat(),
        ended_at=ended.isoformat(),
    )


class TestDetectActiveThread:
    def test_no_records(self):
        status = detect_active_thread([], NOW)
        assert status == ThreadStatus()
        assert status.is_continuation is False
        assert status.session_ids == frozenset()

    def test_single_recent_record(self):
        status = detect_active_thread([_ended("a", 5)], NOW)
        assert status.is_continuation is True
        assert status.session_ids == {"a"}

    def test_stale_most_recent_means_new_conversation(self):
        status = detect_active_thread([_ended("a", 31), _ended("b", 35)], NOW)
        assert status.is_continuation is False
        assert status.session_ids == frozenset()

    def test_exactly_at_window_is_live(self):
        status = detect_active_thread([_ended("a", 30)], NOW)
        assert status.is_continuation is True

    def test_chain_breaks_at_large_gap(self):
        # most recent 2 min ago, then gaps of 10 and 40 minutes
        records = [_ended("a", 2), _ended("b", 12), _ended("c", 52)]
        status = detect_active_thread(records, NOW, window=timedelta(minutes=30))
        assert status.session_ids == {"a", "b"}

    def test_gap_measured_between_neighbours_not_from_now(self):
        # each gap is 25 min, so the chain reaches back 75 minutes
        records = [_ended("a", 0), _ended("b", 25), _ended("c", 50), _ended("d", 75)]
        status = detect_active_thread(records, NOW)
        assert status.session_ids == {"a", "b", "c", "d"}

    def test_walk_stops_at_first_gap(self):
        # c and d are close to each other but sit behind a 60-minute gap
        records = [_ended("a", 1), _ended("b", 61), _ended("c", 62), _ended("d", 63)]
        status = detect_active_thread(records, NOW)
        assert status.session_ids == {"a"}

    def test_deterministic(self):
        records = [_ended("a", 2), _ended("b", 12), _ended("c", 52)]
        first = detect_active_thread(records, NOW)
        second = detect_active_thread(records, NOW)
        assert first == second

    def test_membership(self):
        status = detect_active_thread([_ended("a", 2)], NOW)
        assert "a" in status
        assert "b" not in status
