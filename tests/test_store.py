"""Tests for conversation stores."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from threadline.history.records import ConversationRecord, records_sorted_desc
from threadline.history.store import (
    InMemoryConversationStore,
    JsonlConversationStore,
)

NOW = datetime(2026, 2, 10, 15, 0, tzinfo=timezone.utc)


def _record(session_id, ago, requester_id="telegram:42", summary=""):
    ended = NOW - ago
    return ConversationRecord(
        session_id=session_id,
        requester_id=requester_id,
        started_at=(ended - timedelta(minutes=10)).isoformat(),
        ended_at=ended.isoformat(),
        summary=summary or f"talked about {session_id}",
        message_count=4,
    )


@pytest.fixture
def store(tmp_path):
    return JsonlConversationStore(tmp_path / "conversations", days_back=7)


class TestJsonlConversationStore:
    def test_creates_directory(self, tmp_path):
        JsonlConversationStore(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()

    def test_save_and_load(self, store):
        record = _record("s1", timedelta(hours=1))
        store.save(record)
        assert store.get_records_for_requester("telegram:42", now=NOW) == [record]

    def test_one_file_per_requester(self, store):
        store.save(_record("s1", timedelta(hours=1)))
        store.save(_record("s2", timedelta(hours=1), requester_id="telegram:7"))
        names = sorted(p.name for p in store.path.glob("*.jsonl"))
        assert names == ["telegram_42.jsonl", "telegram_7.jsonl"]

    def test_records_newest_first(self, store):
        for session_id, hours in [("mid", 5), ("new", 1), ("old", 30)]:
            store.save(_record(session_id, timedelta(hours=hours)))
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["new", "mid", "old"]
        assert records_sorted_desc(records)

    def test_days_back_filter(self, store):
        store.save(_record("recent", timedelta(days=2)))
        store.save(_record("ancient", timedelta(days=30)))
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["recent"]

    def test_days_back_zero_keeps_everything(self, tmp_path):
        store = JsonlConversationStore(tmp_path, days_back=0)
        store.save(_record("ancient", timedelta(days=300)))
        assert len(store.get_records_for_requester("telegram:42", now=NOW)) == 1

    def test_unknown_requester(self, store):
        assert store.get_records_for_requester("nobody", now=NOW) == []

    def test_save_requires_requester(self, store):
        with pytest.raises(ValueError, match="requester_id"):
            store.save(_record("s1", timedelta(hours=1), requester_id=""))

    def test_malformed_lines_skipped(self, store):
        store.save(_record("good", timedelta(hours=1)))
        path = store.path / "telegram_42.jsonl"
        with open(path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write(json.dumps({"session_id": "no-times"}) + "\n")
            f.write(json.dumps({"session_id": "bad", "started_at": "x", "ended_at": "yesterday-ish"}) + "\n")
            f.write("\n")
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["good"]

    def test_transcript_list_round_trips(self, store):
        record = ConversationRecord(
            session_id="with-transcript",
            requester_id="telegram:42",
            started_at="2026-02-10T14:00:00+00:00",
            ended_at="2026-02-10T14:05:00+00:00",
            transcript=({"role": "user", "content": "hi"},),
        )
        store.save(record)
        loaded = store.get_conversation("with-transcript")
        assert loaded.entries()[0].text == "hi"

    def test_get_conversation(self, store):
        store.save(_record("s1", timedelta(hours=1)))
        store.save(_record("s2", timedelta(days=60), requester_id="cli:me"))
        assert store.get_conversation("s2").requester_id == "cli:me"
        assert store.get_conversation("missing") is None

    def test_list_requesters(self, store):
        store.save(_record("s1", timedelta(hours=1)))
        store.save(_record("s2", timedelta(hours=2), requester_id="cli:me"))
        assert store.list_requesters() == ["cli:me", "telegram:42"]


class TestInMemoryConversationStore:
    def test_filters_by_requester(self):
        store = InMemoryConversationStore([
            _record("mine", timedelta(hours=1)),
            _record("theirs", timedelta(hours=1), requester_id="other"),
        ])
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["mine"]

    def test_sorts_unordered_input(self):
        store = InMemoryConversationStore([
            _record("old", timedelta(hours=9)),
            _record("new", timedelta(minutes=5)),
        ])
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["new", "old"]

    def test_bad_end_time_dropped(self):
        bad = ConversationRecord(session_id="bad", started_at="", ended_at="nope", requester_id="telegram:42")
        store = InMemoryConversationStore([bad, _record("ok", timedelta(hours=1))])
        records = store.get_records_for_requester("telegram:42", now=NOW)
        assert [r.session_id for r in records] == ["ok"]

    def test_save(self):
        store = InMemoryConversationStore()
        store.save(_record("s1", timedelta(hours=1)))
        assert store.get_conversation("s1") is not None


class TestSearchConversations:
    @pytest.fixture
    def store(self):
        return InMemoryConversationStore([
            _record("trip", timedelta(days=1), summary="Planning a trip to Lisbon in March"),
            _record("bug", timedelta(days=2), summary="Debugging the deploy script"),
            _record("both", timedelta(days=20), summary="Deploy the trip planner website"),
        ])

    def test_scores_by_matched_words(self, store):
        results = store.search_conversations("trip deploy", now=NOW)
        assert [r.session_id for r in results] == ["both", "trip", "bug"]
        assert results[0].score == 1.0
        assert results[1].score == 0.5

    def test_no_match(self, store):
        assert store.search_conversations("kubernetes", now=NOW) == []

    def test_short_words_ignored(self, store):
        assert store.search_conversations("to a in", now=NOW) == []

    def test_case_insensitive(self, store):
        assert [r.session_id for r in store.search_conversations("LISBON", now=NOW)] == ["trip"]

    def test_top_k(self, store):
        assert len(store.search_conversations("trip deploy", top_k=1, now=NOW)) == 1

    def test_days_back(self, store):
        results = store.search_conversations("deploy", days_back=7, now=NOW)
        assert [r.session_id for r in results] == ["bug"]
