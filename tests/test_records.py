"""Tests for conversation records and transcript parsing."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from threadline.history.records import (
    ASSISTANT,
    HUMAN,
    BlockContent,
    ContentBlock,
    ConversationRecord,
    TextContent,
    TranscriptEntry,
    parse_content,
    parse_timestamp,
    parse_transcript,
    records_sorted_desc,
)


def _record(session_id, ended_at, **kwargs):
    return ConversationRecord(
        session_id=session_id,
        started_at=kwargs.pop("started_at", ended_at),
        ended_at=ended_at,
        **kwargs,
    )


class TestParseTimestamp:
    def test_offset_preserved(self):
        dt = parse_timestamp("2026-02-10T14:30:00+02:00")
        assert dt.utcoffset() == timedelta(hours=2)
        assert dt.hour == 14

    def test_trailing_z_is_utc(self):
        dt = parse_timestamp("2026-02-10T14:30:00.123Z")
        assert dt.utcoffset() == timedelta(0)
        assert dt.minute == 30

    def test_naive_gets_local_zone(self):
        dt = parse_timestamp("2026-02-10T14:30:00")
        assert dt.tzinfo is not None

    def test_datetime_passthrough(self):
        aware = datetime(2026, 2, 10, 14, 30, tzinfo=timezone.utc)
        assert parse_timestamp(aware) is aware

    @pytest.mark.parametrize("value", ["", "   ", "yesterday-ish", None, 12])
    def test_invalid_raises_value_error(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    @pytest.mark.parametrize("value", ["0001-01-01T00:00:00+05:00", "9999-12-31T23:30:00-05:00"])
    def test_out_of_range_raises_value_error(self, value):
        with pytest.raises(ValueError, match="out of range"):
            parse_timestamp(value)


class TestParseContent:
    def test_string_becomes_text_content(self):
        content = parse_content("hello")
        assert isinstance(content, TextContent)
        assert content.extract_text() == "hello"

    def test_list_becomes_block_content(self):
        content = parse_content([
            {"type": "text", "text": "first"},
            {"type": "tool_use", "name": "Read", "input": {}},
            {"type": "text", "text": "second"},
        ])
        assert isinstance(content, BlockContent)
        assert content.extract_text() == "first\nsecond"

    def test_only_text_blocks_extracted(self):
        content = BlockContent((
            ContentBlock(type="tool_result", text="ignored"),
            ContentBlock(type="image"),
        ))
        assert content.extract_text() == ""

    def test_non_dict_blocks_skipped(self):
        content = parse_content(["oops", {"type": "text", "text": "kept"}])
        assert content.extract_text() == "kept"

    def test_missing_content_is_empty_text(self):
        assert parse_content(None).extract_text() == ""


class TestTranscriptEntry:
    def test_session_log_layout(self):
        entry = TranscriptEntry.from_dict({
            "type": "user",
            "timestamp": "2026-02-10T14:02:00Z",
            "message": {"role": "user", "content": "hey"},
        })
        assert entry.role == HUMAN
        assert entry.text == "hey"
        assert entry.timestamp == "2026-02-10T14:02:00Z"
        assert entry.is_dialogue

    def test_flat_layout(self):
        entry = TranscriptEntry.from_dict({"role": "assistant", "content": "hi"})
        assert entry.role == ASSISTANT
        assert entry.text == "hi"
        assert entry.timestamp is None

    def test_other_roles_are_not_dialogue(self):
        entry = TranscriptEntry.from_dict({"type": "system", "content": "booted"})
        assert not entry.is_dialogue


class TestParseTranscript:
    def test_jsonl_string(self):
        text = "\n".join([
            json.dumps({"type": "user", "message": {"content": "a"}}),
            json.dumps({"type": "assistant", "message": {"content": "b"}}),
        ])
        entries = parse_transcript(text)
        assert [e.text for e in entries] == ["a", "b"]

    def test_bad_lines_skipped(self):
        text = "\n".join([
            json.dumps({"type": "user", "message": {"content": "a"}}),
            "{not json",
            "",
            "42",
            json.dumps({"type": "assistant", "message": {"content": "b"}}),
        ])
        entries = parse_transcript(text)
        assert [e.role for e in entries] == [HUMAN, ASSISTANT]

    def test_decoded_list(self):
        entries = parse_transcript([{"role": "user", "content": "x"}, "junk"])
        assert len(entries) == 1

    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty(self, value):
        assert parse_transcript(value) == []


class TestConversationRecord:
    def test_from_dict_round_trip_fields(self):
        data = {
            "session_id": "s1",
            "requester_id": "chat:1",
            "started_at": "2026-02-10T14:00:00Z",
            "ended_at": "2026-02-10T14:10:00Z",
            "summary": "Talked about tea",
            "message_count": 4,
            "transcript": [{"role": "user", "content": "tea?"}],
        }
        record = ConversationRecord.from_dict(data)
        assert record.session_id == "s1"
        assert record.requester_id == "chat:1"
        assert record.message_count == 4
        assert record.entries()[0].text == "tea?"
        assert record.to_dict()["transcript"] == data["transcript"]

    def test_from_dict_missing_field(self):
        with pytest.raises(ValueError, match="ended_at"):
            ConversationRecord.from_dict({"session_id": "s1", "started_at": "2026-02-10T14:00:00Z"})

    def test_from_dict_bad_end_time(self):
        with pytest.raises(ValueError):
            ConversationRecord.from_dict({
                "session_id": "s1",
                "started_at": "2026-02-10T14:00:00Z",
                "ended_at": "not a time",
            })

    def test_from_dict_bad_transcript_type(self):
        with pytest.raises(ValueError):
            ConversationRecord.from_dict({
                "session_id": "s1",
                "started_at": "2026-02-10T14:00:00Z",
                "ended_at": "2026-02-10T14:10:00Z",
                "transcript": 12,
            })

    def test_datetime_values_serialised(self):
        ended = datetime(2026, 2, 10, 14, 10, tzinfo=timezone.utc)
        record = ConversationRecord.from_dict({
            "session_id": "s1", "started_at": ended, "ended_at": ended,
        })
        assert record.ended == ended


class TestRecordsSortedDesc:
    def test_descending(self):
        records = [
            _record("c", "2026-02-10T14:00:00Z"),
            _record("b", "2026-02-10T13:00:00Z"),
            _record("a", "2026-02-09T13:00:00Z"),
        ]
        assert records_sorted_desc(records) is True

    def test_ascending_detected(self):
        records = [
            _record("a", "2026-02-09T13:00:00Z"),
            _record("b", "2026-02-10T13:00:00Z"),
        ]
        assert records_sorted_desc(records) is False

    def test_unparseable_ignored(self):
        records = [
            _record("b", "2026-02-10T13:00:00Z"),
            _record("x", "garbage"),
            _record("a", "2026-02-09T13:00:00Z"),
        ]
        assert records_sorted_desc(records) is True

    def test_empty(self):
        assert records_sorted_desc([]) is True
