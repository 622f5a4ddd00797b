"""Render conversation records as context blocks."""

from datetime import datetime, tzinfo
from typing import Sequence

from threadline.context.timeline import relative_label, to_local
from threadline.history.records import HUMAN, ConversationRecord, TranscriptEntry
from threadline.prompts.history import SUMMARY_PREFIX

_SPEAKER_TAGS = {HUMAN: "human"}
_ASSISTANT_TAG = "you"


def _entry_time(entry: TranscriptEntry, tz: tzinfo | None) -> str:
    """24-hour HH:MM of an entry, or "" when it has no usable timestamp."""
    if not entry.timestamp:
        return ""
    try:
        return to_local(entry.timestamp, tz).strftime("%H:%M")
    except ValueError:
        return ""


def _open_tag(record: ConversationRecord, now: datetime, tz: tzinfo | None, summary: bool) -> str:
    label = relative_label(record.ended_at, now, tz)
    attrs = f'timestamp="{record.started_at}" relative="{label}"'
    if summary:
        attrs += ' summary="true"'
    return f"<conversation {attrs}>"


def render_full(record: ConversationRecord, now: datetime, tz: tzinfo | None = None) -> str:
    """
    Render a record as a turn-by-turn transcript.

    Output::

        <conversation timestamp="..." relative="today">
        [human 14:02] hey
        [you 14:02] hi!
        </conversation>
    """
    lines = []
    for entry in record.entries():
        if not entry.is_dialogue:
            continue
        text = entry.text
        if not text.strip():
            continue
        speaker = _SPEAKER_TAGS.get(entry.role, _ASSISTANT_TAG)
        time = _entry_time(entry, tz)
        tag = f"{speaker} {time}" if time else speaker
        lines.append(f"[{tag}] {text}")

    body = "\n".join(lines)
    return f"{_open_tag(record, now, tz, summary=False)}\n{body}\n</conversation>"


def render_summary(record: ConversationRecord, now: datetime, tz: tzinfo | None = None) -> str:
    """Render a record as its one-line summary, marked ``summary="true"``."""
    summary = " ".join(record.summary.split())
    return (
        f"{_open_tag(record, now, tz, summary=True)}\n"
        f"{SUMMARY_PREFIX}{summary}\n"
        f"</conversation>"
    )


def render_transcript(entries: Sequence[TranscriptEntry]) -> str:
    """Plain-text dialogue dump, one paragraph per turn."""
    turns = []
    for entry in entries:
        if not entry.is_dialogue:
            continue
        text = entry.text.strip()
        if not text:
            continue
        speaker = "Human" if entry.role == HUMAN else "Assistant"
        turns.append(f"{speaker}: {text}")
    return "\n\n".join(turns)


def format_conversation(record: ConversationRecord, tz: tzinfo | None = None) -> str:
    """Header plus full transcript of one conversation, for direct lookup."""
    header = [
        f"=== Conversation: {record.session_id} ===",
        f"Started: {_display_time(record.started_at, tz)}",
        f"Ended: {_display_time(record.ended_at, tz)}",
        f"Messages: {record.message_count}",
        f"Summary: {record.summary}",
        "",
        "=== Transcript ===",
        "",
    ]
    return "\n".join(header) + render_transcript(record.entries())


def _display_time(value: str, tz: tzinfo | None) -> str:
    try:
        return to_local(value, tz).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value
