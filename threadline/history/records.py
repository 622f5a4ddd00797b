"""Conversation records and transcript parsing."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from loguru import logger

HUMAN = "human"
ASSISTANT = "assistant"

_ROLE_ALIASES = {
    "user": HUMAN,
    "human": HUMAN,
    "assistant": ASSISTANT,
}


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing ``Z`` is accepted. Naive values are taken as local time.

    Raises:
        ValueError: If the value is not a valid timestamp, or lies so close
            to the ends of the datetime range that it cannot be moved to UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    try:
        if dt.tzinfo is None:
            dt = dt.astimezone()
        dt.astimezone(timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e
    return dt


# ── transcript content ──────────────────────────────────────────


@dataclass(frozen=True)
class TextContent:
    """Entry content given as a plain string."""

    text: str

    def extract_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ContentBlock:
    """One typed block of a multi-part message."""

    type: str
    text: str = ""


@dataclass(frozen=True)
class BlockContent:
    """Entry content given as a sequence of typed blocks.

    Only ``text`` blocks carry readable content; tool calls, tool results
    and images are ignored.
    """

    blocks: tuple[ContentBlock, ...] = ()

    def extract_text(self) -> str:
        return "\n".join(b.text for b in self.blocks if b.type == "text" and b.text)


Content = TextContent | BlockContent


def parse_content(raw: Any) -> Content:
    """Resolve raw message content into one of the two content shapes."""
    if isinstance(raw, str):
        return TextContent(raw)
    if isinstance(raw, list):
        blocks = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            text = item.get("text")
            blocks.append(ContentBlock(
                type=str(item.get("type", "")),
                text=text if isinstance(text, str) else "",
            ))
        return BlockContent(tuple(blocks))
    return TextContent("")


@dataclass(frozen=True)
class TranscriptEntry:
    """A single turn of a stored conversation."""

    role: str  # "human" | "assistant" | anything else (ignored by renderers)
    content: Content
    timestamp: str | None = None

    @property
    def text(self) -> str:
        return self.content.extract_text()

    @property
    def is_dialogue(self) -> bool:
        return self.role in (HUMAN, ASSISTANT)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptEntry":
        """Build an entry from a stored transcript line.

        Accepts both the session-log layout
        (``{"type": "user", "message": {"role": ..., "content": ...}}``) and a
        flat ``{"role": ..., "content": ...}`` layout.
        """
        message = data.get("message")
        if isinstance(message, dict):
            raw_role = data.get("type") or message.get("role") or ""
            raw_content = message.get("content")
        else:
            raw_role = data.get("role") or data.get("type") or ""
            raw_content = data.get("content")

        raw_role = str(raw_role).lower()
        timestamp = data.get("timestamp")
        return cls(
            role=_ROLE_ALIASES.get(raw_role, raw_role),
            content=parse_content(raw_content),
            timestamp=timestamp if isinstance(timestamp, str) and timestamp else None,
        )


def parse_transcript(transcript: str | Sequence[dict[str, Any]] | None) -> list[TranscriptEntry]:
    """Parse a stored transcript into entries.

    The transcript may be a JSONL string or an already-decoded list of
    dicts. Lines that fail to decode are skipped.
    """
    if not transcript:
        return []

    if isinstance(transcript, str):
        raw_entries: Iterable[Any] = _decode_jsonl(transcript)
    else:
        raw_entries = transcript

    entries = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            continue
        entries.append(TranscriptEntry.from_dict(raw))
    return entries


def _decode_jsonl(text: str) -> list[Any]:
    decoded = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            decoded.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable transcript line {lineno}")
    return decoded


# ── records ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConversationRecord:
    """
    A finished conversation as persisted by the store.

    Timestamps are kept as stored (ISO-8601 strings) and parsed on demand,
    so one bad value only affects the record that carries it.
    """

    session_id: str
    started_at: str
    ended_at: str
    transcript: str | tuple[dict[str, Any], ...] = ""
    summary: str = ""
    message_count: int = 0
    requester_id: str = ""

    @property
    def started(self) -> datetime:
        return parse_timestamp(self.started_at)

    @property
    def ended(self) -> datetime:
        return parse_timestamp(self.ended_at)

    def entries(self) -> list[TranscriptEntry]:
        """Parsed transcript entries."""
        return parse_transcript(self.transcript)

    def to_dict(self) -> dict[str, Any]:
        transcript = self.transcript if isinstance(self.transcript, str) else list(self.transcript)
        return {
            "session_id": self.session_id,
            "requester_id": self.requester_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "summary": self.summary,
            "message_count": self.message_count,
            "transcript": transcript,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationRecord":
        """Build a record from a stored dict.

        Raises:
            ValueError: If a required field is missing or the end time
                cannot be parsed.
        """
        try:
            session_id = str(data["session_id"])
            started_at = _timestamp_str(data["started_at"])
            ended_at = _timestamp_str(data["ended_at"])
        except KeyError as e:
            raise ValueError(f"Missing field {e.args[0]!r}") from e

        parse_timestamp(ended_at)

        transcript = data.get("transcript") or ""
        if isinstance(transcript, list):
            transcript = tuple(transcript)
        elif not isinstance(transcript, str):
            raise ValueError("transcript must be a string or a list of entries")

        return cls(
            session_id=session_id,
            started_at=started_at,
            ended_at=ended_at,
            transcript=transcript,
            summary=str(data.get("summary") or ""),
            message_count=int(data.get("message_count") or 0),
            requester_id=str(data.get("requester_id") or ""),
        )


def _timestamp_str(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def records_sorted_desc(records: Sequence[ConversationRecord]) -> bool:
    """Check that records are ordered by end time, newest first.

    Records with unparseable end times are ignored for the comparison.
    """
    previous: datetime | None = None
    for record in records:
        try:
            ended = record.ended
        except ValueError:
            continue
        if previous is not None and ended > previous:
            return False
        previous = ended
    return True
