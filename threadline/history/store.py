"""Conversation stores: where assembled context gets its records from."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable

from loguru import logger

from threadline.history.records import ConversationRecord, parse_timestamp
from threadline.utils.helpers import ensure_dir, safe_filename

SEARCH_MIN_WORD_LENGTH = 3


@dataclass
class ConversationSearchResult:
    """A conversation matched by keyword search over summaries."""

    session_id: str
    summary: str
    ended_at: str
    message_count: int
    score: float  # fraction of query words found in the summary (0-1)


class ConversationStore(ABC):
    """
    Abstract source of conversation records.

    Contract for ``get_records_for_requester``: records come back sorted by
    ``ended_at`` descending, already filtered to the store's age window. The
    context engine relies on this order and never re-sorts.
    """

    def __init__(self, days_back: int = 7):
        self.days_back = days_back

    @abstractmethod
    def save(self, record: ConversationRecord) -> None:
        """Persist a finished conversation."""

    @abstractmethod
    def _iter_records(self, requester_id: str | None = None) -> Iterable[ConversationRecord]:
        """Yield stored records, optionally restricted to one requester."""

    def get_records_for_requester(
        self, requester_id: str, now: datetime | None = None
    ) -> list[ConversationRecord]:
        """
        Get a requester's recent conversations, newest first.

        Args:
            requester_id: Routing key of the requester (e.g. a chat ID).
            now: Reference time for the age filter. Defaults to the current time.

        Returns:
            Records sorted by end time, descending.
        """
        records = [
            r for r in self._iter_records(requester_id)
            if r.requester_id == requester_id
        ]
        return _recent_first(records, self.days_back, now)

    def get_conversation(self, session_id: str) -> ConversationRecord | None:
        """Look up a single conversation by session ID."""
        for record in self._iter_records():
            if record.session_id == session_id:
                return record
        return None

    def search_conversations(
        self,
        query: str,
        top_k: int = 5,
        days_back: int | None = None,
        now: datetime | None = None,
    ) -> list[ConversationSearchResult]:
        """
        Keyword search over conversation summaries.

        Each query word longer than two characters that appears in a summary
        counts toward its score; conversations without any match are dropped.
        """
        words = [w for w in query.lower().split() if len(w) >= SEARCH_MIN_WORD_LENGTH]
        if not words:
            return []

        records = _recent_first(self._iter_records(), days_back or 0, now)

        results = []
        for record in records:
            summary = record.summary.lower()
            matched = sum(1 for w in words if w in summary)
            if not matched:
                continue
            results.append(ConversationSearchResult(
                session_id=record.session_id,
                summary=record.summary,
                ended_at=record.ended_at,
                message_count=record.message_count,
                score=matched / len(words),
            ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]


class InMemoryConversationStore(ConversationStore):
    """Keeps records in a list; handy for embedding and tests."""

    def __init__(self, records: Iterable[ConversationRecord] = (), days_back: int = 7):
        super().__init__(days_back=days_back)
        self._records: list[ConversationRecord] = list(records)

    def save(self, record: ConversationRecord) -> None:
        self._records.append(record)

    def _iter_records(self, requester_id: str | None = None) -> Iterable[ConversationRecord]:
        return list(self._records)


class JsonlConversationStore(ConversationStore):
    """
    File-backed store: one JSONL file per requester.

    Directory layout:
        ~/.threadline/conversations/
        └── {requester}.jsonl   # one ConversationRecord per line
    """

    def __init__(self, path: Path, days_back: int = 7):
        super().__init__(days_back=days_back)
        self.path = ensure_dir(Path(path).expanduser())

    def save(self, record: ConversationRecord) -> None:
        if not record.requester_id:
            raise ValueError("record.requester_id is required to store a conversation")
        path = self._requester_path(record.requester_id)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        logger.info(f"Stored conversation {record.session_id} for {record.requester_id}")

    def list_requesters(self) -> list[str]:
        """Requester IDs that have at least one stored conversation."""
        requesters = set()
        for path in sorted(self.path.glob("*.jsonl")):
            for record in self._read_file(path):
                requesters.add(record.requester_id)
                break
        return sorted(requesters)

    def _requester_path(self, requester_id: str) -> Path:
        return self.path / f"{safe_filename(requester_id.replace(':', '_'))}.jsonl"

    def _iter_records(self, requester_id: str | None = None) -> Iterable[ConversationRecord]:
        if requester_id is not None:
            path = self._requester_path(requester_id)
            if path.exists():
                yield from self._read_file(path)
            return

        for path in sorted(self.path.glob("*.jsonl")):
            yield from self._read_file(path)

    def _read_file(self, path: Path) -> Iterable[ConversationRecord]:
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield ConversationRecord.from_dict(json.loads(line))
                except (json.JSONDecodeError, ValueError, TypeError) as e:
                    logger.warning(f"Skipping malformed record {path.name}:{lineno}: {e}")


def _recent_first(
    records: Iterable[ConversationRecord], days_back: int, now: datetime | None
) -> list[ConversationRecord]:
    """Drop records older than *days_back* days and sort newest first."""
    dated = []
    for record in records:
        try:
            dated.append((parse_timestamp(record.ended_at), record))
        except ValueError:
            logger.warning(f"Skipping conversation {record.session_id}: bad ended_at {record.ended_at!r}")

    if days_back > 0:
        reference = now or datetime.now()
        if reference.tzinfo is None:
            reference = reference.astimezone()
        cutoff = reference - timedelta(days=days_back)
        dated = [(ended, record) for ended, record in dated if ended >= cutoff]

    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [record for _, record in dated]
