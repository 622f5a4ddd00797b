"""Active-thread detection."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from threadline.history.records import ConversationRecord, parse_timestamp

DEFAULT_THREAD_WINDOW = timedelta(minutes=30)


@dataclass(frozen=True)
class ThreadStatus:
    """Whether the requester is mid-thread, and which sessions form the thread."""

    is_continuation: bool = False
    session_ids: frozenset[str] = field(default_factory=frozenset)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.session_ids


def detect_active_thread(
    records: Sequence[ConversationRecord],
    now: datetime,
    window: timedelta = DEFAULT_THREAD_WINDOW,
) -> ThreadStatus:
    """
    Find the chain of conversations the requester is still in.

    The newest record must have ended within *window* of *now*. The chain
    then extends backwards for as long as each gap between consecutive end
    times stays within *window*; the first larger gap ends it, even if
    older records sit close together.

    Args:
        records: Records sorted by end time, newest first.
        now: Reference time.
        window: Liveness window, also used as the maximum gap.

    Returns:
        ThreadStatus with the session IDs of the live chain.
    """
    if not records:
        return ThreadStatus()

    now = parse_timestamp(now)
    newest = records[0]
    cursor = newest.ended
    if now - cursor > window:
        return ThreadStatus()

    chain = {newest.session_id}
    for record in records[1:]:
        ended = record.ended
        if cursor - ended > window:
            break
        chain.add(record.session_id)
        cursor = ended

    return ThreadStatus(is_continuation=True, session_ids=frozenset(chain))
