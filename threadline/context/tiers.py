"""Partition conversation records into priority tiers."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Sequence

from loguru import logger

from threadline.context.thread import ThreadStatus
from threadline.context.timeline import DEFAULT_TODAY_WINDOW, TIER_ORDER, Tier, age_bucket
from threadline.history.records import ConversationRecord


@dataclass
class TieredRecords:
    """Records grouped by tier, each list in rendering order."""

    active_thread: list[ConversationRecord] = field(default_factory=list)
    today: list[ConversationRecord] = field(default_factory=list)
    yesterday: list[ConversationRecord] = field(default_factory=list)
    older: list[ConversationRecord] = field(default_factory=list)

    def get(self, tier: Tier) -> list[ConversationRecord]:
        return getattr(self, tier.value)

    def in_order(self) -> list[tuple[Tier, list[ConversationRecord]]]:
        """(tier, records) pairs in fill priority order."""
        return [(tier, self.get(tier)) for tier in TIER_ORDER]

    def counts(self) -> dict[str, int]:
        return {tier.value: len(self.get(tier)) for tier in TIER_ORDER}

    def __len__(self) -> int:
        return sum(len(self.get(tier)) for tier in TIER_ORDER)


def partition_tiers(
    records: Sequence[ConversationRecord],
    now: datetime,
    status: ThreadStatus,
    tz: tzinfo | None = None,
    today_window: timedelta = DEFAULT_TODAY_WINDOW,
) -> TieredRecords:
    """
    Assign every record to exactly one tier.

    Thread membership wins over age. The active thread is returned oldest
    first so it reads chronologically; the other tiers keep input order
    (newest first). Records whose timestamps cannot be classified are
    skipped.
    """
    tiers = TieredRecords()

    for record in records:
        if record.session_id in status:
            tiers.active_thread.append(record)
            continue
        try:
            tier = age_bucket(record.ended_at, now, tz=tz, today_window=today_window)
        except ValueError as e:
            logger.warning(f"Skipping conversation {record.session_id}: {e}")
            continue
        tiers.get(tier).append(record)

    tiers.active_thread.reverse()
    return tiers
