"""Assemble prior conversation history into one bounded context block."""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Iterator, Sequence

from loguru import logger

from threadline.config.schema import ContextConfig
from threadline.context.budget import BudgetAllocation, allocate_budget
from threadline.context.render import render_full, render_summary
from threadline.context.thread import ThreadStatus, detect_active_thread
from threadline.context.tiers import TieredRecords, partition_tiers
from threadline.context.timeline import Tier
from threadline.context.tokens import estimate_tokens
from threadline.history.records import ConversationRecord, parse_timestamp, records_sorted_desc
from threadline.history.store import ConversationStore
from threadline.prompts.history import HISTORY_NOTE, THREAD_CONTINUATION, THREAD_NEW

Renderer = Callable[[ConversationRecord, datetime, tzinfo | None], str]

# Recent tiers keep full transcripts; older ones are compressed to summaries.
TIER_RENDERERS: dict[Tier, Renderer] = {
    Tier.ACTIVE_THREAD: render_full,
    Tier.TODAY: render_full,
    Tier.YESTERDAY: render_summary,
    Tier.OLDER: render_summary,
}


@dataclass
class AssembledContext:
    """Assembled context plus how it was put together."""

    text: str = ""
    status: ThreadStatus = field(default_factory=ThreadStatus)
    tier_counts: dict[str, int] = field(default_factory=dict)
    allocation: BudgetAllocation = field(default_factory=BudgetAllocation)
    skipped: int = 0  # records dropped as malformed or unrenderable

    @property
    def is_empty(self) -> bool:
        return not self.text


def thread_status_tag(status: ThreadStatus) -> str:
    text = THREAD_CONTINUATION if status.is_continuation else THREAD_NEW
    return f"<thread-status>{text}</thread-status>"


def wrap_history(status: ThreadStatus, blocks: Sequence[str]) -> str:
    """Wrap rendered blocks in the outer history container."""
    body = "\n".join([thread_status_tag(status), *blocks])
    return f'<conversation-history note="{HISTORY_NOTE}">\n{body}\n</conversation-history>'


def _usable(records: Sequence[ConversationRecord]) -> tuple[list[ConversationRecord], int]:
    """Drop records whose end time cannot be parsed."""
    usable = []
    skipped = 0
    for record in records:
        try:
            parse_timestamp(record.ended_at)
        except ValueError:
            logger.warning(f"Skipping conversation {record.session_id}: bad ended_at {record.ended_at!r}")
            skipped += 1
            continue
        usable.append(record)
    return usable, skipped


def _rendered(
    tier: Tier,
    records: Sequence[ConversationRecord],
    now: datetime,
    tz: tzinfo | None,
    failed: list[str],
) -> Iterator[str]:
    """Render a tier lazily, skipping records that fail to render.

    Session IDs of skipped records are appended to *failed*.
    """
    render = TIER_RENDERERS[tier]
    for record in records:
        try:
            yield render(record, now, tz)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping conversation {record.session_id} ({tier.value}): {e}")
            failed.append(record.session_id)


def assemble_context(
    records: Sequence[ConversationRecord],
    now: datetime,
    config: ContextConfig | None = None,
) -> AssembledContext:
    """
    Build the conversation-history block for one requester.

    Args:
        records: The requester's records, newest first (not re-sorted).
        now: Reference time for thread detection and age labels.
        config: Context settings; defaults apply when omitted.

    Returns:
        AssembledContext whose ``text`` is empty when there is nothing to inject.
    """
    config = config or ContextConfig()
    if not records:
        return AssembledContext()

    if not records_sorted_desc(records):
        logger.warning("Conversation records are not sorted newest first; thread detection may be wrong")

    now = parse_timestamp(now)
    tz = config.tzinfo
    usable, skipped = _usable(records)

    status = detect_active_thread(usable, now, window=config.thread_window)
    tiers: TieredRecords = partition_tiers(
        usable, now, status, tz=tz, today_window=config.today_window,
    )

    render_failures: list[str] = []
    allocation = allocate_budget(
        [_rendered(tier, tier_records, now, tz, render_failures) for tier, tier_records in tiers.in_order()],
        max_chars=config.max_context_chars,
        truncation_floor=config.truncation_floor,
        head_ratio=config.head_ratio,
        tail_ratio=config.tail_ratio,
    )

    logger.debug(
        f"Context tiers {tiers.counts()}: {len(allocation.blocks)} blocks, "
        f"{allocation.used_chars}/{config.max_context_chars} chars"
        f"{' (truncated)' if allocation.truncated else ''}"
    )

    result = AssembledContext(
        status=status,
        tier_counts=tiers.counts(),
        allocation=allocation,
        skipped=skipped + len(usable) - len(tiers) + len(render_failures),
    )
    if allocation.blocks:
        result.text = wrap_history(status, allocation.blocks)
    return result


def build_conversation_context(
    records: Sequence[ConversationRecord],
    now: datetime,
    config: ContextConfig | None = None,
) -> str:
    """Context block for *records*, or "" when there is no history to inject."""
    return assemble_context(records, now, config).text


class ContextAssembler:
    """
    Reads a requester's history from a store and assembles their context.

    Holds no state between calls beyond its store and configuration; use
    ``reload_config()`` to swap settings.
    """

    def __init__(self, store: ConversationStore, config: ContextConfig | None = None):
        self.store = store
        self.config = config or ContextConfig()

    def reload_config(self, config: ContextConfig) -> None:
        """Replace the context settings used by subsequent calls."""
        self.config = config

    def assemble(self, requester_id: str, now: datetime | None = None) -> str:
        """Context block for *requester_id*, or "" if there is no history."""
        return self.assemble_detailed(requester_id, now).text

    def assemble_detailed(self, requester_id: str, now: datetime | None = None) -> AssembledContext:
        now = now or datetime.now().astimezone()
        records = self.store.get_records_for_requester(requester_id, now=now)
        result = assemble_context(records, now, self.config)
        if result.text:
            logger.debug(
                f"Assembled context for {requester_id}: {len(result.text)} chars "
                f"(~{estimate_tokens(result.text)} tokens)"
            )
        return result

    def thread_status(self, requester_id: str, now: datetime | None = None) -> ThreadStatus:
        """Thread status alone, without rendering anything."""
        now = now or datetime.now().astimezone()
        records = self.store.get_records_for_requester(requester_id, now=now)
        usable, _ = _usable(records)
        return detect_active_thread(usable, parse_timestamp(now), window=self.config.thread_window)
