"""Fill a character budget with rendered blocks, tier by tier."""

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from threadline.prompts.history import TRUNCATION_MARKER

DEFAULT_MAX_CHARS = 80_000
TRUNCATION_FLOOR = 200  # don't truncate into less remaining budget than this
HEAD_RATIO = 0.7
TAIL_RATIO = 0.2


@dataclass
class BudgetAllocation:
    """Outcome of one budget fill."""

    blocks: list[str] = field(default_factory=list)
    used_chars: int = 0
    truncated: bool = False
    dropped: int = 0  # blocks looked at but left out

    @property
    def text_chars(self) -> int:
        """Characters actually emitted (at most ``used_chars``)."""
        return sum(len(b) for b in self.blocks)


def truncate_head_tail(
    block: str,
    budget: int,
    head_ratio: float = HEAD_RATIO,
    tail_ratio: float = TAIL_RATIO,
    marker: str = TRUNCATION_MARKER,
) -> str:
    """
    Cut *block* down to at most *budget* chars, keeping both ends.

    The head gets ``head_ratio`` of the budget and the tail ``tail_ratio``;
    they are joined by *marker*. Budgets too small for the marker get a
    plain head cut.
    """
    if len(block) <= budget:
        return block
    if budget <= len(marker):
        return block[:budget]

    head_chars = int(budget * head_ratio)
    tail_chars = int(budget * tail_ratio)
    overflow = head_chars + len(marker) + tail_chars - budget
    if overflow > 0:
        tail_chars = max(0, tail_chars - overflow)
        head_chars = min(head_chars, budget - len(marker) - tail_chars)

    head = block[:head_chars]
    tail = block[len(block) - tail_chars:] if tail_chars else ""
    return head + marker + tail


def allocate_budget(
    tiers: Sequence[Iterable[str]],
    max_chars: int = DEFAULT_MAX_CHARS,
    truncation_floor: int = TRUNCATION_FLOOR,
    head_ratio: float = HEAD_RATIO,
    tail_ratio: float = TAIL_RATIO,
) -> BudgetAllocation:
    """
    Append blocks tier by tier until the budget runs out.

    Tiers are consumed in the given order. A block that fits is appended.
    A block that does not fit:

    - in the first tier, with more than *truncation_floor* chars left, is
      head/tail truncated into the remaining budget, which is then spent
      in full and allocation ends;
    - otherwise abandons its tier, and allocation moves on to the next tier
      with whatever budget is left.

    Tiers may be lazy iterables; a tier is only consumed up to its first
    miss.

    Args:
        tiers: Rendered blocks per tier, highest priority first.
        max_chars: Total character budget.
        truncation_floor: Remaining budget required before truncating.
        head_ratio: Share of remaining budget kept from the block head.
        tail_ratio: Share of remaining budget kept from the block tail.

    Returns:
        The allocation, blocks in output order.
    """
    result = BudgetAllocation()

    for index, blocks in enumerate(tiers):
        if result.used_chars >= max_chars:
            break

        for block in blocks:
            if result.used_chars + len(block) <= max_chars:
                result.blocks.append(block)
                result.used_chars += len(block)
                continue

            remaining = max_chars - result.used_chars
            if index == 0 and remaining > truncation_floor:
                result.blocks.append(
                    truncate_head_tail(block, remaining, head_ratio, tail_ratio)
                )
                result.used_chars = max_chars
                result.truncated = True
                return result

            result.dropped += 1
            break

    return result
