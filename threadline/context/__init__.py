"""Conversation context assembly: thread detection, tiering, rendering, budgeting."""

from threadline.context.assembler import (
    AssembledContext,
    ContextAssembler,
    assemble_context,
    build_conversation_context,
)
from threadline.context.budget import BudgetAllocation, allocate_budget, truncate_head_tail
from threadline.context.identity import IdentityLoader
from threadline.context.render import format_conversation, render_full, render_summary
from threadline.context.thread import ThreadStatus, detect_active_thread
from threadline.context.tiers import TieredRecords, partition_tiers
from threadline.context.timeline import Tier, age_bucket, relative_label

__all__ = [
    "AssembledContext",
    "BudgetAllocation",
    "ContextAssembler",
    "IdentityLoader",
    "ThreadStatus",
    "Tier",
    "TieredRecords",
    "age_bucket",
    "allocate_budget",
    "assemble_context",
    "build_conversation_context",
    "detect_active_thread",
    "format_conversation",
    "partition_tiers",
    "relative_label",
    "render_full",
    "render_summary",
    "truncate_head_tail",
]
