"""Conversation records and the stores that hold them."""

from threadline.history.records import (
    BlockContent,
    ContentBlock,
    ConversationRecord,
    TextContent,
    TranscriptEntry,
    parse_timestamp,
    parse_transcript,
    records_sorted_desc,
)
from threadline.history.store import (
    ConversationSearchResult,
    ConversationStore,
    InMemoryConversationStore,
    JsonlConversationStore,
)

__all__ = [
    "BlockContent",
    "ContentBlock",
    "ConversationRecord",
    "ConversationSearchResult",
    "ConversationStore",
    "InMemoryConversationStore",
    "JsonlConversationStore",
    "TextContent",
    "TranscriptEntry",
    "parse_timestamp",
    "parse_transcript",
    "records_sorted_desc",
]
