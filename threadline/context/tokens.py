"""Approximate token estimation for injected context."""

CHARS_PER_TOKEN = 4  # Cross-model estimate (EN text/code/JSON)


def estimate_tokens(text: str) -> int:
    """Estimate token count from character count."""
    return len(text) // CHARS_PER_TOKEN


def chars_for_tokens(tokens: int) -> int:
    """Character budget that corresponds to roughly *tokens* tokens."""
    return tokens * CHARS_PER_TOKEN
