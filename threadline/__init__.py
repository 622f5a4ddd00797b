"""threadline - conversation history context assembly for stateless LLM sessions."""

__version__ = "0.1.0"
__logo__ = "🧵"
