"""Identity files injected ahead of conversation history."""

from pathlib import Path
from typing import Sequence

from loguru import logger

from threadline.config.schema import DEFAULT_IDENTITY_FILES


class IdentityLoader:
    """
    Loads identity markdown files and caches the rendered result.

    Each file is wrapped in a tag named after it::

        <SOUL.md>
        ...
        </SOUL.md>

    The cache lives on the instance. Call ``invalidate()`` after the files
    change on disk, or ``reload()`` to invalidate and read them again.
    """

    def __init__(self, directory: Path, files: Sequence[str] = DEFAULT_IDENTITY_FILES):
        self.directory = Path(directory).expanduser()
        self.files = list(files)
        self._cache: str | None = None

    def load(self) -> str:
        """Return identity content, reading from disk on first use."""
        if self._cache is None:
            self._cache = self._read()
        return self._cache

    def invalidate(self) -> None:
        """Drop cached content so the next ``load()`` reads from disk."""
        self._cache = None

    def reload(self) -> str:
        """Invalidate and return fresh content."""
        self.invalidate()
        return self.load()

    @property
    def is_cached(self) -> bool:
        return self._cache is not None

    def _read(self) -> str:
        parts = []
        for filename in self.files:
            path = self.directory / filename
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable identity file {path}: {e}")
                continue
            parts.append(f"<{filename}>\n{content}\n</{filename}>")
        return "\n\n".join(parts)
