"""Filesystem path helpers."""

import re
from pathlib import Path

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def ensure_dir(path: Path) -> Path:
    """Create *path* (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Root data directory (~/.threadline)."""
    return Path.home() / ".threadline"


def get_store_path(path: str | None = None) -> Path:
    """Directory holding per-requester conversation files."""
    if path:
        return Path(path).expanduser()
    return get_data_path() / "conversations"


def get_identity_path(path: str | None = None) -> Path:
    """Directory holding identity markdown files."""
    if path:
        return Path(path).expanduser()
    return get_data_path() / "identity"


def safe_filename(name: str) -> str:
    """Replace characters that are unsafe in filenames with underscores."""
    return _UNSAFE_CHARS.sub("_", name).strip()
