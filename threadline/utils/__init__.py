"""Utility helpers."""

from threadline.utils.helpers import (
    ensure_dir,
    get_data_path,
    get_identity_path,
    get_store_path,
    safe_filename,
)

__all__ = [
    "ensure_dir",
    "get_data_path",
    "get_identity_path",
    "get_store_path",
    "safe_filename",
]
