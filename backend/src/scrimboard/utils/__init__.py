"""Utility modules for scrimboard."""

from scrimboard.utils.ids import new_id
from scrimboard.utils.text import (
    INVISIBLE_CHARS,
    LEADING_NUMBERING,
    clean_team_name,
    normalize_name,
    sanitize_filename,
)

__all__ = [
    "INVISIBLE_CHARS",
    "LEADING_NUMBERING",
    "clean_team_name",
    "new_id",
    "normalize_name",
    "sanitize_filename",
]
