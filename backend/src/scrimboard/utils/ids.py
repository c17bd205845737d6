"""Identifier generation."""

import uuid


def new_id(prefix: str = "") -> str:
    """Short random identifier, optionally prefixed (e.g. "t_3f9a...")."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"
