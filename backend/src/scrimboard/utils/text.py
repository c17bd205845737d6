"""Team-name cleaning and normalization.

All name comparisons in the codebase go through this module so roster
import and screenshot reconciliation agree on what "the same name" means.
"""

import re

# "1. ", "2) ", "#3 - ", "4: ", "5-" ...
LEADING_NUMBERING = re.compile(r"^#?\d+[.):\-\s]+\s*")

# Zero-width space/joiners, BOM and word joiner that survive copy-paste
INVISIBLE_CHARS = re.compile("[\u200B-\u200D\uFEFF\u2060]")

NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


def clean_team_name(raw: str) -> str:
    """Strip list numbering and invisible characters from a pasted name.

    Examples:
        >>> clean_team_name("1. Alpha")
        'Alpha'
        >>> clean_team_name("#3 - Gamma")
        'Gamma'
        >>> clean_team_name("Beta\\u2060")
        'Beta'
    """
    name = raw.strip()
    name = LEADING_NUMBERING.sub("", name)
    name = INVISIBLE_CHARS.sub("", name)
    return name.strip()


def normalize_name(name: str) -> str:
    """Reduce a name to lowercase ASCII letters and digits for matching."""
    return NON_ALPHANUMERIC.sub("", name).lower()


def sanitize_filename(name: str) -> str:
    """Keep letters and digits, collapse everything else into single underscores."""
    return re.sub(r"_+", "_", re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE))
