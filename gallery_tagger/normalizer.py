"""
Canonical form for tag names.
"""

from typing import Optional

QUOTE_CHARS = "\"'#"


def normalize_tag(raw: Optional[str]) -> str:
    """Turn raw tag text into its canonical form.

    Surrounding whitespace and quote characters are stripped, internal
    whitespace runs (line breaks included) are joined with ``-`` and the
    result is lower-cased. Blank input yields ``""``, which callers treat
    as "discard".

    >>> normalize_tag("  San Francisco ")
    'san-francisco'
    >>> normalize_tag("#日落  \\n")
    '日落'
    """
    if raw is None:
        return ""

    trimmed = raw.strip().strip(QUOTE_CHARS)
    if not trimmed:
        return ""

    trimmed = trimmed.replace("\r", " ").replace("\n", " ")
    return "-".join(trimmed.split()).lower()
