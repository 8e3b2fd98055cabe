# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Field extraction for keyword-prefixed Kconfig lines."""


def get_field(line: str, prefix: str) -> str:
    """Return the text following the first occurrence of ``prefix``.

    Args:
        line: Source line, usually already stripped.
        prefix: Keyword to split on, e.g. ``"depends on"``.

    Returns:
        Remainder of the line with surrounding whitespace removed, or an empty
        string when ``prefix`` does not occur.
    """
    _, found, remainder = line.partition(prefix)
    if not found:
        return ""
    return remainder.strip()


def get_quoted_field(line: str, prefix: str) -> str:
    """Return the field after ``prefix`` with surrounding quotes removed."""
    return get_field(line, prefix).strip('"')
