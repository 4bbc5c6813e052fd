"""Normalization functions for interview title parsing and member lookup.

All functions accept str | None and return str | None unless noted.
"""

from __future__ import annotations

import re

HONORIFIC = "さん"

# Ordinary and full-width (U+3000) spaces only; other whitespace is kept.
_SPACES_RE = re.compile("[ 　]")


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: strip_spaces
# ---------------------------------------------------------------------------

def strip_spaces(value: str | None) -> str | None:
    """Remove every ordinary and full-width space, anywhere in the string.

    >>> strip_spaces("田中　太郎")
    '田中太郎'
    """
    if value is None:
        return None
    return _SPACES_RE.sub("", value)


# ---------------------------------------------------------------------------
# Rule 3: strip_honorific
# ---------------------------------------------------------------------------

def strip_honorific(value: str | None) -> str | None:
    """Drop one trailing さん if present. No other honorific is recognized."""
    if value is None:
        return None
    if value.endswith(HONORIFIC):
        return value[: -len(HONORIFIC)]
    return value


# ---------------------------------------------------------------------------
# Rule 4: normalize_member_name  (directory key)
# ---------------------------------------------------------------------------

def normalize_member_name(value: str | None) -> str | None:
    """Directory lookup key: spaces removed, empty result becomes None."""
    v = strip_spaces(value)
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 5: normalize_page_id
# ---------------------------------------------------------------------------

def normalize_page_id(value: str | None) -> str | None:
    """Canonical page id for equality checks.

    The API returns ids both with and without dashes depending on the
    endpoint, so comparisons drop dashes and lower-case.
    """
    v = trim(value)
    if v is None:
        return None
    return v.replace("-", "").lower()
