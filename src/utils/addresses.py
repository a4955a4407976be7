"""Recipient address helpers."""
from __future__ import annotations


def normalize_address(raw: str) -> str:
    """Reduce ``"Name" <user@domain>`` to ``user@domain``.

    Takes whatever sits between the first ``<`` and the last ``>``. Strings
    without a usable bracket pair come back unchanged. This is a heuristic for
    the well-formed addresses SES reports, not an RFC 5322 parser.
    """
    start = raw.find("<")
    end = raw.rfind(">")
    if start == -1 or end == -1 or end <= start:
        return raw
    return raw[start + 1:end].strip()
