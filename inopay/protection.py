"""
Protection Gate

Decides, before any rewriter runs, whether a file is off-limits.
Two independent signals:

  - the protection marker (``@inopay-core-protected``) appearing in the
    first 500 characters of the content
  - the path containing one of the whitelisted core-file substrings

A protected file is returned byte-identical by the dispatcher.
"""

from __future__ import annotations

from typing import Optional

from inopay.patterns import PROTECTION_HEADER_CHARS, PROTECTION_MARKER, WHITELIST


def is_protected(content: str) -> bool:
    """True if the protection marker sits in the file header."""
    return PROTECTION_MARKER in content[:PROTECTION_HEADER_CHARS]


def is_whitelisted(path: str) -> bool:
    normalized = path.replace("\\", "/")
    return any(entry in normalized for entry in WHITELIST)


def protection_reason(path: str, content: str) -> Optional[str]:
    """
    Audit entry for a protected file, or None if the file may be cleaned.

    The marker wins over the whitelist so the entry names the stronger signal.
    """
    if is_protected(content):
        return f"Fichier protégé (marqueur {PROTECTION_MARKER}): {path}"
    if is_whitelisted(path):
        return f"Fichier protégé (liste blanche): {path}"
    return None
