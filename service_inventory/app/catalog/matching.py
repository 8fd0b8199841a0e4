"""
Term normalization and the containment predicate shared with the catalog.
"""

import unicodedata
from typing import Optional


def remove_diacritics(text: str) -> str:
    """Strip combining marks so "Café" and "Cafe" search alike."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def normalize_term(term: Optional[str]) -> str:
    return remove_diacritics(term or "")


def is_blank(term: Optional[str]) -> bool:
    return term is None or not term.strip()


def contains(text: Optional[str], term: str) -> bool:
    """Case and accent insensitive substring test; None never matches."""
    if text is None:
        return False
    return normalize_term(term).casefold() in remove_diacritics(text).casefold()


def matches(item, term: str) -> bool:
    """True when any searchable text field of ``item`` contains ``term``."""
    return any(contains(text, term) for text in item.search_texts())
