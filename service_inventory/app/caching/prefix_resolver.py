"""
Find the cached search whose term is the tightest prefix of a new term.
"""

from typing import Mapping, Optional, Tuple, TypeVar

EntryT = TypeVar("EntryT")


def find_reusable_entry(term: str, entries: Mapping[str, EntryT]) -> Optional[Tuple[str, EntryT]]:
    """Return ``(key, entry)`` for the longest non-empty key that prefixes ``term`` case-insensitively.

    Keys of equal length are resolved to the lexicographically smallest one.
    Returns None when no key qualifies.
    """
    folded_term = term.casefold()
    best_key: Optional[str] = None

    for key in entries:
        if not key or not folded_term.startswith(key.casefold()):
            continue
        if (
            best_key is None
            or len(key) > len(best_key)
            or (len(key) == len(best_key) and key < best_key)
        ):
            best_key = key

    if best_key is None:
        return None
    return best_key, entries[best_key]
