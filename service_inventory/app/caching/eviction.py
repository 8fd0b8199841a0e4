"""
Bounded cache maps: drop the oldest entries once a scope holds too many.
"""

from datetime import datetime
from typing import Dict, List, Protocol, Tuple, TypeVar


class _Timestamped(Protocol):
    created_at: datetime


EntryT = TypeVar("EntryT", bound=_Timestamped)


def insert_entry(
    entries: Dict[str, EntryT],
    key: str,
    entry: EntryT,
    ignore_case: bool = True,
) -> Dict[str, EntryT]:
    """Return a copy of ``entries`` with ``entry`` appended under ``key``.

    An existing key equal to ``key`` (ignoring case unless ``ignore_case`` is
    False) is replaced, and the new entry always lands last in insertion order.
    """
    if ignore_case:
        folded = key.casefold()
        updated = {k: v for k, v in entries.items() if k.casefold() != folded}
    else:
        updated = {k: v for k, v in entries.items() if k != key}
    updated[key] = entry
    return updated


def enforce_limit(entries: Dict[str, EntryT], max_entries: int) -> Tuple[Dict[str, EntryT], List[str]]:
    """Return ``(kept, evicted_keys)`` with at most ``max_entries`` entries kept.

    Victims are the entries with the smallest ``created_at``; equal timestamps
    evict in insertion order.
    """
    if max_entries < 0:
        raise ValueError("max_entries must not be negative")

    excess = len(entries) - max_entries
    if excess <= 0:
        return dict(entries), []

    ranked = sorted(
        enumerate(entries.items()),
        key=lambda indexed: (indexed[1][1].created_at, indexed[0]),
    )
    evicted = [key for _, (key, _) in ranked[:excess]]
    victims = set(evicted)
    kept = {k: v for k, v in entries.items() if k not in victims}
    return kept, evicted
