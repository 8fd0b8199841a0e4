"""
Serialized forms of cache maps and their entries.

A map is stored as one JSON envelope::

    {"version": 1, "entityType": "product",
     "entries": {"Lap": {"term": "Lap", "snapshot": [...], "createdAt": "...", ...}}}

Entry order in ``entries`` is insertion order. Readers tolerate any casing of
field names, so payloads written by other instances or versions still decode.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shared.errors import CacheCorruptError

from ..domain.base import CaseInsensitiveModel

PAYLOAD_VERSION = 1

ItemT = TypeVar("ItemT")
EntryT = TypeVar("EntryT")
ModelT = TypeVar("ModelT", bound=BaseModel)


class SnapshotSource(str, Enum):
    CATALOG = "catalog"
    DERIVED = "derived"


class SearchCacheEntry(CaseInsensitiveModel, Generic[ItemT]):
    """Results remembered for one search term."""

    term: str
    snapshot: List[ItemT] = Field(default_factory=list)
    created_at: datetime
    source: SnapshotSource = SnapshotSource.CATALOG
    # Window and total of the catalog response, only for catalog-sourced entries
    page: Optional[int] = None
    page_size: Optional[int] = None
    total_count: Optional[int] = None


class QueryCacheEntry(CaseInsensitiveModel, Generic[ItemT]):
    """Result remembered for one exact parameter tuple."""

    params: str
    payload: ItemT
    created_at: datetime


class CacheEnvelope(CaseInsensitiveModel, Generic[EntryT]):
    version: int = PAYLOAD_VERSION
    entity_type: Optional[str] = None
    entries: Dict[str, EntryT] = Field(default_factory=dict)


def encode_entries(entries: Dict[str, BaseModel], entity_type: Optional[str] = None) -> bytes:
    """Serialize an ordered entry map into one blob."""
    body = {
        "version": PAYLOAD_VERSION,
        "entityType": entity_type,
        "entries": {
            key: entry.model_dump(mode="json", by_alias=True)
            for key, entry in entries.items()
        },
    }
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


def decode_entries(raw: bytes, entry_model: Type[ModelT]) -> Dict[str, ModelT]:
    """Deserialize a blob written by ``encode_entries``; raises CacheCorruptError when unreadable."""
    try:
        envelope = CacheEnvelope[entry_model].model_validate_json(raw)
    except (PydanticValidationError, ValueError, UnicodeDecodeError) as e:
        raise CacheCorruptError("Cache map payload could not be decoded", {"error": str(e)}) from e
    return dict(envelope.entries)


def encode_model(value: BaseModel) -> bytes:
    return value.model_dump_json(by_alias=True).encode("utf-8")


def decode_model(raw: bytes, model: Type[ModelT]) -> ModelT:
    """Deserialize one cached model; raises CacheCorruptError when unreadable."""
    try:
        return model.model_validate_json(raw)
    except (PydanticValidationError, ValueError, UnicodeDecodeError) as e:
        raise CacheCorruptError("Cache payload could not be decoded", {"error": str(e)}) from e
