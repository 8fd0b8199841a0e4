"""
Wire model base for cached payloads and catalog responses.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def fold_field_name(name: str) -> str:
    """Collapse a field name so ``TotalCount``, ``totalCount`` and ``total_count`` compare equal."""
    return name.replace("_", "").replace("-", "").casefold()


class CaseInsensitiveModel(BaseModel):
    """Serializes camelCase and reads field names regardless of case or separators."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _fold_field_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        lookup: Dict[str, str] = {}
        for field_name, field in cls.model_fields.items():
            lookup[fold_field_name(field_name)] = field_name
            if field.alias:
                lookup[fold_field_name(field.alias)] = field_name

        folded: Dict[Any, Any] = {}
        for key, value in data.items():
            target = lookup.get(fold_field_name(key)) if isinstance(key, str) else None
            folded[target or key] = value
        return folded
