from __future__ import annotations

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def split_smart(value: str, separator: str = ",") -> list[str]:
    """Split ``value`` on ``separator``, trimming segments and dropping empty ones."""
    return [part.strip() for part in value.split(separator) if part.strip()]


class CompositeIdConfig(BaseModel):
    """Processor options for composite id generation.

    Built once from the flat options mapping (camelCase keys) and frozen
    afterwards so it can be shared across concurrent document calls. Absent
    field names fall back to the option's own name, e.g. ``"postfixField"``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    composite_id_field: str = Field(
        default="compositeIdField",
        alias="compositeIdField",
        min_length=1,
        description="Field that receives the computed composite id.",
    )
    prefix_fields: tuple[str, ...] = Field(
        default=("prefixFields",),
        alias="prefixFields",
        description="Fields concatenated (in sorted order) to form the shard key.",
    )
    postfix_field: str = Field(
        default="postfixField",
        alias="postfixField",
        min_length=1,
        description="Field holding the unique document id appended after the separator.",
    )
    overwrite_dupes: bool = Field(
        default=True,
        alias="overwriteDupes",
        description="Replace documents with the same composite id instead of inserting.",
    )
    enabled: bool = Field(default=True, alias="enabled")

    @field_validator("prefix_fields", mode="before")
    @classmethod
    def parse_prefix_fields(cls, v: Any) -> tuple[str, ...]:
        """
        Accept a comma-separated string or a list of names; always sorted.

        Examples:
            - "region, entityType" → ("entityType", "region")
            - ["b", " a", ""] → ("a", "b")
            - ",," → ()
        """
        if v is None:
            return ()
        if isinstance(v, str):
            names = split_smart(v)
        elif isinstance(v, (list, tuple)):
            names = []
            for item in v:
                if not isinstance(item, str):
                    raise ValueError(f"prefixFields entries must be strings, got {type(item).__name__}")
                names.extend(split_smart(item))
        else:
            raise ValueError("prefixFields must be a comma-separated string or a list of field names")
        return tuple(sorted(names))

    def to_options(self) -> dict[str, Any]:
        """Return the flat options mapping (camelCase keys) this config was built from."""
        data = self.model_dump(by_alias=True)
        data["prefixFields"] = list(self.prefix_fields)
        return data

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_options(), sort_keys=False, default_flow_style=False).strip() + "\n"


class CompositeKeyResult(BaseModel):
    """Outcome of building a composite id for one document.

    ``key`` is None for the pass-through result of a disabled builder; the
    caller then forwards the document unchanged.
    """

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    overwrite: bool = False
    composite_id_field: str | None = None

    @property
    def is_passthrough(self) -> bool:
        return self.key is None

    @classmethod
    def passthrough(cls) -> CompositeKeyResult:
        return cls()


class FieldDescriptor(BaseModel):
    name: str = Field(..., min_length=1, description="Schema field name")
    type: str = Field(default="string", description="Declared field type")
    indexed: bool = Field(default=True, description="Whether the field is searchable")
    stored: bool = Field(default=True, description="Whether the original value is retrievable")
    multi_valued: bool = Field(default=False, description="Whether the field accepts several values")


__all__ = [
    "CompositeIdConfig",
    "CompositeKeyResult",
    "FieldDescriptor",
    "ValidationError",
    "split_smart",
]
