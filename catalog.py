"""Field catalog used to validate processor options at startup.

The catalog is consulted once, while the composite id configuration is
validated; the per-document path never reads it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from errors import InvalidConfigurationError
from models import FieldDescriptor

logger = logging.getLogger(__name__)


class FieldCatalog(Protocol):
    def exists(self, field_name: str) -> bool: ...

    def is_indexed(self, field_name: str) -> bool: ...


class SchemaCatalog:
    """In-memory catalog backed by ``FieldDescriptor`` models."""

    def __init__(self, fields: Iterable[FieldDescriptor]) -> None:
        self._fields: dict[str, FieldDescriptor] = {f.name: f for f in fields}

    def exists(self, field_name: str) -> bool:
        return field_name in self._fields

    def is_indexed(self, field_name: str) -> bool:
        descriptor = self._fields.get(field_name)
        return descriptor is not None and descriptor.indexed

    def get(self, field_name: str) -> FieldDescriptor | None:
        return self._fields.get(field_name)

    @property
    def names(self) -> list[str]:
        return sorted(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SchemaCatalog:
        """Build a catalog from a parsed schema document.

        Accepts either a list of field entries or a mapping keyed by name:

            fields:
              - {name: id, indexed: true}
              - {name: entityType}

            fields:
              id: {indexed: true}
              entityType: {}
        """
        raw = data.get("fields") if isinstance(data, Mapping) else None
        if raw is None:
            raise InvalidConfigurationError("Schema must define a 'fields' section")

        entries: list[dict[str, Any]] = []
        if isinstance(raw, Mapping):
            for name, spec in raw.items():
                if spec is not None and not isinstance(spec, Mapping):
                    raise InvalidConfigurationError(f"Schema field {name!r} must be a mapping, got: {spec!r}")
                entry = dict(spec or {})
                entry["name"] = str(name)
                entries.append(entry)
        elif isinstance(raw, list):
            for spec in raw:
                if not isinstance(spec, Mapping):
                    raise InvalidConfigurationError(f"Schema field entries must be mappings, got: {spec!r}")
                entries.append(dict(spec))
        else:
            raise InvalidConfigurationError("Schema 'fields' must be a list or a mapping")

        try:
            descriptors = [FieldDescriptor.model_validate(entry) for entry in entries]
        except ValidationError as exc:
            raise InvalidConfigurationError(f"Invalid schema field definition: {exc}") from exc
        return cls(descriptors)


def load_schema(path: str | Path) -> SchemaCatalog:
    """Load a YAML schema file into a ``SchemaCatalog``.

    Raises:
        InvalidConfigurationError: if the file is missing, unreadable or malformed.
    """
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidConfigurationError(f"Cannot read schema file {p}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise InvalidConfigurationError(f"Malformed schema file {p}: {exc}") from exc

    catalog = SchemaCatalog.from_mapping(data or {})
    logger.debug("Loaded %d schema fields from %s", len(catalog), p)
    return catalog


__all__ = ["FieldCatalog", "SchemaCatalog", "load_schema"]
