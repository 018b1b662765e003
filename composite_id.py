"""Composite id (shard key) construction and validation.

Options are parsed and checked against the field catalog exactly once; the
resulting frozen ``CompositeIdConfig`` is then shared by every per-document
``build`` call. A composite id is the concatenation of the prefix field
values in sorted field-name order, the ``!`` separator, and the postfix value:

    prefixFields=region,entityType  postfixField=id
    {"entityType": "Person", "region": "EU", "id": "7"}  →  "PersonEU!7"
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from catalog import FieldCatalog
from errors import InvalidConfigurationError, InvalidFieldValueError, MissingFieldError
from ids import make_composite_id
from models import CompositeIdConfig, CompositeKeyResult

logger = logging.getLogger(__name__)

# String form of an absent value; a literal "null" is treated as absent too
NULL_VALUE = "null"


def parse_options(options: Mapping[str, Any] | None) -> CompositeIdConfig:
    """Parse the flat processor options mapping into a frozen config.

    Raises:
        InvalidConfigurationError: for malformed option values.
    """
    try:
        return CompositeIdConfig.model_validate(dict(options or {}))
    except ValidationError as exc:
        raise InvalidConfigurationError(f"Invalid composite id options: {exc}") from exc


def validate_config(config: CompositeIdConfig, catalog: FieldCatalog) -> None:
    """Check that every configured field exists and, for overwrites, is indexed.

    Raises:
        MissingFieldError: a configured field is absent from the catalog.
        InvalidConfigurationError: overwriteDupes is on but a key field is not indexed.
    """
    if not config.prefix_fields:
        raise MissingFieldError("prefixFields", message="The prefix fields must be specified")
    for name in config.prefix_fields:
        if not catalog.exists(name):
            raise MissingFieldError(name, role="prefixField")

    if not catalog.exists(config.postfix_field):
        raise MissingFieldError(config.postfix_field, role="postfixField")

    if not catalog.exists(config.composite_id_field):
        raise MissingFieldError(config.composite_id_field, role="compositeIdField")

    if config.overwrite_dupes:
        not_indexed = [
            name for name in (*config.prefix_fields, config.postfix_field) if not catalog.is_indexed(name)
        ]
        if not_indexed:
            raise InvalidConfigurationError(
                "Can't set overwriteDupes when either prefixFields or postfixField are not indexed: "
                f"prefixFields={list(config.prefix_fields)} postfixField={config.postfix_field} "
                f"(not indexed: {', '.join(not_indexed)})"
            )


def display_value(value: Any) -> str:
    """Return the string form used when concatenating a field value.

    Multi-valued fields contribute their first value. Absent values and empty
    lists become ``"null"``; booleans are lower-cased.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return NULL_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_blank(text: str) -> bool:
    return text == NULL_VALUE or not text.strip()


def build(document: Mapping[str, Any], config: CompositeIdConfig) -> CompositeKeyResult:
    """Compute the composite id for ``document``.

    Returns the pass-through result when the config is disabled. The document
    is never modified; writing the key is the caller's job.

    Raises:
        InvalidFieldValueError: a prefix or postfix value is empty or absent.
    """
    if not config.enabled:
        return CompositeKeyResult.passthrough()

    prefix_parts: list[str] = []
    for name in config.prefix_fields:
        text = display_value(document.get(name))
        if _is_blank(text):
            raise InvalidFieldValueError(name)
        prefix_parts.append(text)
    prefix = "".join(prefix_parts)

    postfix = display_value(document.get(config.postfix_field))
    if _is_blank(postfix):
        raise InvalidFieldValueError(config.postfix_field)

    if not prefix:
        raise InvalidFieldValueError(
            *config.prefix_fields,
            config.postfix_field,
            message=(
                "Both prefixFields and postfixField values must be non-null/empty. "
                f"prefixFields={list(config.prefix_fields)} postfixField={config.postfix_field}"
            ),
        )

    return CompositeKeyResult(
        key=make_composite_id(prefix, postfix),
        overwrite=config.overwrite_dupes,
        composite_id_field=config.composite_id_field,
    )


class CompositeKeyBuilder:
    """Validated, reusable composite id builder.

    Construct through ``load_builder`` (or pass an already validated config).
    Instances hold no mutable state and are safe to share between threads.
    """

    def __init__(self, config: CompositeIdConfig) -> None:
        self._config = config

    @property
    def config(self) -> CompositeIdConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def build(self, document: Mapping[str, Any]) -> CompositeKeyResult:
        return build(document, self._config)

    def __repr__(self) -> str:
        c = self._config
        return (
            f"CompositeKeyBuilder(compositeIdField={c.composite_id_field!r}, "
            f"prefixFields={list(c.prefix_fields)!r}, postfixField={c.postfix_field!r}, "
            f"overwriteDupes={c.overwrite_dupes}, enabled={c.enabled})"
        )


def load_builder(options: Mapping[str, Any] | None, catalog: FieldCatalog) -> CompositeKeyBuilder:
    """Parse and validate options, returning a ready builder.

    This is the single startup step; any error here must stop the host from
    accepting documents.
    """
    config = parse_options(options)
    validate_config(config, catalog)
    logger.info(
        "Composite id configured: field=%s prefix=%s postfix=%s overwrite=%s enabled=%s",
        config.composite_id_field,
        ",".join(config.prefix_fields),
        config.postfix_field,
        config.overwrite_dupes,
        config.enabled,
    )
    return CompositeKeyBuilder(config)


__all__ = [
    "NULL_VALUE",
    "CompositeKeyBuilder",
    "build",
    "display_value",
    "load_builder",
    "parse_options",
    "validate_config",
]
