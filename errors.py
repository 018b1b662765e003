"""Exception types raised while configuring or applying composite ids.

Configuration errors (``MissingFieldError``, ``InvalidConfigurationError``)
are fatal at startup. ``InvalidFieldValueError`` is raised per document and
only rejects the offending document.
"""

from __future__ import annotations


class CompositeIdError(Exception):
    """Base class for all composite id errors."""


class MissingFieldError(CompositeIdError):
    """A configured field does not exist in the field catalog."""

    def __init__(self, field_name: str, role: str | None = None, message: str | None = None) -> None:
        self.field_name = field_name
        self.role = role
        if message is None and role:
            message = f"Can't use a {role} which does not exist in schema: {field_name}"
        elif message is None:
            message = f"Field does not exist in schema: {field_name}"
        super().__init__(message)


class InvalidConfigurationError(CompositeIdError):
    """The processor options are malformed or inconsistent with the schema."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class InvalidFieldValueError(CompositeIdError):
    """A document is missing a value required to build its composite id."""

    def __init__(self, *field_names: str, message: str | None = None) -> None:
        self.field_names: tuple[str, ...] = tuple(field_names)
        if message is None:
            joined = ", ".join(self.field_names)
            message = (
                "A field must not be empty or null as it's used as a part of a composite id. "
                f"Detected the following field is empty or null: {joined}"
            )
        super().__init__(message)


__all__ = [
    "CompositeIdError",
    "InvalidConfigurationError",
    "InvalidFieldValueError",
    "MissingFieldError",
]
