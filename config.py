from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import InvalidConfigurationError

# Environment overrides for the flat processor options mapping
OPTION_ENV_FIELDS: dict[str, str] = {
    "COMPOSITE_ID_FIELD": "compositeIdField",
    "PREFIX_FIELDS": "prefixFields",
    "POSTFIX_FIELD": "postfixField",
    "OVERWRITE_DUPES": "overwriteDupes",
    "ENABLED": "enabled",
}


def _resolve_from_project_root(v: str) -> str:
    path = Path(v).expanduser()
    if not path.is_absolute():
        path = Path(__file__).parent / path
    return str(path.resolve())


class Config(BaseSettings):
    """Centralized, type-safe configuration loaded from environment variables.

    Uses pydantic-settings to support .env files and runtime validation.
    Processor options come from PROCESSOR_CONFIG_PATH (YAML) with the
    per-option environment variables layered on top.
    """

    # Storage
    CHROMA_PATH: str = Field(
        default="./chroma_data",
        description="Filesystem path for ChromaDB persistent storage.",
    )
    COLLECTION_NAME: str = Field(
        default="documents",
        min_length=3,
        description="Chroma collection receiving keyed documents.",
    )

    # Field catalog and processor options
    SCHEMA_PATH: str = Field(
        default="./schema.yaml",
        description="YAML file describing the fields of the index schema.",
    )
    PROCESSOR_CONFIG_PATH: str | None = Field(
        default=None,
        description="Optional YAML file holding the flat composite id options mapping.",
    )
    COMPOSITE_ID_FIELD: str | None = None
    PREFIX_FIELDS: str | None = Field(default=None, description="Comma-separated prefix field names.")
    POSTFIX_FIELD: str | None = None
    OVERWRITE_DUPES: bool | None = None
    ENABLED: bool | None = None

    # API configuration
    API_CORS_ORIGINS: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins for FastAPI (comma-separated env or JSON list).",
    )

    LOG_LEVEL: str = Field(default="INFO", description="Root logging level for the CLI and API.")

    # Empty variables fall back to the defaults
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", env_ignore_empty=True
    )

    @field_validator("CHROMA_PATH", "SCHEMA_PATH")
    @classmethod
    def normalize_path(cls, v: str) -> str:
        """
        Normalize a path setting to an absolute path.

        Relative paths are resolved from the project root (where config.py lives),
        not from the current working directory, so CLI and API processes agree.
        """
        return _resolve_from_project_root(v)

    @field_validator("PROCESSOR_CONFIG_PATH")
    @classmethod
    def normalize_optional_path(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return _resolve_from_project_root(v.strip())

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {v!r}")
        return level

    @field_validator("API_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):  # type: ignore[no-redef]
        """
        Accept list[str], JSON array string, or comma-separated string.

        Examples:
            - None or "" → []
            - '["http://localhost:3000"]' → ["http://localhost:3000"]
            - "http://localhost:3000,http://127.0.0.1:5173" → ["http://localhost:3000", "http://127.0.0.1:5173"]
        """
        if v is None or v == "":
            return []
        if isinstance(v, list):
            return [str(s).strip() for s in v if str(s).strip()]
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json

                try:
                    arr = json.loads(s)
                    return [str(x).strip() for x in arr if str(x).strip()]
                except json.JSONDecodeError:
                    # Fall back to comma-separated parsing
                    pass
            return [p.strip() for p in s.split(",") if p.strip()]
        return [str(v).strip()]

    # Convenience helpers
    @property
    def chroma_path(self) -> Path:
        return Path(self.CHROMA_PATH)

    @property
    def schema_path(self) -> Path:
        return Path(self.SCHEMA_PATH)

    def processor_options(self, options_path: str | Path | None = None) -> dict[str, Any]:
        """Return the flat options mapping for ``composite_id.parse_options``.

        Options are read from ``options_path`` (or PROCESSOR_CONFIG_PATH) and
        then overridden by any per-option environment setting that is set.
        Unset options are left out so their defaults apply.

        Raises:
            InvalidConfigurationError: if the options file is unreadable or not a mapping.
        """
        options: dict[str, Any] = {}
        path = options_path or self.PROCESSOR_CONFIG_PATH
        if path:
            p = Path(path)
            try:
                data = yaml.safe_load(p.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                raise InvalidConfigurationError(f"Cannot read processor options {p}: {exc}") from exc
            except yaml.YAMLError as exc:
                raise InvalidConfigurationError(f"Malformed processor options {p}: {exc}") from exc
            if data is not None and not isinstance(data, dict):
                raise InvalidConfigurationError(f"Processor options in {p} must be a mapping")
            options.update(data or {})

        for env_name, option_name in OPTION_ENV_FIELDS.items():
            value = getattr(self, env_name)
            if value is not None:
                options[option_name] = value
        return options


# Eagerly load configuration at import time for convenience across modules
config = Config()
