"""
Pydantic models for API contracts.

Contains request/response models for the Shardkey API endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")


class KeyConfigResponse(BaseModel):
    """Effective composite id configuration."""

    compositeIdField: str
    prefixFields: list[str]
    postfixField: str
    overwriteDupes: bool
    enabled: bool


class KeyRequest(BaseModel):
    document: dict[str, Any] = Field(..., description="Document field values")


class KeyResponse(BaseModel):
    key: str | None = Field(None, description="Composite id; null when generation is disabled")
    overwrite: bool = Field(False, description="Whether to update-by-key instead of inserting")
    composite_id_field: str | None = Field(None, description="Field the key must be written to")
    passthrough: bool = Field(False, description="True when the document is forwarded unchanged")


class IndexRequest(BaseModel):
    documents: list[dict[str, Any]] = Field(..., min_length=1, description="Documents to key and index")
    collection: str | None = Field(None, description="Override COLLECTION_NAME")


class RejectedItem(BaseModel):
    index: int
    fields: list[str]
    message: str


class IndexResponse(BaseModel):
    accepted: int
    rejected: list[RejectedItem] = Field(default_factory=list)
    keys: list[str | None] = Field(default_factory=list)
    upserted: int = 0
    added: int = 0
    skipped: int = 0
