"""
Composite id API routes.

Exposes the effective configuration and computes composite ids for single
documents without indexing them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from composite_id import CompositeKeyBuilder
from errors import InvalidFieldValueError

from ..deps import get_builder
from ..models import KeyConfigResponse, KeyRequest, KeyResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/config", response_model=KeyConfigResponse, summary="Effective composite id configuration")
def config_endpoint(builder: CompositeKeyBuilder = Depends(get_builder)) -> KeyConfigResponse:
    return KeyConfigResponse(**builder.config.to_options())


@router.post("", response_model=KeyResponse, summary="Compute a composite id")
def key_endpoint(req: KeyRequest, builder: CompositeKeyBuilder = Depends(get_builder)) -> KeyResponse:
    """
    Compute the composite id for one document.

    Raises:
        HTTPException: 422 when a prefix or postfix value is empty or missing
    """
    try:
        result = builder.build(req.document)
    except InvalidFieldValueError as e:
        logger.info("Rejected document: %s", e)
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "fields": list(e.field_names)},
        ) from e

    return KeyResponse(
        key=result.key,
        overwrite=result.overwrite,
        composite_id_field=result.composite_id_field,
        passthrough=result.is_passthrough,
    )
