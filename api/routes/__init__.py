"""
API route composition.

Provides a shared APIRouter instance for organizing route modules.
"""

from fastapi import APIRouter

from .documents import router as documents_router
from .keys import router as keys_router

# Shared router for all API routes
api_router = APIRouter()

api_router.include_router(keys_router, prefix="/keys", tags=["keys"])
api_router.include_router(documents_router, prefix="/documents", tags=["documents"])
