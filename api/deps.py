"""
FastAPI dependency injection providers.

Centralizes dependencies (DI) to keep endpoints decoupled from global imports.
"""

from functools import lru_cache

from chromadb.api import ClientAPI
from fastapi import Depends

from catalog import load_schema
from composite_id import CompositeKeyBuilder, load_builder
from config import Config
from config import config as global_config
from indexer import EmbeddingFunction
from indexer import get_client as get_chroma


def get_settings() -> Config:
    """
    FastAPI dependency to provide Config.

    Returns:
        Config: The global configuration instance.
    """
    return global_config


@lru_cache(maxsize=1)
def _load_builder() -> CompositeKeyBuilder:
    cfg = global_config
    return load_builder(cfg.processor_options(), load_schema(cfg.SCHEMA_PATH))


def get_builder() -> CompositeKeyBuilder:
    """
    FastAPI dependency to provide the validated composite id builder.

    Options are parsed and validated against the schema on first use only;
    the frozen builder is then shared by every request.

    Raises:
        CompositeIdError: if the configuration is invalid (surfaces as HTTP 500).
    """
    return _load_builder()


def get_embedding_function() -> EmbeddingFunction | None:
    """
    FastAPI dependency to provide client-side embeddings for indexed documents.

    Returns None so the collection's own embedding function is used.
    """
    return None


def get_chroma_client(cfg: Config = Depends(get_settings)) -> ClientAPI:
    """
    FastAPI dependency to provide ChromaDB client.

    Args:
        cfg: Configuration instance (injected)

    Returns:
        ClientAPI: ChromaDB client configured with CHROMA_PATH
    """
    return get_chroma(path=cfg.CHROMA_PATH)
