from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import chromadb
from chromadb.api import ClientAPI
from chromadb.api.models.Collection import Collection

from config import config

logger = logging.getLogger(__name__)

EmbeddingFunction = Callable[[Sequence[str]], list[list[float]]]


@dataclass
class IndexStats:
    """Counts from one ``index_documents`` call.

    ``upserted`` and ``added`` count distinct ids written, so repeated
    overwrites of one id in a batch count once. ``skipped`` counts inserts
    dropped because their id already existed.
    """

    upserted: int = 0
    added: int = 0
    skipped: int = 0

    @property
    def written(self) -> int:
        return self.upserted + self.added


def get_client(path: str | None = None) -> ClientAPI:
    """Get ChromaDB persistent client with resolved absolute path.

    Args:
        path: Optional ChromaDB storage path. If None, uses config.CHROMA_PATH.
            Both relative and absolute paths are resolved to absolute.

    Returns:
        ClientAPI: ChromaDB persistent client.
    """
    storage_path = path or config.CHROMA_PATH
    resolved_path = str(Path(storage_path).expanduser().resolve())
    return chromadb.PersistentClient(path=resolved_path)


def get_collection(client: ClientAPI | None = None, name: str | None = None) -> Collection:
    """Return the document collection, creating it on first use."""
    cl = client or get_client()
    return cl.get_or_create_collection(
        name=name or config.COLLECTION_NAME,
        metadata={"description": "Documents keyed by composite id"},
    )


def _normalize_metadata_for_chroma(meta: Mapping[str, object] | None) -> dict[str, object]:
    """Convert document fields to Chroma-acceptable metadata primitives.

    - list/tuple -> comma-joined string (empty -> "")
    - str, int, float, bool -> unchanged
    - None -> dropped
    - others (dict, datetime, etc.) -> str(value)
    """
    if not meta:
        return {}
    out: dict[str, object] = {}
    for k, v in meta.items():
        if v is None:
            continue
        if isinstance(v, (list, tuple)):
            out[k] = ",".join(str(x) for x in v) if v else ""
        elif isinstance(v, (str, int, float, bool)):
            out[k] = v
        else:
            out[k] = str(v)
    return out


def _serialize_document(document: Mapping[str, Any]) -> str:
    return json.dumps(dict(document), sort_keys=True, ensure_ascii=False, default=str)


def index_documents(
    items: Iterable[Mapping[str, Any]],
    *,
    client: ClientAPI | None = None,
    collection_name: str | None = None,
    embedding_function: EmbeddingFunction | None = None,
) -> IndexStats:
    """Write keyed documents to the collection.

    Each item must include: id (composite id), document (field mapping) and
    overwrite (bool). Overwrite items are upserted by id. Other items are
    plain inserts: an id that already exists in the collection, or appeared
    earlier in the same batch, is skipped.
    """
    collection = get_collection(client, collection_name)
    stats = IndexStats()

    # id -> (text, metadata, overwrite); later overwrites replace earlier entries
    pending: dict[str, tuple[str, dict[str, object], bool]] = {}
    for item in items:
        doc_id = str(item["id"])
        raw_doc = item.get("document", {})
        document = raw_doc if isinstance(raw_doc, Mapping) else {}
        overwrite = bool(item.get("overwrite", False))
        entry = (_serialize_document(document), _normalize_metadata_for_chroma(document), overwrite)
        if overwrite:
            pending[doc_id] = entry
        elif doc_id in pending:
            stats.skipped += 1
        else:
            pending[doc_id] = entry

    insert_ids = [doc_id for doc_id, (_, _, overwrite) in pending.items() if not overwrite]
    if insert_ids:
        existing = set(collection.get(ids=insert_ids, include=["metadatas"])["ids"])
        for doc_id in existing:
            logger.debug("Skipping insert of existing document", extra={"doc_id": doc_id})
            del pending[doc_id]
        stats.skipped += len(existing)

    upserts = [(doc_id, e) for doc_id, e in pending.items() if e[2]]
    inserts = [(doc_id, e) for doc_id, e in pending.items() if not e[2]]

    for batch, write in ((upserts, collection.upsert), (inserts, collection.add)):
        if not batch:
            continue
        ids = [doc_id for doc_id, _ in batch]
        documents = [e[0] for _, e in batch]
        kwargs: dict[str, Any] = {"ids": ids, "documents": documents, "metadatas": [e[1] for _, e in batch]}
        if embedding_function is not None:
            kwargs["embeddings"] = embedding_function(documents)
        write(**kwargs)

    stats.upserted = len(upserts)
    stats.added = len(inserts)
    return stats


def get_documents(
    ids: Sequence[str],
    *,
    client: ClientAPI | None = None,
    collection_name: str | None = None,
) -> dict[str, dict[str, Any]]:
    """Fetch stored documents by composite id; missing ids are omitted."""
    collection = get_collection(client, collection_name)
    results = collection.get(ids=list(ids), include=["documents"])
    out: dict[str, dict[str, Any]] = {}
    for doc_id, text in zip(results.get("ids") or [], results.get("documents") or []):
        out[str(doc_id)] = json.loads(text) if text else {}
    return out


__all__ = [
    "IndexStats",
    "get_client",
    "get_collection",
    "get_documents",
    "index_documents",
]
