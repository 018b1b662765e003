"""
Document indexing endpoints.

Keys a batch of documents through the processor chain and writes the accepted
ones to Chroma. Documents with missing key values are reported per item; the
rest of the batch is still indexed.
"""

import logging

from chromadb.api import ClientAPI
from fastapi import APIRouter, Depends, HTTPException

from composite_id import CompositeKeyBuilder
from indexer import EmbeddingFunction
from processor import build_chain, process_documents

from ..deps import get_builder, get_chroma_client, get_embedding_function
from ..models import IndexRequest, IndexResponse, RejectedItem

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=IndexResponse, summary="Key and index documents")
def index_endpoint(
    req: IndexRequest,
    builder: CompositeKeyBuilder = Depends(get_builder),
    client: ClientAPI = Depends(get_chroma_client),
    embedding_function: EmbeddingFunction | None = Depends(get_embedding_function),
) -> IndexResponse:
    chain = build_chain(
        builder,
        client=client,
        collection_name=req.collection,
        embedding_function=embedding_function,
    )
    try:
        report = process_documents(req.documents, chain)
    except Exception as exc:  # Chroma or client failures
        logger.exception("Failed to index documents")
        raise HTTPException(status_code=502, detail=f"Failed to index documents: {exc}") from exc

    stats = report.index_stats
    return IndexResponse(
        accepted=report.accepted,
        rejected=[RejectedItem(index=r.index, fields=r.fields, message=r.message) for r in report.rejected],
        keys=report.keys,
        upserted=stats.upserted if stats else 0,
        added=stats.added if stats else 0,
        skipped=stats.skipped if stats else 0,
    )
