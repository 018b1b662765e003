"""Update processor chain that applies composite ids to incoming documents.

Documents travel through a singly linked chain of processors, each handing the
``AddCommand`` to ``next`` when done:

    CompositeIdProcessor → LogProcessor → IndexProcessor

``CompositeIdProcessor`` writes the key into the document and, when duplicates
are to be overwritten, marks the command as an update-by-key. A document whose
key can't be built is rejected on its own; ``process_documents`` records the
rejection and carries on with the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from chromadb.api import ClientAPI

from composite_id import CompositeKeyBuilder
from errors import InvalidFieldValueError
from indexer import EmbeddingFunction, IndexStats, index_documents

logger = logging.getLogger(__name__)


@dataclass
class AddCommand:
    document: dict[str, Any]
    # (field, value) to replace an existing document by; None means plain insert
    update_key: tuple[str, str] | None = None

    @property
    def overwrite(self) -> bool:
        return self.update_key is not None


class UpdateProcessor:
    """Base processor: forwards every call to the next processor, if any."""

    def __init__(self, next: UpdateProcessor | None = None) -> None:
        self.next = next

    def process_add(self, cmd: AddCommand) -> None:
        if self.next is not None:
            self.next.process_add(cmd)

    def finish(self) -> None:
        if self.next is not None:
            self.next.finish()


class CompositeIdProcessor(UpdateProcessor):
    def __init__(self, builder: CompositeKeyBuilder, next: UpdateProcessor | None = None) -> None:
        super().__init__(next)
        self.builder = builder

    def process_add(self, cmd: AddCommand) -> None:
        result = self.builder.build(cmd.document)
        if not result.is_passthrough:
            assert result.key is not None and result.composite_id_field is not None
            cmd.document[result.composite_id_field] = result.key
            if result.overwrite:
                cmd.update_key = (result.composite_id_field, result.key)
        super().process_add(cmd)


class LogProcessor(UpdateProcessor):
    """Log each add command. ``count`` is the number of adds that reached this
    processor, including ones a later processor rejects."""

    def __init__(self, id_field: str | None = None, next: UpdateProcessor | None = None) -> None:
        super().__init__(next)
        self.id_field = id_field
        self.count = 0

    def process_add(self, cmd: AddCommand) -> None:
        self.count += 1
        doc_id = cmd.document.get(self.id_field) if self.id_field else None
        logger.debug("add", extra={"doc_id": doc_id, "overwrite": cmd.overwrite})
        super().process_add(cmd)

    def finish(self) -> None:
        logger.info("Processed %d document adds", self.count)
        super().finish()


class IndexProcessor(UpdateProcessor):
    """Terminal processor buffering commands and writing them to Chroma on ``finish``."""

    def __init__(
        self,
        id_field: str,
        *,
        client: ClientAPI | None = None,
        collection_name: str | None = None,
        embedding_function: EmbeddingFunction | None = None,
        next: UpdateProcessor | None = None,
    ) -> None:
        super().__init__(next)
        self.id_field = id_field
        self.client = client
        self.collection_name = collection_name
        self.embedding_function = embedding_function
        self.pending: list[AddCommand] = []
        self.stats = IndexStats()

    def process_add(self, cmd: AddCommand) -> None:
        if cmd.document.get(self.id_field) in (None, ""):
            raise InvalidFieldValueError(
                self.id_field,
                message=f"Document has no value for id field {self.id_field!r}; cannot index it",
            )
        self.pending.append(cmd)
        super().process_add(cmd)

    def finish(self) -> None:
        if self.pending:
            items = [
                {"id": str(cmd.document[self.id_field]), "document": cmd.document, "overwrite": cmd.overwrite}
                for cmd in self.pending
            ]
            stats = index_documents(
                items,
                client=self.client,
                collection_name=self.collection_name,
                embedding_function=self.embedding_function,
            )
            self.stats.upserted += stats.upserted
            self.stats.added += stats.added
            self.stats.skipped += stats.skipped
            self.pending = []
        super().finish()


def build_chain(
    builder: CompositeKeyBuilder,
    *,
    index: bool = True,
    client: ClientAPI | None = None,
    collection_name: str | None = None,
    embedding_function: EmbeddingFunction | None = None,
) -> CompositeIdProcessor:
    """Assemble the default chain; with ``index=False`` documents are keyed and logged only."""
    id_field = builder.config.composite_id_field
    tail: UpdateProcessor | None = None
    if index:
        tail = IndexProcessor(
            id_field,
            client=client,
            collection_name=collection_name,
            embedding_function=embedding_function,
        )
    return CompositeIdProcessor(builder, LogProcessor(id_field, tail))


@dataclass
class RejectedDocument:
    index: int
    fields: list[str]
    message: str


@dataclass
class ProcessReport:
    accepted: int = 0
    rejected: list[RejectedDocument] = field(default_factory=list)
    keys: list[str | None] = field(default_factory=list)
    index_stats: IndexStats | None = None

    @property
    def total(self) -> int:
        return self.accepted + len(self.rejected)


def _find_index_processor(chain: UpdateProcessor) -> IndexProcessor | None:
    node: UpdateProcessor | None = chain
    while node is not None:
        if isinstance(node, IndexProcessor):
            return node
        node = node.next
    return None


def process_documents(documents: Iterable[Mapping[str, Any]], chain: UpdateProcessor) -> ProcessReport:
    """Run each document through ``chain`` and finish it.

    Documents are copied before processing. ``InvalidFieldValueError`` rejects
    only the offending document; any other error propagates.
    """
    report = ProcessReport()
    key_field = chain.builder.config.composite_id_field if isinstance(chain, CompositeIdProcessor) else None

    for i, document in enumerate(documents):
        cmd = AddCommand(document=dict(document))
        try:
            chain.process_add(cmd)
        except InvalidFieldValueError as exc:
            logger.warning("Rejected document %d: %s", i, exc, extra={"fields": list(exc.field_names)})
            report.rejected.append(RejectedDocument(index=i, fields=list(exc.field_names), message=str(exc)))
            continue
        report.accepted += 1
        report.keys.append(cmd.document.get(key_field) if key_field else None)

    chain.finish()
    index_processor = _find_index_processor(chain)
    if index_processor is not None:
        report.index_stats = index_processor.stats
    return report


__all__ = [
    "AddCommand",
    "CompositeIdProcessor",
    "IndexProcessor",
    "LogProcessor",
    "ProcessReport",
    "RejectedDocument",
    "UpdateProcessor",
    "build_chain",
    "process_documents",
]
