from __future__ import annotations

"""External search provider backed by an Elasticsearch index."""

import io
import logging
from dataclasses import dataclass, field
from typing import BinaryIO

from src.search.assembler import DiagnosticSink, LoggingDiagnostics, SearchResultAssembler
from src.search.errors import InvalidArgumentError
from src.search.gateway import ElasticSearchGateway
from src.search.highlights import HighlightResolver
from src.search.traits import ElasticSearchTraits
from src.search.types import AssemblyResult, Document

logger = logging.getLogger(__name__)

TEXT_FORMAT = "text"


@dataclass
class ElasticSearchProvider:
    """Query an index and recover highlight offsets for every hit."""
    traits: ElasticSearchTraits
    gateway: ElasticSearchGateway
    resolver: HighlightResolver = field(default_factory=HighlightResolver)
    diagnostics: DiagnosticSink = field(default_factory=LoggingDiagnostics)
    fetch_missing_text: bool = False

    def execute_query(self, query: str) -> AssemblyResult:
        hits = self.gateway.query(
            self.traits.index_name,
            self.traits.default_field,
            query,
            self.traits.result_size,
            self.traits.random_order,
            highlight_field=self.traits.highlight_field,
        )
        assembler = SearchResultAssembler(
            resolver=self.resolver,
            diagnostics=self.diagnostics,
            text_lookup=self._lookup_text if self.fetch_missing_text else None,
        )
        result = assembler.assemble(
            hits,
            self.traits.highlight_field,
            self.traits.text_field,
            self.traits.random_order,
            collection_id=self.traits.index_name,
        )
        logger.info(
            "query_complete",
            extra={
                "index": self.traits.index_name,
                "hits": len(hits),
                "results": len(result.results),
                "query_length": len(query),
            },
        )
        return result

    def get_document(self, collection_id: str, document_id: str) -> Document:
        self._check_collection(collection_id)
        text = self.gateway.fetch_document_text(
            self.traits.index_name, self.traits.object_type, document_id
        )
        return Document(collection_id=collection_id, document_id=document_id, text=text)

    def get_document_text(self, collection_id: str, document_id: str) -> str:
        return self.get_document(collection_id, document_id).text

    def get_document_as_stream(self, collection_id: str, document_id: str) -> BinaryIO:
        return io.BytesIO(self.get_document_text(collection_id, document_id).encode("utf-8"))

    def get_document_format(self, collection_id: str, document_id: str) -> str:
        return TEXT_FORMAT

    def _check_collection(self, collection_id: str) -> None:
        if collection_id != self.traits.index_name:
            raise InvalidArgumentError(
                "Requested collection name does not match connection collection name"
            )

    def _lookup_text(self, document_id: str) -> str:
        return self.gateway.fetch_document_text(
            self.traits.index_name, self.traits.object_type, document_id
        )
