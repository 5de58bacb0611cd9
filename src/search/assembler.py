from __future__ import annotations

"""Turn raw backend hits into search results with resolved highlights."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Protocol

from src.search.errors import SearchError
from src.search.fields import lookup_field
from src.search.highlights import HighlightResolver
from src.search.types import (
    MALFORMED_HIT,
    MISSING_TEXT,
    AssemblyResult,
    Diagnostic,
    RawHit,
    ResolvedHighlight,
    SearchResult,
)

logger = logging.getLogger(__name__)

METADATA_SOURCE_KEY = "source"
METADATA_URI_KEY = "uri"
METADATA_LANGUAGE_KEY = "language"
METADATA_TIMESTAMP_KEY = "timestamp"


class DiagnosticSink(Protocol):
    def record(self, diagnostic: Diagnostic) -> None:
        ...


@dataclass
class LoggingDiagnostics:
    """Diagnostic sink that logs each entry as a warning."""
    log: logging.Logger = field(default_factory=lambda: logger)

    def record(self, diagnostic: Diagnostic) -> None:
        self.log.warning(
            diagnostic.kind,
            extra={
                "document_id": diagnostic.document_id,
                "detail": diagnostic.detail,
            },
        )


@dataclass
class SearchResultAssembler:
    """Build ordered search results from raw hits of one query."""
    resolver: HighlightResolver = field(default_factory=HighlightResolver)
    diagnostics: DiagnosticSink = field(default_factory=LoggingDiagnostics)
    text_lookup: Callable[[str], str] | None = None

    def assemble(
        self,
        hits: Iterable[RawHit],
        highlight_field: str,
        text_field: str,
        randomized: bool,
        collection_id: str = "",
    ) -> AssemblyResult:
        results: list[SearchResult] = []
        diagnostics: list[Diagnostic] = []
        for hit in hits:
            result = self._assemble_hit(
                hit, highlight_field, text_field, randomized, collection_id, diagnostics
            )
            if result is not None:
                results.append(result)
        for diagnostic in diagnostics:
            self.diagnostics.record(diagnostic)
        logger.info(
            "assembly_complete",
            extra={
                "results": len(results),
                "diagnostics": len(diagnostics),
            },
        )
        return AssemblyResult(results=tuple(results), diagnostics=tuple(diagnostics))

    def _assemble_hit(
        self,
        hit: RawHit,
        highlight_field: str,
        text_field: str,
        randomized: bool,
        collection_id: str,
        diagnostics: list[Diagnostic],
    ) -> SearchResult | None:
        if not isinstance(hit.metadata, Mapping):
            diagnostics.append(
                Diagnostic(
                    kind=MALFORMED_HIT,
                    detail="hit has no document metadata",
                    document_id=hit.document_id,
                )
            )
            return None
        metadata = hit.metadata
        return SearchResult(
            collection_id=collection_id,
            document_id=hit.document_id,
            # The backend has no title field
            title=hit.document_id,
            # Under random ordering the score says nothing about relevance
            score=None if randomized else hit.score,
            source=metadata.get(METADATA_SOURCE_KEY),
            uri=metadata.get(METADATA_URI_KEY),
            language=metadata.get(METADATA_LANGUAGE_KEY),
            timestamp=metadata.get(METADATA_TIMESTAMP_KEY),
            highlights=self._highlights(hit, highlight_field, text_field, diagnostics),
        )

    def _highlights(
        self,
        hit: RawHit,
        highlight_field: str,
        text_field: str,
        diagnostics: list[Diagnostic],
    ) -> tuple[ResolvedHighlight, ...]:
        raw_fragments = hit.highlights.get(highlight_field) or ()
        if isinstance(raw_fragments, str):
            raw_fragments = [raw_fragments]
        fragments = [str(fragment) for fragment in raw_fragments]
        if not fragments:
            return ()
        text = self._document_text(hit, text_field, diagnostics)
        if text is None:
            return ()
        resolution = self.resolver.resolve_fragments(
            fragments, text, document_id=hit.document_id
        )
        diagnostics.extend(resolution.diagnostics)
        return resolution.highlights

    def _document_text(
        self, hit: RawHit, text_field: str, diagnostics: list[Diagnostic]
    ) -> str | None:
        text = lookup_field(hit.source, text_field)
        if isinstance(text, str):
            return text
        if self.text_lookup is not None:
            try:
                return self.text_lookup(hit.document_id)
            except SearchError as exc:
                diagnostics.append(
                    Diagnostic(
                        kind=MISSING_TEXT,
                        detail=f"text lookup failed: {type(exc).__name__}",
                        document_id=hit.document_id,
                    )
                )
                return None
        diagnostics.append(
            Diagnostic(
                kind=MISSING_TEXT,
                detail=f"hit source has no text at {text_field!r}",
                document_id=hit.document_id,
            )
        )
        return None


def assemble(
    hits: Iterable[RawHit],
    highlight_field: str,
    text_field: str,
    randomized: bool,
    resolver: HighlightResolver | None = None,
    diagnostics: DiagnosticSink | None = None,
) -> AssemblyResult:
    """Assemble results with a default resolver and optional diagnostic sink."""
    assembler = SearchResultAssembler(
        resolver=resolver or HighlightResolver(),
        diagnostics=LoggingDiagnostics() if diagnostics is None else diagnostics,
    )
    return assembler.assemble(hits, highlight_field, text_field, randomized)
