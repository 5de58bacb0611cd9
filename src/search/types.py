from __future__ import annotations

"""Core data types for search hits, highlights and results."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

MALFORMED_HIT = "malformed_hit"
UNRESOLVABLE_HIGHLIGHT = "unresolvable_highlight"
MALFORMED_MARKER = "malformed_marker"
MISSING_TEXT = "missing_text"


@dataclass(frozen=True)
class Document:
    """Original text of an indexed document."""
    collection_id: str
    document_id: str
    text: str


@dataclass(frozen=True)
class RawHit:
    """Single hit as reported by the search backend."""
    document_id: str
    score: float | None = None
    highlights: Mapping[str, Sequence[str]] = field(default_factory=dict)
    metadata: Mapping[str, Any] | None = None
    source: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedHighlight:
    """Highlighted span in document coordinates (half-open)."""
    begin: int
    end: int
    text: str


@dataclass(frozen=True)
class SearchResult:
    """Search result with metadata and resolved highlights.

    Metadata values are copied from the hit as the backend reports them, so a
    numeric timestamp stays numeric.
    """
    collection_id: str
    document_id: str
    title: str
    score: float | None = None
    source: Any = None
    uri: Any = None
    language: Any = None
    timestamp: Any = None
    highlights: tuple[ResolvedHighlight, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """Per-item problem that was contained instead of failing the batch."""
    kind: str
    detail: str
    document_id: str | None = None


@dataclass(frozen=True)
class HighlightResolution:
    """Highlights resolved from fragments plus what was dropped on the way."""
    highlights: tuple[ResolvedHighlight, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    cursor: int = 0
    # Document ranges already matched by fragments of the same hit
    claimed: tuple[tuple[int, int], ...] = ()


@dataclass(frozen=True)
class AssemblyResult:
    """Assembled search results plus per-hit diagnostics."""
    results: tuple[SearchResult, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def count(self, kind: str) -> int:
        return sum(1 for diagnostic in self.diagnostics if diagnostic.kind == kind)
