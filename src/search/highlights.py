from __future__ import annotations

"""Recover document offsets for emphasized terms in highlight fragments.

Elasticsearch reports highlights as short excerpts of the document text with
matched terms wrapped in emphasis markers, but without any offsets (see
https://github.com/elastic/elasticsearch/issues/5736). The offsets are
recovered by locating the marker-free excerpt in the original text and
shifting the marker positions by the excerpt's start.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from src.search.markers import (
    DEFAULT_MARKER_CLOSE,
    DEFAULT_MARKER_OPEN,
    FragmentTokenizer,
    MarkerTokenizer,
    TokenizedFragment,
)
from src.search.types import (
    MALFORMED_MARKER,
    UNRESOLVABLE_HIGHLIGHT,
    Diagnostic,
    HighlightResolution,
    ResolvedHighlight,
)

EXACT = "exact"
TRIM = "trim"
WHITESPACE = "whitespace"
MATCH_STRATEGIES = (EXACT, TRIM, WHITESPACE)

_ELLIPSES = ("...", "…")
_WORD_RE = re.compile(r"\S+")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class _Alignment:
    """Matched part of the plain fragment and where its boundaries fall in the document."""
    window_start: int
    window_end: int
    doc_start: int
    doc_end: int
    offsets: Mapping[int, int]


@dataclass(frozen=True)
class HighlightResolver:
    """Resolve marked fragments against the original document text."""
    marker_open: str = DEFAULT_MARKER_OPEN
    marker_close: str = DEFAULT_MARKER_CLOSE
    strategy: str = TRIM
    min_anchor_ratio: float = 0.5
    html_encoded: bool = False
    tokenizer: FragmentTokenizer | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.strategy not in MATCH_STRATEGIES:
            raise ValueError(f"Unsupported highlight match strategy: {self.strategy}")
        if not 0.0 < self.min_anchor_ratio <= 1.0:
            raise ValueError("min_anchor_ratio must be in (0, 1]")
        if self.tokenizer is None:
            object.__setattr__(
                self,
                "tokenizer",
                MarkerTokenizer(self.marker_open, self.marker_close, self.html_encoded),
            )

    def resolve_fragment(
        self,
        fragment: str,
        original_text: str,
        cursor: int = 0,
        document_id: str | None = None,
        claimed: Sequence[tuple[int, int]] = (),
    ) -> HighlightResolution:
        """Resolve one fragment, preferring matches at or after ``cursor``.

        Earlier occurrences are only considered when nothing matches after the
        cursor, and never where they overlap a range in ``claimed``.
        """
        claimed = tuple(claimed)
        diagnostics: list[Diagnostic] = []
        tokenized = self.tokenizer.tokenize(fragment)
        if tokenized.malformed:
            diagnostics.append(
                Diagnostic(
                    kind=MALFORMED_MARKER,
                    detail=f"{tokenized.malformed} unbalanced marker(s) in fragment",
                    document_id=document_id,
                )
            )
        spans = tokenized.spans
        if not spans:
            return HighlightResolution(
                diagnostics=tuple(diagnostics), cursor=cursor, claimed=claimed
            )

        window = _content_window(tokenized.plain)
        alignment = None
        clipped: list[tuple[int, int]] = []
        if window is not None:
            # Whitespace and ellipses at the fragment edge are not part of a span
            clipped = [
                (max(span.start, window[0]), min(span.end, window[1])) for span in spans
            ]
            boundaries = sorted({boundary for pair in clipped for boundary in pair})
            alignment = self._align(
                tokenized, window, boundaries, original_text, cursor, claimed
            )
        if alignment is None:
            diagnostics.append(
                Diagnostic(
                    kind=UNRESOLVABLE_HIGHLIGHT,
                    detail="fragment text not found in an unmatched part of the document",
                    document_id=document_id,
                )
            )
            return HighlightResolution(
                diagnostics=tuple(diagnostics), cursor=cursor, claimed=claimed
            )

        highlights: list[ResolvedHighlight] = []
        for span, (start, stop) in zip(spans, clipped):
            expected = tokenized.plain[start:stop]
            if (
                start >= stop
                or start < alignment.window_start
                or stop > alignment.window_end
            ):
                diagnostics.append(
                    Diagnostic(
                        kind=UNRESOLVABLE_HIGHLIGHT,
                        detail=(
                            f"span {tokenized.text_of(span)!r} outside the matched part "
                            "of the fragment"
                        ),
                        document_id=document_id,
                    )
                )
                continue
            begin = alignment.offsets[start]
            end = alignment.offsets[stop]
            if not 0 <= begin <= end <= len(original_text) or not self._same_text(
                original_text[begin:end], expected
            ):
                diagnostics.append(
                    Diagnostic(
                        kind=UNRESOLVABLE_HIGHLIGHT,
                        detail=f"span {expected!r} does not match document text at {begin}:{end}",
                        document_id=document_id,
                    )
                )
                continue
            highlights.append(
                ResolvedHighlight(begin=begin, end=end, text=original_text[begin:end])
            )
        return HighlightResolution(
            highlights=tuple(highlights),
            diagnostics=tuple(diagnostics),
            cursor=max(cursor, alignment.doc_end),
            claimed=claimed + ((alignment.doc_start, alignment.doc_end),),
        )

    def resolve_fragments(
        self,
        fragments: Iterable[str],
        original_text: str,
        document_id: str | None = None,
    ) -> HighlightResolution:
        """Resolve fragments of one hit in delivery order with a forward cursor."""
        highlights: list[ResolvedHighlight] = []
        diagnostics: list[Diagnostic] = []
        cursor = 0
        claimed: tuple[tuple[int, int], ...] = ()
        for fragment in fragments:
            resolution = self.resolve_fragment(
                fragment,
                original_text,
                cursor=cursor,
                document_id=document_id,
                claimed=claimed,
            )
            highlights.extend(resolution.highlights)
            diagnostics.extend(resolution.diagnostics)
            cursor = resolution.cursor
            claimed = resolution.claimed
        return HighlightResolution(
            highlights=tuple(highlights),
            diagnostics=tuple(diagnostics),
            cursor=cursor,
            claimed=claimed,
        )

    def _align(
        self,
        tokenized: TokenizedFragment,
        window: tuple[int, int],
        boundaries: list[int],
        text: str,
        cursor: int,
        claimed: tuple[tuple[int, int], ...],
    ) -> _Alignment | None:
        """Find where the plain fragment sits in the document text."""
        if self.strategy == WHITESPACE:
            return _align_whitespace(tokenized.plain, window, boundaries, text, cursor, claimed)
        alignment = _align_exact(tokenized.plain, window, boundaries, text, cursor, claimed)
        if alignment is not None or self.strategy == EXACT:
            return alignment
        return self._align_trimmed(tokenized, window, boundaries, text, cursor, claimed)

    def _align_trimmed(
        self,
        tokenized: TokenizedFragment,
        window: tuple[int, int],
        boundaries: list[int],
        text: str,
        cursor: int,
        claimed: tuple[tuple[int, int], ...],
    ) -> _Alignment | None:
        """Drop whole words from either end of the fragment until it matches."""
        start, end = window
        words = [
            (start + match.start(), start + match.end())
            for match in _WORD_RE.finditer(tokenized.plain[start:end])
        ]
        min_length = (end - start) * self.min_anchor_ratio
        for dropped in range(1, len(words)):
            for lead in range(dropped + 1):
                trail = dropped - lead
                candidate = (words[lead][0], words[len(words) - 1 - trail][1])
                if candidate[1] - candidate[0] < min_length:
                    continue
                if not any(
                    candidate[0] <= max(span.start, start) and min(span.end, end) <= candidate[1]
                    for span in tokenized.spans
                ):
                    continue
                alignment = _align_exact(
                    tokenized.plain, candidate, boundaries, text, cursor, claimed
                )
                if alignment is not None:
                    return alignment
        return None

    def _same_text(self, found: str, expected: str) -> bool:
        if self.strategy == WHITESPACE:
            return _collapse(found) == _collapse(expected)
        return found == expected


def resolve(
    fragment: str,
    original_text: str,
    marker_open: str = DEFAULT_MARKER_OPEN,
    marker_close: str = DEFAULT_MARKER_CLOSE,
) -> list[ResolvedHighlight]:
    """Return the emphasized spans of ``fragment`` in ``original_text`` coordinates."""
    resolver = HighlightResolver(marker_open=marker_open, marker_close=marker_close)
    return list(resolver.resolve_fragment(fragment, original_text).highlights)


def _content_window(plain: str) -> tuple[int, int] | None:
    """Strip surrounding whitespace and truncation ellipses."""
    start, end = 0, len(plain)
    changed = True
    while changed and start < end:
        changed = False
        while start < end and plain[start].isspace():
            start += 1
            changed = True
        while end > start and plain[end - 1].isspace():
            end -= 1
            changed = True
        for ellipsis in _ELLIPSES:
            if plain.startswith(ellipsis, start, end):
                start += len(ellipsis)
                changed = True
            if plain.endswith(ellipsis, start, end):
                end -= len(ellipsis)
                changed = True
    if start >= end:
        return None
    return start, end


def _search_origins(cursor: int) -> tuple[int, ...]:
    return (cursor, 0) if cursor > 0 else (0,)


def _overlaps(begin: int, end: int, claimed: tuple[tuple[int, int], ...]) -> bool:
    return any(begin < stop and start < end for start, stop in claimed)


def _find_unclaimed(
    text: str, needle: str, cursor: int, claimed: tuple[tuple[int, int], ...]
) -> int:
    for origin in _search_origins(cursor):
        index = text.find(needle, origin)
        while index != -1:
            if not _overlaps(index, index + len(needle), claimed):
                return index
            index = text.find(needle, index + 1)
    return -1


def _align_exact(
    plain: str,
    window: tuple[int, int],
    boundaries: list[int],
    text: str,
    cursor: int,
    claimed: tuple[tuple[int, int], ...] = (),
) -> _Alignment | None:
    start, end = window
    index = _find_unclaimed(text, plain[start:end], cursor, claimed)
    if index == -1:
        return None
    offsets = {
        boundary: index + boundary - start
        for boundary in boundaries
        if start <= boundary <= end
    }
    return _Alignment(
        window_start=start,
        window_end=end,
        doc_start=index,
        doc_end=index + end - start,
        offsets=offsets,
    )


def _align_whitespace(
    plain: str,
    window: tuple[int, int],
    boundaries: list[int],
    text: str,
    cursor: int,
    claimed: tuple[tuple[int, int], ...] = (),
) -> _Alignment | None:
    """Match with any whitespace run standing for any other whitespace run."""
    start, end = window
    cuts = [start] + [b for b in boundaries if start < b < end] + [end]
    pattern = re.compile(
        "".join(f"({_whitespace_pattern(plain[a:b])})" for a, b in zip(cuts, cuts[1:]))
    )
    match = None
    for origin in _search_origins(cursor):
        match = pattern.search(text, origin)
        while match is not None and _overlaps(match.start(), match.end(), claimed):
            match = pattern.search(text, match.start() + 1)
        if match is not None:
            break
    if match is None:
        return None
    offsets = {cut: match.start(group) for group, cut in enumerate(cuts[:-1], start=1)}
    offsets[end] = match.end()
    return _Alignment(
        window_start=start,
        window_end=end,
        doc_start=match.start(),
        doc_end=match.end(),
        offsets=offsets,
    )


def _whitespace_pattern(piece: str) -> str:
    return r"\s+".join(re.escape(part) for part in _WHITESPACE_RE.split(piece))


def _collapse(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()
