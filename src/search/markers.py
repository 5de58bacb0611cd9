from __future__ import annotations

"""Tokenizer for emphasis markers inside backend highlight fragments."""

import html
import re
from dataclasses import dataclass
from typing import Iterator, Protocol

DEFAULT_MARKER_OPEN = "<em>"
DEFAULT_MARKER_CLOSE = "</em>"


@dataclass(frozen=True)
class MarkerToken:
    """Range of the marker-free fragment text, emphasized or not."""
    start: int
    end: int
    emphasized: bool


@dataclass(frozen=True)
class TokenizedFragment:
    """Fragment with markers removed and the token ranges over it."""
    plain: str
    tokens: tuple[MarkerToken, ...]
    malformed: int = 0

    @property
    def spans(self) -> tuple[MarkerToken, ...]:
        return tuple(token for token in self.tokens if token.emphasized)

    def text_of(self, token: MarkerToken) -> str:
        return self.plain[token.start : token.end]


class FragmentTokenizer(Protocol):
    def tokenize(self, fragment: str) -> TokenizedFragment:
        ...


@dataclass(frozen=True)
class MarkerTokenizer:
    """Split a fragment on a fixed open/close marker pair.

    Markers are always removed from the plain text. A span that is opened
    twice, closed without being opened, or never closed is counted as
    malformed and its text is kept as plain, unemphasized text. Well-formed
    sibling spans are unaffected.
    """
    marker_open: str = DEFAULT_MARKER_OPEN
    marker_close: str = DEFAULT_MARKER_CLOSE
    html_encoded: bool = False

    def __post_init__(self) -> None:
        if not self.marker_open or not self.marker_close:
            raise ValueError("Emphasis markers must be non-empty strings")

    def tokenize(self, fragment: str) -> TokenizedFragment:
        parts: list[str] = []
        spans: list[tuple[int, int]] = []
        position = 0
        open_at: int | None = None
        malformed = 0
        toggle = self.marker_open == self.marker_close

        for piece, is_marker in self._split(fragment):
            if not is_marker:
                text = html.unescape(piece) if self.html_encoded else piece
                parts.append(text)
                position += len(text)
                continue
            if toggle:
                is_open = open_at is None
            else:
                is_open = piece == self.marker_open
            if is_open:
                if open_at is not None:
                    malformed += 1
                open_at = position
                continue
            if open_at is None:
                malformed += 1
                continue
            if position > open_at:
                spans.append((open_at, position))
            open_at = None

        if open_at is not None:
            malformed += 1

        plain = "".join(parts)
        return TokenizedFragment(
            plain=plain,
            tokens=tuple(_fill_gaps(spans, len(plain))),
            malformed=malformed,
        )

    def _split(self, fragment: str) -> Iterator[tuple[str, bool]]:
        """Yield (piece, is_marker) pairs in fragment order."""
        markers = sorted({self.marker_open, self.marker_close}, key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(marker) for marker in markers))
        last = 0
        for match in pattern.finditer(fragment):
            if match.start() > last:
                yield fragment[last : match.start()], False
            yield match.group(0), True
            last = match.end()
        if last < len(fragment):
            yield fragment[last:], False


def _fill_gaps(spans: list[tuple[int, int]], length: int) -> list[MarkerToken]:
    """Cover [0, length) with plain tokens around the emphasized spans."""
    tokens: list[MarkerToken] = []
    position = 0
    for start, end in spans:
        if start > position:
            tokens.append(MarkerToken(position, start, False))
        tokens.append(MarkerToken(start, end, True))
        position = end
    if position < length:
        tokens.append(MarkerToken(position, length, False))
    return tokens
