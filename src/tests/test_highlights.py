from __future__ import annotations

"""Highlight offset reconstruction tests."""

import pytest

from src.search.highlights import EXACT, WHITESPACE, HighlightResolver, resolve
from src.search.types import MALFORMED_MARKER, UNRESOLVABLE_HIGHLIGHT, ResolvedHighlight

FOX = "The quick brown fox jumps over the lazy dog"


def mark(text: str, start: int, end: int, ranges: list[tuple[int, int]]) -> str:
    """Wrap absolute ``ranges`` of ``text[start:end]`` in <em> markers."""
    parts: list[str] = []
    position = start
    for begin, finish in ranges:
        parts.append(text[position:begin])
        parts.append(f"<em>{text[begin:finish]}</em>")
        position = finish
    parts.append(text[position:end])
    return "".join(parts)


def test_resolve_single_span() -> None:
    assert resolve("quick <em>brown</em> fox", FOX) == [ResolvedHighlight(10, 15, "brown")]


def test_resolve_multiple_spans_in_fragment() -> None:
    highlights = resolve("<em>quick</em> brown <em>fox</em>", FOX)

    assert [(h.begin, h.end, h.text) for h in highlights] == [(4, 9, "quick"), (16, 19, "fox")]


@pytest.mark.parametrize(
    ("start", "end", "ranges"),
    [
        (0, 43, [(0, 3), (40, 43)]),
        (10, 30, [(16, 19), (20, 25)]),
        (26, 39, [(35, 39)]),
    ],
)
def test_marked_subranges_resolve_to_their_offsets(
    start: int, end: int, ranges: list[tuple[int, int]]
) -> None:
    highlights = resolve(mark(FOX, start, end, ranges), FOX)

    assert [(h.begin, h.end) for h in highlights] == ranges
    assert [h.text for h in highlights] == [FOX[b:e] for b, e in ranges]


def test_resolve_is_idempotent() -> None:
    fragment = "over the <em>lazy</em> dog"

    assert resolve(fragment, FOX) == resolve(fragment, FOX)


def test_resolve_strips_ascii_ellipsis() -> None:
    assert resolve("...over the <em>lazy</em> dog", FOX) == [ResolvedHighlight(35, 39, "lazy")]


def test_resolve_strips_unicode_ellipsis() -> None:
    assert resolve("brown fox <em>jumps</em>…", FOX) == [ResolvedHighlight(20, 25, "jumps")]


def test_resolve_non_ascii_text_uses_character_offsets() -> None:
    text = "Die Straße führt über die Brücke."

    assert resolve("führt über die <em>Brücke</em>.", text) == [
        ResolvedHighlight(26, 32, "Brücke")
    ]


def test_resolve_custom_markers() -> None:
    assert resolve("quick [[brown]] fox", FOX, "[[", "]]") == [ResolvedHighlight(10, 15, "brown")]


def test_resolve_returns_nothing_for_unknown_fragment() -> None:
    resolution = HighlightResolver().resolve_fragment("purple <em>cow</em> grazes", FOX)

    assert resolution.highlights == ()
    assert [d.kind for d in resolution.diagnostics] == [UNRESOLVABLE_HIGHLIGHT]


def test_repeated_phrase_advances_cursor() -> None:
    resolution = HighlightResolver().resolve_fragments(
        ["<em>cat</em>", "<em>cat</em>"], "cat sat. cat ran."
    )

    assert [h.begin for h in resolution.highlights] == [0, 9]


def test_forward_cursor_is_monotonic() -> None:
    text = "the cat and the cat and the cat"
    resolution = HighlightResolver().resolve_fragments(["the <em>cat</em>"] * 3, text)

    begins = [h.begin for h in resolution.highlights]
    assert begins == [4, 16, 28]
    assert begins == sorted(begins)


def test_repeated_fragments_beyond_occurrences_are_dropped() -> None:
    resolution = HighlightResolver().resolve_fragments(["<em>cat</em>"] * 3, "cat sat. cat ran.")

    begins = [h.begin for h in resolution.highlights]
    assert begins == [0, 9]
    assert begins == sorted(begins)
    assert [d.kind for d in resolution.diagnostics] == [UNRESOLVABLE_HIGHLIGHT]


def test_single_occurrence_is_not_matched_twice() -> None:
    resolution = HighlightResolver().resolve_fragments(
        ["the <em>cat</em> sat"] * 2, "the cat sat"
    )

    assert resolution.highlights == (ResolvedHighlight(4, 7, "cat"),)
    assert resolution.claimed == ((0, 11),)


def test_out_of_order_fragment_uses_unmatched_earlier_text() -> None:
    resolution = HighlightResolver().resolve_fragments(
        ["<em>dog</em> ran", "<em>cat</em> sat"], "cat sat. dog ran."
    )

    assert [(h.begin, h.text) for h in resolution.highlights] == [(9, "dog"), (0, "cat")]
    assert resolution.cursor == 16


def test_earlier_text_already_matched_is_not_reused() -> None:
    resolution = HighlightResolver().resolve_fragments(
        ["cat <em>ran</em>", "<em>cat</em> ran"], "cat sat. cat ran."
    )

    assert resolution.highlights == (ResolvedHighlight(13, 16, "ran"),)
    assert [d.kind for d in resolution.diagnostics] == [UNRESOLVABLE_HIGHLIGHT]


def test_unmatched_span_does_not_drop_sibling_span() -> None:
    resolution = HighlightResolver().resolve_fragment(
        "<em>red</em> quick brown <em>fox</em> jumps", FOX
    )

    assert resolution.highlights == (ResolvedHighlight(16, 19, "fox"),)
    assert [d.kind for d in resolution.diagnostics] == [UNRESOLVABLE_HIGHLIGHT]


def test_span_ending_in_edge_whitespace_is_clipped() -> None:
    assert resolve("brown <em>fox </em>", FOX) == [ResolvedHighlight(16, 19, "fox")]


def test_span_ending_in_ellipsis_is_clipped() -> None:
    assert resolve("over the <em>lazy...</em>", FOX) == [ResolvedHighlight(35, 39, "lazy")]


def test_unbalanced_markers_do_not_block_sibling_fragments() -> None:
    resolution = HighlightResolver().resolve_fragments(
        ["quick <em>brown fox", "the <em>lazy</em> dog"], FOX
    )

    assert resolution.highlights == (ResolvedHighlight(35, 39, "lazy"),)
    assert MALFORMED_MARKER in [d.kind for d in resolution.diagnostics]


def test_stray_close_marker_keeps_valid_span() -> None:
    highlights = resolve("<em>quick</em> brown</em> fox", FOX)

    assert highlights == [ResolvedHighlight(4, 9, "quick")]


def test_trim_fallback_recovers_from_trailing_divergence() -> None:
    highlights = resolve("quick brown <em>fox</em> jumps  over", FOX)

    assert highlights == [ResolvedHighlight(16, 19, "fox")]


def test_trim_fallback_gives_up_on_short_anchor() -> None:
    assert resolve("<em>quick</em> red fox", FOX) == []


def test_exact_strategy_does_not_trim() -> None:
    resolver = HighlightResolver(strategy=EXACT)

    resolution = resolver.resolve_fragment("quick brown <em>fox</em> jumps  over", FOX)

    assert resolution.highlights == ()


def test_whitespace_strategy_matches_collapsed_whitespace() -> None:
    text = "The quick\nbrown  fox"
    resolver = HighlightResolver(strategy=WHITESPACE)

    resolution = resolver.resolve_fragment("quick brown <em>fox</em>", text)

    assert resolution.highlights == (ResolvedHighlight(17, 20, "fox"),)


def test_html_encoded_fragments_are_decoded() -> None:
    text = 'Tom & "Jerry" ran'
    resolver = HighlightResolver(html_encoded=True)

    resolution = resolver.resolve_fragment("Tom &amp; &quot;<em>Jerry</em>&quot; ran", text)

    assert resolution.highlights == (ResolvedHighlight(7, 12, "Jerry"),)


def test_resolver_rejects_unknown_strategy() -> None:
    with pytest.raises(ValueError):
        HighlightResolver(strategy="fuzzy")
