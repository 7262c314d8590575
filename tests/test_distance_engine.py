from __future__ import annotations

import pytest

from tm_core.similarity.distance import DistanceEngine

_SAMPLE_PAIRS = [
    ("kitten", "sitting"),
    ("Attack the enemy", "Attack the enemies"),
    ("ab", "ba"),
    ("ca", "abc"),
    ("Save game now", "save the game"),
    ("", "abc"),
    ("flaw", "lawn"),
    ("Open settings menu", "Open the settings"),
]


def test_distance_counts_single_character_edits() -> None:
    engine = DistanceEngine()

    assert engine.distance("kitten", "sitting") == 3
    assert engine.distance("", "abc") == 3
    assert engine.distance("abc", "") == 3
    assert engine.distance("same", "same") == 0


def test_similarity_special_cases() -> None:
    engine = DistanceEngine()

    assert engine.similarity("", "") == 1.0
    assert engine.similarity("abc", "") == 0.0
    assert engine.similarity("", "abc") == 0.0
    assert engine.similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


@pytest.mark.parametrize(
    "text",
    ["", "a", "Attack the enemy", "Ünïcödé text", "  spaced  ", "x" * 200],
)
def test_similarity_of_string_with_itself_is_one(text: str) -> None:
    engine = DistanceEngine()

    assert engine.similarity(text, text) == 1.0
    assert engine.transposition_similarity(text, text) == 1.0


@pytest.mark.parametrize(("left", "right"), _SAMPLE_PAIRS)
def test_distance_similarity_is_symmetric(left: str, right: str) -> None:
    engine = DistanceEngine()

    assert engine.distance(left, right) == engine.distance(right, left)
    assert engine.similarity(left, right) == engine.similarity(right, left)
    assert engine.transposition_distance(left, right) == engine.transposition_distance(
        right, left
    )


def test_similarity_never_increases_as_edits_grow_at_fixed_length() -> None:
    engine = DistanceEngine()
    base = "abcdefghij"

    scores = [
        engine.similarity(base, "#" * edits + base[edits:]) for edits in range(len(base) + 1)
    ]

    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 1.0
    assert scores[-1] == 0.0


def test_comparison_is_case_insensitive_by_default() -> None:
    assert DistanceEngine().distance("Hello World", "hello world") == 0
    assert DistanceEngine().similarity("HELLO", "hello") == 1.0
    assert DistanceEngine(case_sensitive=True).distance("Hello", "hello") == 1


def test_transposition_distance_counts_adjacent_swap_once() -> None:
    engine = DistanceEngine()

    assert engine.distance("ab", "ba") == 2
    assert engine.transposition_distance("ab", "ba") == 1
    assert engine.transposition_distance("recieve", "receive") == 1
    assert engine.transposition_similarity("recieve", "receive") == pytest.approx(1 - 1 / 7)


@pytest.mark.parametrize(
    ("left", "right", "levenshtein", "osa"),
    [
        ("kitten", "sitting", 3, 3),
        ("Attack the enemy", "Attack the enemies", 3, 3),
        ("ab", "ba", 2, 1),
        ("ca", "abc", 3, 3),
        ("flaw", "lawn", 2, 2),
        ("", "abc", 3, 3),
    ],
)
def test_known_distances(left: str, right: str, levenshtein: int, osa: int) -> None:
    engine = DistanceEngine()

    assert engine.distance(left, right) == levenshtein
    assert engine.transposition_distance(left, right) == osa


@pytest.mark.parametrize(("left", "right"), [("İİİ", "a"), ("İİ", "xy"), ("aİ", "AI")])
def test_similarity_stays_in_unit_range_when_folding_changes_length(
    left: str, right: str
) -> None:
    engine = DistanceEngine()

    for value in (
        engine.similarity(left, right),
        engine.transposition_similarity(left, right),
        engine.similarity(right, left),
    ):
        assert 0.0 <= value <= 1.0


def test_similarity_normalizes_by_folded_length() -> None:
    engine = DistanceEngine()

    # "İ".lower() is "i" followed by a combining dot.
    assert engine.similarity("İ", "i") == pytest.approx(0.5)


def test_sequence_distance_works_on_token_lists() -> None:
    engine = DistanceEngine()

    assert engine.sequence_distance(["attack", "the", "enemy"], ["attack", "enemy"]) == 1
    assert engine.sequence_similarity([], []) == 1.0
    assert engine.sequence_similarity(["a"], []) == 0.0


def test_convenience_views_of_similarity() -> None:
    engine = DistanceEngine()

    assert engine.normalized_distance("kitten", "sitting") == pytest.approx(3 / 7)
    assert engine.similarity_percentage("hello", "helo") == pytest.approx(80.0)
    assert engine.are_similar("hello", "helo", threshold=0.8)
    assert not engine.are_similar("hello", "world")


def test_memo_reuses_results_and_is_released_on_close() -> None:
    with DistanceEngine(memo_size=2) as engine:
        assert engine.distance("kitten", "sitting") == 3
        assert engine.distance("sitting", "kitten") == 3
        stats = engine.memo_statistics()
        assert stats is not None
        assert stats.hits == 1
        assert stats.misses == 1

        engine.distance("a", "b")
        engine.distance("c", "d")
        stats = engine.memo_statistics()
        assert stats is not None
        assert stats.size == 2

    assert engine.memo_statistics() is None
    assert engine.distance("kitten", "sitting") == 3


def test_engine_without_memo_reports_no_statistics() -> None:
    engine = DistanceEngine()

    engine.clear_memo()
    assert engine.memo_statistics() is None
