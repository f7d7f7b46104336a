import random

from drawit.game.words import (
    CATEGORIES,
    EASY_WORDS,
    HARD_WORDS,
    MEDIUM_WORDS,
    generate_word_options,
    pick_words,
    pool_for_round,
)


def _words(options):
    return [o.word for o in options]


def test_pools_are_disjoint_and_cover_every_category():
    easy, medium, hard = (set(_words(p)) for p in (EASY_WORDS, MEDIUM_WORDS, HARD_WORDS))
    assert not easy & medium
    assert not easy & hard
    assert not medium & hard
    for pool in (EASY_WORDS, MEDIUM_WORDS, HARD_WORDS):
        assert {o.category for o in pool} == set(CATEGORIES)


def test_pool_for_round():
    assert pool_for_round(1) is EASY_WORDS
    assert pool_for_round(2) is MEDIUM_WORDS
    assert pool_for_round(3) is HARD_WORDS
    assert pool_for_round(7) is HARD_WORDS


def test_options_are_distinct_and_span_categories():
    rng = random.Random(7)
    for _ in range(20):
        options = generate_word_options(1, count=3, rng=rng)
        assert len(options) == 3
        assert len(set(_words(options))) == 3
        assert {o.category for o in options} == set(CATEGORIES)


def test_options_come_from_the_round_pool():
    rng = random.Random(1)
    round_one = set(_words(generate_word_options(1, rng=rng)))
    round_three = set(_words(generate_word_options(3, rng=rng)))
    assert round_one <= set(_words(EASY_WORDS))
    assert round_three <= set(_words(HARD_WORDS))
    assert not round_one & round_three


def test_used_words_are_skipped_case_insensitively():
    rng = random.Random(3)
    used = [w.lower() for w in _words(EASY_WORDS)[:25]]
    options = generate_word_options(1, exclude=used, rng=rng)
    assert not {w.lower() for w in _words(options)} & set(used)


def test_exhausted_pool_falls_back_to_used_words():
    rng = random.Random(5)
    everything_but_one = _words(EASY_WORDS)[1:]
    options = generate_word_options(1, exclude=everything_but_one, rng=rng)

    assert len(options) == 3
    assert len(set(_words(options))) == 3
    assert EASY_WORDS[0].word in _words(options)


def test_pick_words_dedups_and_caps_count():
    rng = random.Random(0)
    words = EASY_WORDS[:2] + EASY_WORDS[:2]
    picked = pick_words(words, 5, rng=rng)
    assert sorted(_words(picked)) == sorted(_words(EASY_WORDS[:2]))
