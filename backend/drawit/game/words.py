from __future__ import annotations

import random
from typing import Iterable, Sequence

from .models import WordOption


CATEGORIES = ("ACTION", "THING", "PLACE")


def _pool(category: str, words: str) -> list[WordOption]:
    return [WordOption(word=w.strip(), category=category) for w in words.split(",") if w.strip()]  # type: ignore[arg-type]


# Pools are disjoint so that each round has its own difficulty.
EASY_WORDS: list[WordOption] = (
    _pool("THING", "Cat, Dog, Sun, Moon, Tree, House, Car, Bird, Fish, Apple")
    + _pool("ACTION", "Run, Jump, Dance, Sing, Sleep, Eat, Drink, Walk, Swim, Fly")
    + _pool("PLACE", "Park, Beach, School, Store, Kitchen, Bedroom, Garden, Library, Hospital, Restaurant")
)

MEDIUM_WORDS: list[WordOption] = (
    _pool("THING", "Airplane, Computer, Guitar, Camera, Bicycle, Ice Cream, Dinosaur, Robot, Umbrella, Hot-Air Balloon")
    + _pool("ACTION", "Climbing, Skydiving, Surfing, Cooking, Reading, Painting, Fishing, Shopping, Driving, Juggling")
    + _pool("PLACE", "Mountain, Ocean, Desert, Forest, City, Island, Castle, Museum, Stadium, Airport")
)

HARD_WORDS: list[WordOption] = (
    _pool("THING", "Telescope, Microscope, Helicopter, Submarine, Skyscraper, Lighthouse, Windmill, Rainbow, Thunderstorm, Roller Coaster")
    + _pool("ACTION", "Photography, Meditation, Exercising, Gardening, Exploring, Inventing, Discovering, Celebrating, Traveling, Sleepwalking")
    + _pool("PLACE", "Pyramid, Rainforest, Waterfall, Volcano, Glacier, Canyon, Observatory, Laboratory, Planetarium, Lost & Found")
)


def pool_for_round(round_number: int) -> list[WordOption]:
    if round_number <= 1:
        return EASY_WORDS
    if round_number == 2:
        return MEDIUM_WORDS
    return HARD_WORDS


def pick_words(words: Sequence[WordOption], count: int, rng: random.Random | None = None) -> list[WordOption]:
    r = rng or random
    uniq: list[WordOption] = []
    seen: set[str] = set()
    for w in words:
        key = w.word.lower()
        if key not in seen:
            seen.add(key)
            uniq.append(w)
    if count >= len(uniq):
        out = list(uniq)
        r.shuffle(out)
        return out
    return r.sample(uniq, count)


def generate_word_options(
    round_number: int,
    exclude: Iterable[str] = (),
    count: int = 3,
    rng: random.Random | None = None,
) -> list[WordOption]:
    """Return ``count`` distinct candidates for the drawer.

    One word per category is taken first (when that category still has unused
    words), the rest is filled from the remaining unused words. Only when the
    round's pool is exhausted are already-used words offered again.
    """
    r = rng or random
    pool = pool_for_round(round_number)
    excluded = {w.lower() for w in exclude}

    fresh = [o for o in pool if o.word.lower() not in excluded]
    stale = [o for o in pool if o.word.lower() in excluded]

    selected: list[WordOption] = []
    for category in CATEGORIES:
        if len(selected) >= count:
            break
        in_category = [o for o in fresh if o.category == category]
        if in_category:
            selected.append(r.choice(in_category))

    for source in (fresh, stale):
        if len(selected) >= count:
            break
        remaining = [o for o in source if o not in selected]
        selected.extend(pick_words(remaining, count - len(selected), rng=r))

    selected = selected[:count]
    r.shuffle(selected)
    return selected
