from __future__ import annotations


PLACEHOLDER = "_"
FIRST_HINT_AFTER_SEC = 30
SECOND_HINT_AFTER_SEC = 60


def revealed_indices(word: str, elapsed_sec: int) -> set[int]:
    indices: set[int] = set()
    if elapsed_sec >= FIRST_HINT_AFTER_SEC:
        for idx, ch in enumerate(word):
            if ch.isalnum():
                indices.add(idx)
                break
    if elapsed_sec >= SECOND_HINT_AFTER_SEC and len(word) >= 4:
        indices.add(len(word) // 2)
    return indices


def mask_word(word: str | None, elapsed_sec: int) -> str:
    """Project the secret word for players who still have to guess it.

    Spaces and punctuation are always visible; letters and digits are
    replaced by ``_`` unless a hint has unlocked them.
    """
    if not word:
        return ""
    shown = revealed_indices(word, elapsed_sec)
    return "".join(
        ch if (not ch.isalnum() or idx in shown) else PLACEHOLDER
        for idx, ch in enumerate(word)
    )
