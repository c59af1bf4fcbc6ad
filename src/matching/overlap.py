"""Word overlap between two texts."""

import re
from typing import List

WORD_PATTERN = re.compile(r"[^\W\d_]{2,}")


def _unique_words(text: str, case_insensitive: bool) -> List[str]:
    if case_insensitive:
        text = text.lower()
    words = []
    seen = set()
    for word in WORD_PATTERN.findall(text):
        if word not in seen:
            seen.add(word)
            words.append(word)
    return words


def array_overlap(first: List[str], second: List[str]) -> float:
    """Share of the second list's items found in the first, counting unmatched items of the first too."""
    if not first or not second:
        return 0

    second_set = set(second)
    total = len(second)
    overlap = 0
    for item in first:
        if item in second_set:
            overlap += 1
        else:
            total += 1
    return overlap / total


def word_overlap(text1: str, text2: str, case_insensitive: bool = False) -> float:
    """Proportion of unique words shared by two texts, from 0 to 1.

    Words are runs of two or more letters.
    """
    return array_overlap(_unique_words(text1, case_insensitive), _unique_words(text2, case_insensitive))
