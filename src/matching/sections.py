"""Matching sections of one revision to sections of another."""

import logging
from typing import List, Optional, Tuple

from constants import SECTION_MATCH_CEILING, SECTION_MATCH_FLOOR
from extraction.snapshot import SectionSnapshot
from .comments import MatchResult
from .overlap import word_overlap

logger = logging.getLogger("talk_structure")


def score_section_pair(section: SectionSnapshot, target: SectionSnapshot) -> float:
    does_headline_match = section.headline == target.headline
    does_id_match = section.id == target.id
    does_index_match = section.index == target.index
    does_oldest_comment_match = section.oldest_comment_id == target.oldest_comment_id
    if section.ancestors == target.ancestors:
        ancestors_score = 1
    else:
        ancestors_score = 0.5 * word_overlap(" ".join(section.ancestors), " ".join(target.ancestors))

    return (
        does_headline_match * 1
        + ancestors_score
        + does_oldest_comment_match * 1
        + does_id_match * 0.5
        + does_index_match * 0.001
    )


class SectionMatcher:
    """Finds the counterparts of sections in another revision.

    At least two of the headline, the ancestors and the oldest comment must
    match for a section to be accepted.
    """

    def __init__(self, floor: float = SECTION_MATCH_FLOOR, ceiling: float = SECTION_MATCH_CEILING):
        self.floor = floor
        self.ceiling = ceiling

    def search(self, target: SectionSnapshot, sections: List[SectionSnapshot]) -> Optional[Tuple[SectionSnapshot, float]]:
        """Find the section that matches the target best.

        Returns:
            Tuple of the section and its score, or None.
        """
        best = None
        for section in sections:
            score = score_section_pair(section, target)
            if score >= self.floor and (best is None or score > best[1]):
                best = (section, score)

            # Two sections can't share an id, so nothing can beat this score
            if score >= self.ceiling:
                break
        return best

    def map(self, current: List[SectionSnapshot], other: List[SectionSnapshot]) -> MatchResult:
        """Link current sections to other sections, the best scoring link winning."""
        result = MatchResult()
        for other_section in other:
            found = self.search(other_section, current)
            if found is None:
                continue

            section, score = found
            current_score = result.match_score.get(section.index)
            if current_score is None or score > current_score:
                result.link(section.index, other_section.index, score)

        logger.debug(f"Matched {len(result.match)} of {len(current)} sections")
        return result
