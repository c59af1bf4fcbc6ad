"""Matching comments of one revision to comments of another."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from constants import COMMENT_MATCH_THRESHOLD
from extraction.snapshot import CommentSnapshot
from .overlap import word_overlap

logger = logging.getLogger("talk_structure")


@dataclass
class MatchResult:
    """Links from current entities to other entities, keyed by current index.

    The links are injective: an other entity is matched by at most one
    current entity.
    """

    match: Dict[int, int] = field(default_factory=dict)
    match_score: Dict[int, float] = field(default_factory=dict)
    has_poor_match: Set[int] = field(default_factory=set)
    reverse: Dict[int, int] = field(default_factory=dict)

    def link(self, current_index: int, other_index: int, score: Optional[float] = None) -> None:
        previous = self.match.get(current_index)
        if previous is not None and self.reverse.get(previous) == current_index:
            del self.reverse[previous]
        previous_current = self.reverse.get(other_index)
        if previous_current is not None and previous_current != current_index:
            self.match.pop(previous_current, None)
            self.match_score.pop(previous_current, None)

        self.match[current_index] = other_index
        self.reverse[other_index] = current_index
        if score is not None:
            self.match_score[current_index] = score
        self.has_poor_match.discard(current_index)

    def matched_by(self, other_index: int) -> Optional[int]:
        return self.reverse.get(other_index)


def score_comment_pair(candidate: CommentSnapshot, target: CommentSnapshot, is_total_count_equal: bool) -> float:
    """How likely two comments from different revisions are the same comment."""
    does_parent_id_match = candidate.parent_id == target.parent_id
    does_headline_match = candidate.section_headline == target.section_headline

    # The index tells something only if the number of comments didn't change
    does_index_match = candidate.index == target.index and is_total_count_equal

    parts_matched_count = sum(
        1
        for i, html in enumerate(candidate.element_htmls)
        if i < len(target.element_htmls) and html == target.element_htmls[i]
    )
    longest = max(len(candidate.element_htmls), len(target.element_htmls))
    parts_matched_proportion = parts_matched_count / longest if longest else 0
    overlap = 1 if parts_matched_proportion == 1 else word_overlap(candidate.text, target.text)

    return (
        does_parent_id_match * (1 if candidate.parent_id else 0.75)
        + does_headline_match * 1
        + parts_matched_proportion
        + overlap
        + does_index_match * 0.25
    )


class CommentMatcher:
    """Maps current comments to other (newer or older) comments of the same page."""

    def __init__(self, threshold: float = COMMENT_MATCH_THRESHOLD):
        self.threshold = threshold

    def sort_by_match_score(
        self,
        candidates: List[CommentSnapshot],
        target: CommentSnapshot,
        is_total_count_equal: bool
    ) -> List[Tuple[CommentSnapshot, float]]:
        """Score candidates against the target, best first, dropping those at or below the threshold."""
        scored = [
            (candidate, score_comment_pair(candidate, target, is_total_count_equal))
            for candidate in candidates
        ]
        scored = [item for item in scored if item[1] > self.threshold]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def map(self, current: List[CommentSnapshot], other: List[CommentSnapshot]) -> MatchResult:
        """Match comments by author and date, breaking ties by content.

        Args:
            current: Comments of the current revision.
            other: Comments of the other revision.

        Returns:
            A fresh MatchResult.
        """
        result = MatchResult()
        is_total_count_equal = len(current) == len(other)
        other_by_index = {comment.index: comment for comment in other}

        for other_comment in other:
            candidates = [
                comment
                for comment in current
                if comment.author_name == other_comment.author_name
                and comment.date
                and other_comment.date
                and comment.date == other_comment.date
            ]

            if len(candidates) == 1:
                candidate = candidates[0]
                existing = result.match.get(candidate.index)
                if existing is None:
                    result.link(candidate.index, other_comment.index)
                else:
                    ranked = self.sort_by_match_score(
                        [other_by_index[existing], other_comment], candidate, is_total_count_equal
                    )
                    if ranked and ranked[0][0] is other_comment:
                        result.link(candidate.index, other_comment.index)

            elif len(candidates) > 1:
                found = False
                for candidate, score in self.sort_by_match_score(candidates, other_comment, is_total_count_equal):
                    current_score = result.match_score.get(candidate.index)
                    if not found and (not current_score or current_score < score):
                        result.link(candidate.index, other_comment.index, score)
                        found = True
                    elif candidate.index not in result.match:
                        result.has_poor_match.add(candidate.index)

        logger.debug(f"Matched {len(result.match)} of {len(current)} comments")
        return result
