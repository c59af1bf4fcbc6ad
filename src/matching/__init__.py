"""Cross-revision matching of comments and sections."""

from .comments import CommentMatcher, MatchResult, score_comment_pair
from .overlap import word_overlap
from .report import ChangeReport, CommentChange, SectionChange, compare_snapshots
from .sections import SectionMatcher, score_section_pair

__all__ = [
    "CommentMatcher",
    "MatchResult",
    "score_comment_pair",
    "word_overlap",
    "ChangeReport",
    "CommentChange",
    "SectionChange",
    "compare_snapshots",
    "SectionMatcher",
    "score_section_pair",
]
