"""Changes between two revisions of a page."""

import logging
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from extraction.snapshot import Snapshot
from .comments import CommentMatcher
from .sections import SectionMatcher

logger = logging.getLogger("talk_structure")


@dataclass
class CommentChange:
    current_index: Optional[int]
    other_index: Optional[int]
    id: Optional[str]
    author_name: str
    edited: bool = False


@dataclass
class SectionChange:
    current_index: int
    other_index: int
    headline: str
    other_headline: str

    @property
    def renamed(self) -> bool:
        return self.headline != self.other_headline


@dataclass
class ChangeReport:
    """What happened to the comments of the current revision in the other one."""

    matched: List[CommentChange] = field(default_factory=list)
    added: List[CommentChange] = field(default_factory=list)
    removed: List[CommentChange] = field(default_factory=list)
    poorly_matched: List[int] = field(default_factory=list)
    sections: List[SectionChange] = field(default_factory=list)

    @property
    def edited(self) -> List[CommentChange]:
        return [change for change in self.matched if change.edited]

    @property
    def renamed_sections(self) -> List[SectionChange]:
        return [change for change in self.sections if change.renamed]

    def to_dict(self) -> dict:
        return {
            "edited": [asdict(change) for change in self.edited],
            "added": [asdict(change) for change in self.added],
            "removed": [asdict(change) for change in self.removed],
            "poorly_matched": list(self.poorly_matched),
            "renamed_sections": [
                {**asdict(change), "renamed": True} for change in self.renamed_sections
            ],
            "matched_count": len(self.matched),
        }


def compare_snapshots(current: Snapshot, other: Snapshot) -> ChangeReport:
    """Match two snapshots of a page and report the differences.

    A current comment with no match is reported removed unless it has a poor
    match, which means it most likely exists but can't be told apart from a
    similar comment.
    """
    report = ChangeReport()
    comment_matches = CommentMatcher().map(current.comments, other.comments)
    other_by_index = {comment.index: comment for comment in other.comments}

    for comment in current.comments:
        other_index = comment_matches.match.get(comment.index)
        if other_index is not None:
            other_comment = other_by_index[other_index]
            report.matched.append(CommentChange(
                current_index=comment.index,
                other_index=other_index,
                id=comment.id,
                author_name=comment.author_name,
                edited=comment.html_to_compare != other_comment.html_to_compare,
            ))
        elif comment.index in comment_matches.has_poor_match:
            report.poorly_matched.append(comment.index)
        else:
            report.removed.append(CommentChange(
                current_index=comment.index,
                other_index=None,
                id=comment.id,
                author_name=comment.author_name,
            ))

    for other_comment in other.comments:
        if comment_matches.matched_by(other_comment.index) is None:
            report.added.append(CommentChange(
                current_index=None,
                other_index=other_comment.index,
                id=other_comment.id,
                author_name=other_comment.author_name,
            ))

    section_matches = SectionMatcher().map(current.sections, other.sections)
    other_sections = {section.index: section for section in other.sections}
    for section in current.sections:
        other_index = section_matches.match.get(section.index)
        if other_index is None:
            continue
        report.sections.append(SectionChange(
            current_index=section.index,
            other_index=other_index,
            headline=section.headline,
            other_headline=other_sections[other_index].headline,
        ))

    logger.info(
        f"{len(report.edited)} edited, {len(report.added)} added, {len(report.removed)} removed comments"
    )
    return report
