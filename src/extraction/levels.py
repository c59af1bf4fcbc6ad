"""Parent/child relations between comments, and outdent handling."""

import logging
from typing import Dict, List, Optional, Tuple

from adapters.base import TreeWalker
from constants import COMMENT_INDEX_ATTR, OUTDENT_SIBLING_LEVEL_THRESHOLD, OUTDENTED_CLASS
from .comments import Comment

logger = logging.getLogger("talk_structure")


def _timestamp(comment: Comment) -> float:
    # Undated comments sort before any dated one
    return comment.date.timestamp() if comment.date else 0


def compute_parent(index: int, comments: List[Comment], visual: bool = False) -> Optional[int]:
    """Find the index of the comment's parent.

    The logical parent of an outdented comment is the one set explicitly.
    Otherwise the nearest earlier comment of the same section with a lower
    level is the parent; a same level sibling with an explicit parent passes
    it on.

    Args:
        index: Index of the comment.
        comments: All comments of the page.
        visual: Use the visual level instead of the logical one.

    Returns:
        Index of the parent, or None.
    """
    comment = comments[index]
    if not visual and comment.outdent_parent_index is not None:
        return comment.outdent_parent_index

    level = comment.level if visual else comment.logical_level
    if level == 0:
        return None

    for i in range(index - 1, -1, -1):
        candidate = comments[i]
        if candidate.section_index != comment.section_index:
            break
        candidate_level = candidate.level if visual else candidate.logical_level
        if candidate_level == level and not visual and candidate.outdent_parent_index is not None:
            return candidate.outdent_parent_index
        if candidate_level < level:
            return i
    return None


class ParentIndex:
    """Memo of parent lookups over one list of comments.

    Must be cleared whenever levels or explicit parents change.
    """

    def __init__(self, comments: List[Comment]):
        self.comments = comments
        self._cache: Dict[Tuple[int, bool], Optional[int]] = {}

    def parent(self, index: int, visual: bool = False) -> Optional[int]:
        key = (index, visual)
        if key not in self._cache:
            self._cache[key] = compute_parent(index, self.comments, visual)
        return self._cache[key]

    def clear(self) -> None:
        self._cache.clear()


def get_children(
    index: int,
    comments: List[Comment],
    indirect: bool = False,
    visual: bool = False,
    allow_siblings: bool = True,
    parents: Optional[ParentIndex] = None
) -> List[int]:
    """Indexes of the replies to a comment.

    Outdented replies separated from the comment by other comments are
    included too.
    """
    parents = parents or ParentIndex(comments)
    comment = comments[index]

    def level_of(c: Comment) -> int:
        return c.level if visual else c.logical_level

    children = []
    for other in comments[index + 1:]:
        if other.section_index == comment.section_index and (
            level_of(other) > level_of(comment)
            or (
                visual
                and allow_siblings
                and level_of(other) == level_of(comment)
                and other.is_outdented
            )
        ):
            if (
                level_of(other) == level_of(comment) + 1
                or indirect
                or parents.parent(other.index) == index
            ):
                children.append(other.index)
            continue

        if not visual and any(c.is_outdented for c in comments):
            for later in comments[other.index + 1:]:
                if later.outdent_parent_index == index:
                    children.append(later.index)
                    break
                if later.section_index != comment.section_index:
                    break
        break

    return children


def process_outdents(parser, comments: List[Comment]) -> None:
    """Raise the logical level of outdented comments and their replies.

    Outdent markers are handled from the last one up, so the levels of nested
    outdents are adjusted before the outer ones.
    """
    adapter = parser.adapter
    if not parser.are_there_outdents():
        return

    for element in reversed(adapter.elements_by_class(parser.root, parser.config.outdent_class)):
        walker = TreeWalker(adapter, parser.root, element, elements_only=True)
        child = None
        while child is None and walker.next_node() is not None:
            value = adapter.get_attr(walker.current, COMMENT_INDEX_ATTR)

            # The first comment can't be outdented
            if value == "0":
                break
            if value is None:
                continue

            child_index = int(value)
            child = comments[child_index]

            parent = None
            for i in range(child_index - 1, -1, -1):
                candidate = comments[i]
                if candidate.section_index != child.section_index:
                    break
                if _timestamp(child) >= _timestamp(candidate):
                    parent = candidate
                    break
            if parent is None:
                break

            if parent.index != child_index - 1:
                child.outdent_parent_index = parent.index

            child_old_logical_level = child.logical_level
            for comment in comments[child_index:]:
                if (
                    comment.section_index != parent.section_index
                    or comment.logical_level < child_old_logical_level
                    or (
                        comment is not child
                        and child.level < OUTDENT_SIBLING_LEVEL_THRESHOLD
                        and comment.level == child.level
                    )
                    or _timestamp(comment) < _timestamp(child)
                ):
                    break
                comment.logical_level = (
                    parent.logical_level + 1 + (comment.logical_level - child_old_logical_level)
                )

            child.is_outdented = True
            adapter.add_class(child.elements[0], OUTDENTED_CLASS)
            logger.debug(f"Comment {child_index} outdented, parent {parent.index}")
