"""Signature and heading targets merged in document order."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cmp_to_key
from typing import Callable, List, Optional, Union

from adapters.base import Node, TreeAdapter


class TargetType(Enum):
    SIGNATURE = "signature"
    HEADING = "heading"


@dataclass(eq=False)
class SignatureTarget:
    """A node marking the end of one author's contribution."""

    element: Node
    author_name: str
    date: Optional[datetime] = None
    timestamp_element: Optional[Node] = None
    timestamp_text: Optional[str] = None
    author_link: Optional[Node] = None
    author_talk_link: Optional[Node] = None
    is_unsigned: bool = False
    is_extra_signature: bool = False
    extra_signatures: List["SignatureTarget"] = field(default_factory=list)
    comment_index: Optional[int] = None  # set once a comment is built from the target

    type = TargetType.SIGNATURE


@dataclass(eq=False)
class HeadingTarget:
    """A node identified as a section title."""

    element: Node
    level: int
    is_wrapper: bool = False

    type = TargetType.HEADING


Target = Union[SignatureTarget, HeadingTarget]


def locate_targets(
    adapter: TreeAdapter,
    find_signatures: Callable[[], List[SignatureTarget]],
    find_headings: Callable[[], List[HeadingTarget]]
) -> List[Target]:
    """Merge the detectors' findings into one list sorted by document order.

    Headings are collected first as signature detection may rewrap text nodes
    but never touches heading elements.
    """
    headings = find_headings()
    signatures = find_signatures()

    def compare(t1: Target, t2: Target) -> int:
        if t1.element == t2.element:
            return 0
        return 1 if adapter.follows(t1.element, t2.element) else -1

    return sorted(list(headings) + list(signatures), key=cmp_to_key(compare))


def signature_targets(targets: List[Target]) -> List[SignatureTarget]:
    return [target for target in targets if target.type is TargetType.SIGNATURE]


def heading_targets(targets: List[Target]) -> List[HeadingTarget]:
    return [target for target in targets if target.type is TargetType.HEADING]
