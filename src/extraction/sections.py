"""Sections: a heading and everything up to the next heading of the same or higher level."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qs, urlsplit

from adapters.base import Node, TreeWalker
from constants import HEADING_TAGS
from .comments import Comment
from .errors import StructuralReject
from .markup import get_heading_level, is_heading_node, is_metadata_node
from .targets import HeadingTarget, Target, TargetType

logger = logging.getLogger("talk_structure")

HEADLINE_NUMBER_CLASSES = ["mw-headline-number", "mw-editsection-like"]


@dataclass(eq=False)
class Section:
    """A discussion section.

    `comments` lists the indexes of all comments up to the next heading of the
    same or higher level, subsections included; `comments_in_first_chunk` stops
    at the next heading of any level.
    """

    index: int
    headline: str
    level: int
    heading_element: Node
    h_element: Node
    headline_element: Node
    span_end: Optional[Node]
    first_chunk_end: Optional[Node]
    id: Optional[str] = None
    section_number: Optional[int] = None
    source_page_name: Optional[str] = None
    comments: List[int] = field(default_factory=list)
    comments_in_first_chunk: List[int] = field(default_factory=list)
    oldest_comment_index: Optional[int] = None

    @property
    def span_start(self) -> Node:
        return self.heading_element

    def __repr__(self):
        return f"<Section {self.index} {self.headline!r} level={self.level}>"


def parse_edit_section_number(href: str):
    """Get the section number and, for transcluded sections, the source page from an edit link."""
    query = parse_qs(urlsplit(href).query)
    values = query.get("section")
    if not values:
        return None, None

    value = values[0]
    source_page_name = None
    if value.startswith("T-"):
        titles = query.get("title")
        source_page_name = titles[0].replace("_", " ") if titles else None
        value = value[2:]
    try:
        return int(value), source_page_name
    except ValueError:
        return None, source_page_name


class SectionBuilder:
    """Builds a section from its heading target, once comments are known."""

    def __init__(self, parser, heading: HeadingTarget, targets: List[Target], index: int, comments: List[Comment]):
        self.parser = parser
        self.adapter = parser.adapter
        self.config = parser.config
        self.heading = heading
        self.targets = targets
        self.index = index
        self.comments = comments

    def find_h_element(self) -> Node:
        adapter = self.adapter
        element = self.heading.element
        if is_heading_node(adapter, element, only_h=True):
            return element
        for child in adapter.element_children(element):
            if adapter.tag_name(child) in HEADING_TAGS:
                return child
        found = adapter.elements_by_tag(element, *HEADING_TAGS)
        if not found:
            raise StructuralReject("Heading has no <h> element")
        return found[0]

    def parse_headline(self, headline_element: Node) -> str:
        adapter = self.adapter
        classes_to_filter = HEADLINE_NUMBER_CLASSES + list(self.config.exclude_from_headline_classes)
        pieces = []
        for child in adapter.children(headline_element):
            if adapter.is_text(child):
                pieces.append(adapter.text(child))
            elif (
                adapter.is_element(child)
                and not is_metadata_node(adapter, child)
                and not adapter.has_any_class(child, classes_to_filter)
            ):
                pieces.append(adapter.text(child))
        return re.sub(r"\s+", " ", "".join(pieces)).strip()

    def get_last_element(self, following_heading: Optional[Node], walker: TreeWalker) -> Optional[Node]:
        """The last element of the section, given the heading that follows it."""
        adapter = self.adapter
        if following_heading is not None:
            walker.current = following_heading
            while walker.previous_sibling() is None:
                if walker.parent_node() is None:
                    break
            last_element = walker.current
        else:
            last_element = adapter.last_element_child(self.parser.root)

        # The section heading is inside a wrapper, e.g. a closed discussion box
        heading_element = self.heading.element
        while (
            last_element is not None
            and last_element != heading_element
            and adapter.contains(last_element, heading_element)
        ):
            last_element = adapter.last_element_child(last_element)

        if last_element is not None and adapter.has_any_class(last_element, self.config.reflist_talk_classes):
            last_element = adapter.previous_element_sibling(last_element)

        return last_element

    def _comment_indexes(self, targets: List[Target]) -> List[int]:
        return [
            target.comment_index
            for target in targets
            if target.type is TargetType.SIGNATURE and target.comment_index is not None
        ]

    def build(self) -> Section:
        adapter = self.adapter
        h_element = self.find_h_element()
        headline_element = adapter.element_by_class(h_element, "mw-headline") or h_element
        level = get_heading_level(adapter, h_element) or self.heading.level

        section_number = None
        source_page_name = None
        edit_section = adapter.element_by_class(self.heading.element, "mw-editsection")
        if edit_section is not None:
            for link in adapter.elements_by_tag(edit_section, "a"):
                href = adapter.get_attr(link, "href") or ""
                if "action=edit" in href:
                    section_number, source_page_name = parse_edit_section_number(href)
                    break

        position = next(i for i, target in enumerate(self.targets) if target is self.heading)
        next_heading_position = None
        next_not_descendant_position = None
        for i in range(position + 1, len(self.targets)):
            target = self.targets[i]
            if target.type is not TargetType.HEADING:
                continue
            if next_heading_position is None:
                next_heading_position = i
            if target.level <= level:
                next_not_descendant_position = i
                break

        next_heading = (
            self.targets[next_heading_position].element if next_heading_position is not None else None
        )
        next_not_descendant_heading = (
            self.targets[next_not_descendant_position].element
            if next_not_descendant_position is not None
            else None
        )

        walker = TreeWalker(
            adapter,
            self.parser.root,
            elements_only=True,
            accept=lambda n: (
                not is_metadata_node(adapter, n)
                and not adapter.has_class(n, "cd-section-button-container")
            ),
        )
        span_end = self.get_last_element(next_not_descendant_heading, walker)
        if next_heading == next_not_descendant_heading:
            first_chunk_end = span_end
        else:
            first_chunk_end = self.get_last_element(next_heading, walker)

        comments = self._comment_indexes(self.targets[position:next_not_descendant_position])
        comments_in_first_chunk = self._comment_indexes(self.targets[position:next_heading_position])

        oldest_comment_index = None
        for comment_index in comments:
            comment = self.comments[comment_index]
            if comment.date is None:
                continue
            if oldest_comment_index is None or comment.date < self.comments[oldest_comment_index].date:
                oldest_comment_index = comment_index

        for comment_index in comments_in_first_chunk:
            self.comments[comment_index].section_index = self.index

        return Section(
            index=self.index,
            headline=self.parse_headline(headline_element),
            level=level,
            heading_element=self.heading.element,
            h_element=h_element,
            headline_element=headline_element,
            span_end=span_end,
            first_chunk_end=first_chunk_end,
            id=adapter.get_attr(headline_element, "id"),
            section_number=section_number,
            source_page_name=source_page_name,
            comments=comments,
            comments_in_first_chunk=comments_in_first_chunk,
            oldest_comment_index=oldest_comment_index,
        )


def get_section_parent(index: int, sections: List[Section], ignore_first_level: bool = True) -> Optional[int]:
    """Index of the closest earlier section of a higher level.

    Top level sections (level 2 and above) have no parent unless
    `ignore_first_level` is False.
    """
    section = sections[index]
    if ignore_first_level and section.level <= 2:
        return None
    for other in reversed(sections[:index]):
        if other.level < section.level:
            return other.index
    return None


def get_section_ancestors(index: int, sections: List[Section]) -> List[int]:
    """Indexes of the enclosing sections, closest first."""
    ancestors = []
    parent = get_section_parent(index, sections, ignore_first_level=False)
    while parent is not None:
        ancestors.append(parent)
        parent = get_section_parent(parent, sections, ignore_first_level=False)
    return ancestors
