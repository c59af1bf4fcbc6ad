"""Detached, serializable snapshots of extracted comments and sections.

Snapshots are taken from copies of the comment elements, so the parsed tree
is left as the extraction left it. They are what revisions are compared by.
"""

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from adapters.base import Node, TreeAdapter
from constants import COMMENT_PART_CLASS, COMMENT_PART_FIRST_CLASS, COMMENT_PART_LAST_CLASS, REPLACED_PART_CLASS
from .comments import Comment
from .markup import is_heading_node, is_metadata_node
from .parser import ExtractionResult

PARSOID_ID_PATTERN = re.compile(r"^mw.{2,3}$")
HIDDEN_CLASSES = ["autonumber", "reference", "references"]


@dataclass
class CommentSnapshot:
    index: int
    id: Optional[str]
    author_name: str
    date: Optional[datetime]
    level: int
    logical_level: int
    element_htmls: List[str] = field(default_factory=list)
    element_names: List[str] = field(default_factory=list)
    element_class_names: List[str] = field(default_factory=list)
    html_to_compare: str = ""
    text_html_to_compare: str = ""
    heading_html_to_compare: str = ""
    text: str = ""
    hidden_elements: List[Dict[str, str]] = field(default_factory=list)
    section_index: Optional[int] = None
    section_headline: Optional[str] = None
    parent_index: Optional[int] = None
    parent_id: Optional[str] = None
    children: List[int] = field(default_factory=list)
    is_outdented: bool = False
    opens_section: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat() if self.date else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CommentSnapshot":
        data = dict(data)
        if data.get("date"):
            data["date"] = datetime.fromisoformat(data["date"])
        return cls(**data)


@dataclass
class SectionSnapshot:
    index: int
    id: Optional[str]
    headline: str
    level: int
    section_number: Optional[int] = None
    comments: List[int] = field(default_factory=list)
    comments_in_first_chunk: List[int] = field(default_factory=list)
    parent_index: Optional[int] = None
    ancestors: List[str] = field(default_factory=list)
    oldest_comment_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SectionSnapshot":
        return cls(**data)


@dataclass
class Snapshot:
    """Everything needed to compare one revision of a page with another."""

    comments: List[CommentSnapshot] = field(default_factory=list)
    sections: List[SectionSnapshot] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "comments": [comment.to_dict() for comment in self.comments],
            "sections": [section.to_dict() for section in self.sections],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        return cls(
            comments=[CommentSnapshot.from_dict(item) for item in data.get("comments", [])],
            sections=[SectionSnapshot.from_dict(item) for item in data.get("sections", [])],
        )


def _path_within(adapter: TreeAdapter, ancestor: Node, node: Node) -> Optional[List[int]]:
    path = []
    while node != ancestor:
        parent = adapter.parent(node)
        if parent is None:
            return None
        path.append(adapter.children(parent).index(node))
        node = parent
    path.reverse()
    return path


def _follow_path(adapter: TreeAdapter, node: Node, path: List[int]) -> Node:
    for position in path:
        node = adapter.children(node)[position]
    return node


class CommentContentFilter:
    """Cleans a copy of a comment of the markup that differs between renders."""

    def __init__(self, adapter: TreeAdapter):
        self.adapter = adapter
        self.hidden_elements: List[Dict[str, str]] = []

    def _hidden_type(self, element: Node) -> str:
        for name in ("reference", "references", "autonumber"):
            if self.adapter.has_class(element, name):
                return name
        return "templateStyles"

    def hide(self, element: Node) -> Node:
        """Replace an element with a numbered marker, keeping its HTML aside."""
        adapter = self.adapter
        hidden_type = self._hidden_type(element)
        self.hidden_elements.append({
            "type": hidden_type,
            "tag_name": adapter.tag_name(element),
            "html": adapter.outer_html(element),
        })
        marker = adapter.create_text(f"\x01{len(self.hidden_elements)}_{hidden_type}\x02")
        parent = adapter.parent(element)
        if parent is not None:
            adapter.insert_before(parent, marker, element)
            adapter.remove(element)
        return marker

    def _remove_data_and_parsoid_attributes(self, element: Node) -> None:
        adapter = self.adapter
        for name, value in adapter.attrs(element).items():
            if name.startswith("data-") or (name == "id" and PARSOID_ID_PATTERN.match(value or "")):
                adapter.remove_attr(element, name)

    def _keep_headline_only(self, element: Node) -> None:
        adapter = self.adapter
        headline = adapter.element_by_class(element, "mw-headline")
        if headline is None:
            found = adapter.elements_by_tag(element, "h1", "h2", "h3", "h4", "h5", "h6")
            headline = found[0] if found else None
        if headline is None:
            return

        number = adapter.element_by_class(headline, "mw-headline-number")
        if number is not None:
            adapter.remove(number)
        headline_children = adapter.children(headline)
        for child in adapter.children(element):
            adapter.remove(child)
        for child in headline_children:
            adapter.append_child(element, child)

    def filter(self, element: Node) -> Node:
        """Clean the element in place.

        Returns:
            The element, or the marker that replaced it.
        """
        adapter = self.adapter
        if is_heading_node(adapter, element):
            self._keep_headline_only(element)

        self._remove_data_and_parsoid_attributes(element)
        for node in list(adapter.descendants(element)):
            if adapter.is_element(node):
                self._remove_data_and_parsoid_attributes(node)

        # Empty anchors
        for span in adapter.elements_by_tag(element, "span"):
            if adapter.get_attr(span, "id") and len(adapter.attrs(span)) == 1 and not adapter.text(span):
                adapter.remove(span)

        for node in list(adapter.descendants(element)):
            if adapter.is_comment_node(node):
                adapter.remove(node)

        if adapter.has_class(element, "references") or is_metadata_node(adapter, element):
            return self.hide(element)

        to_hide = [
            node
            for node in [element] + list(adapter.descendants(element))
            if adapter.is_element(node)
            and (adapter.has_any_class(node, HIDDEN_CLASSES) or is_metadata_node(adapter, node))
        ]
        for node in to_hide:
            marker = self.hide(node)
            if node == element:
                element = marker
        return element


def html_to_compare(adapter: TreeAdapter, element: Node) -> str:
    """HTML of an element normalized for comparing revisions.

    A <div> wrapper is compared by its content, as the same comment may or may
    not get the wrapper depending on whether it has replies.
    """
    for svg in adapter.elements_by_tag(element, "svg"):
        adapter.remove(svg)
    for link in adapter.elements_by_class(element, "ext-discussiontools-init-timestamplink"):
        adapter.remove_attr(link, "href")

    if adapter.tag_name(element) == "DIV" and not adapter.has_class(element, "mw-heading"):
        adapter.remove_class(element, COMMENT_PART_CLASS, COMMENT_PART_FIRST_CLASS, COMMENT_PART_LAST_CLASS)
        if adapter.attrs(element) and adapter.get_attr(element, "class") != REPLACED_PART_CLASS:
            last_child = adapter.last_child(element)
            if adapter.is_text(last_child) and adapter.text(last_child) == "\n":
                adapter.remove(last_child)
            return adapter.outer_html(element)
        return adapter.inner_html(element)
    return adapter.inner_html(element) or adapter.text(element)


def snapshot_comment(adapter: TreeAdapter, result: ExtractionResult, comment: Comment) -> CommentSnapshot:
    content_filter = CommentContentFilter(adapter)

    copies = []
    signature_copy = None
    for element in comment.elements:
        copy = adapter.clone_deep(element)
        path = _path_within(adapter, element, comment.signature_element)
        if path is not None:
            signature_copy = _follow_path(adapter, copy, path)
        copies.append(copy)

    element_htmls = []
    filtered = []
    for copy in copies:
        copy = content_filter.filter(copy)
        filtered.append(copy)
        element_htmls.append(adapter.outer_html(copy))

    htmls = []
    text_htmls = []
    heading_htmls = []
    for copy in filtered:
        html = html_to_compare(adapter, copy)
        htmls.append(html)
        if is_heading_node(adapter, copy):
            heading_htmls.append(html)
        else:
            text_htmls.append(html)

    if signature_copy is not None and adapter.parent(signature_copy) is not None:
        adapter.remove(signature_copy)
    text = "\n".join(adapter.text(copy) for copy in filtered).strip()

    section = result.section_of(comment)
    parent_index = result.get_parent(comment.index)
    return CommentSnapshot(
        index=comment.index,
        id=comment.id,
        author_name=comment.author_name,
        date=comment.date,
        level=comment.level,
        logical_level=comment.logical_level,
        element_htmls=element_htmls,
        element_names=[adapter.tag_name(copy) for copy in filtered],
        element_class_names=[adapter.get_attr(copy, "class") or "" for copy in filtered],
        html_to_compare="\n".join(htmls).strip(),
        text_html_to_compare="\n".join(text_htmls).strip(),
        heading_html_to_compare="".join(heading_htmls).strip(),
        text=text,
        hidden_elements=content_filter.hidden_elements,
        section_index=comment.section_index,
        section_headline=section.headline if section else None,
        parent_index=parent_index,
        parent_id=result.comments[parent_index].id if parent_index is not None else None,
        children=result.get_children(comment.index),
        is_outdented=comment.is_outdented,
        opens_section=comment.opens_section,
    )


def take_snapshot(adapter: TreeAdapter, result: ExtractionResult) -> Snapshot:
    """Snapshot all comments and sections of an extraction."""
    comments = [snapshot_comment(adapter, result, comment) for comment in result.comments]

    sections = []
    for section in result.sections:
        oldest = section.oldest_comment_index
        sections.append(SectionSnapshot(
            index=section.index,
            id=section.id,
            headline=section.headline,
            level=section.level,
            section_number=section.section_number,
            comments=list(section.comments),
            comments_in_first_chunk=list(section.comments_in_first_chunk),
            parent_index=result.get_section_parent(section.index),
            ancestors=[result.sections[i].headline for i in result.get_section_ancestors(section.index)],
            oldest_comment_id=result.comments[oldest].id if oldest is not None else None,
        ))

    return Snapshot(comments=comments, sections=sections)
