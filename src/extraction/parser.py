"""Page parser: finds targets and turns them into comments and sections."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from adapters.base import Node, TreeAdapter
from adapters.soup import SoupTreeAdapter
from constants import COMMENT_LEVEL_CLASS, COMMENT_PART_CLASS, LIST_AND_ITEM_TAGS, LIST_TAGS, NO_SIGNATURE_TAGS
from .comments import Comment, CommentBuilder
from .errors import StructuralReject
from .levels import ParentIndex, get_children, process_outdents
from .markup import MarkupConfig, is_inline
from .sections import Section, SectionBuilder, get_section_ancestors, get_section_parent
from .signatures import LinkClassifier, SignatureFinder, find_headings
from .targets import Target, heading_targets, locate_targets, signature_targets

logger = logging.getLogger("talk_structure")

DT_REPLY_BUTTONS_CLASS = "ext-discussiontools-init-replylink-buttons"
DT_REPLY_BUTTONS_COMMENT_PREFIX = "__DTREPLYBUTTONS__"


@dataclass
class ExtractionResult:
    """Comments, sections and targets of one page, in document order."""

    comments: List[Comment]
    sections: List[Section]
    targets: List[Target]
    parents: ParentIndex = field(init=False, repr=False)

    def __post_init__(self):
        self.parents = ParentIndex(self.comments)

    def get_parent(self, comment_index: int, visual: bool = False) -> Optional[int]:
        return self.parents.parent(comment_index, visual)

    def get_children(self, comment_index: int, indirect: bool = False, visual: bool = False) -> List[int]:
        return get_children(comment_index, self.comments, indirect=indirect, visual=visual, parents=self.parents)

    def get_section_parent(self, section_index: int) -> Optional[int]:
        return get_section_parent(section_index, self.sections)

    def get_section_ancestors(self, section_index: int) -> List[int]:
        return get_section_ancestors(section_index, self.sections)

    def section_of(self, comment: Comment) -> Optional[Section]:
        if comment.section_index is None:
            return None
        return self.sections[comment.section_index]


class PageParser:
    """Extracts the discussion structure from a parsed page.

    Parsing mutates the tree: signatures and timestamps get wrapped into
    spans, some lists get split and comment elements get marked with classes.
    Parse each tree once.
    """

    def __init__(self, adapter: TreeAdapter, config: MarkupConfig = None):
        self.adapter = adapter
        self.config = config or MarkupConfig()
        self.root = adapter.root
        self.links = LinkClassifier(adapter, self.config)
        self.existing_comment_ids = set()
        self.reject_classes: List[str] = []
        self.no_signature_elements: List[Node] = []
        self._are_there_outdents: Optional[bool] = None

    def init(self) -> None:
        """Set up the classes and elements the heuristics rely on."""
        adapter = self.adapter
        self.reject_classes = [
            COMMENT_PART_CLASS,
            # Extension:Translate
            "mw-pt-languages",
            "mw-archivedtalk",
            "ombox",
            *self.config.closed_discussion_classes,
            self.config.outdent_class,
        ]
        self.no_signature_elements = [
            node
            for node in adapter.descendants(self.root)
            if adapter.is_element(node)
            and (
                adapter.tag_name(node) in NO_SIGNATURE_TAGS
                or adapter.has_any_class(node, self.config.no_signature_classes)
            )
        ]

    def process_and_remove_dt_markup(self) -> None:
        """Remove DiscussionTools markers and reply buttons."""
        adapter = self.adapter
        elements = []
        for span in adapter.elements_by_tag(self.root, "span"):
            if (
                adapter.get_attr(span, "data-mw-comment-start") is not None
                or adapter.get_attr(span, "data-mw-comment-end") is not None
                or (
                    adapter.get_attr(span, "data-mw-thread-id") is not None
                    and not adapter.classes(span)
                    and not adapter.text(span)
                )
            ):
                elements.append(span)
        for element in adapter.elements_by_class(self.root, DT_REPLY_BUTTONS_CLASS):
            if element not in elements:
                elements.append(element)
        for element in elements:
            adapter.remove(element)

        for node in list(adapter.descendants(self.root)):
            if adapter.is_comment_node(node) and adapter.text(node).startswith(DT_REPLY_BUTTONS_COMMENT_PREFIX):
                adapter.remove(node)

        if elements:
            logger.debug(f"Removed {len(elements)} DiscussionTools elements")

    def find_targets(self) -> List[Target]:
        """Find signatures and headings, in document order."""
        self.init()
        self.process_and_remove_dt_markup()
        finder = SignatureFinder(self.adapter, self.config, self.no_signature_elements)
        return locate_targets(
            self.adapter,
            finder.find_signatures,
            lambda: find_headings(self.adapter, self.no_signature_elements),
        )

    def are_there_outdents(self) -> bool:
        if self._are_there_outdents is None:
            self._are_there_outdents = (
                self.adapter.element_by_class(self.root, self.config.outdent_class) is not None
            )
        return self._are_there_outdents

    def get_top_elements_with_text(
        self,
        element: Node,
        only_children_without_comment_level: bool = False
    ) -> Tuple[List[Node], int]:
        """Descend through list wrappers that don't add any text of their own.

        Returns:
            Tuple of the topmost elements that contain the text, and the number
            of list levels passed on the way.
        """
        adapter = self.adapter
        # Whitespace is dropped to skip whitespace text nodes between list elements
        part_text = re.sub(r"\s+", "", adapter.text(element))

        def is_wrapper_child(child: Node) -> bool:
            tag = adapter.tag_name(child)
            return (
                tag in LIST_AND_ITEM_TAGS
                and (
                    not only_children_without_comment_level
                    or tag in ("DD", "LI")
                    or adapter.has_class(child, COMMENT_LEVEL_CLASS)
                )
            ) or (not adapter.text(child).strip() and bool(is_inline(adapter, child)))

        children = [element]
        levels_passed = 0
        while True:
            nodes = children
            children = [child for node in nodes for child in adapter.element_children(node)]
            if adapter.tag_name(nodes[0]) in LIST_TAGS:
                levels_passed += 1
            if not (
                children
                and all(is_wrapper_child(child) for child in children)
                and re.sub(r"\s+", "", "".join(adapter.text(child) for child in children)) == part_text
            ):
                break

        return nodes, levels_passed

    def split_parent_after_node(self, node: Node) -> Tuple[Optional[Node], Optional[Node]]:
        """Move the nodes after `node` out of its parent into a clone placed after the parent.

        Returns:
            Tuple of the parent and its clone.
        """
        adapter = self.adapter
        parent = adapter.parent_element(node)
        if parent is None:
            return None, None

        clone = adapter.clone_shallow(parent)
        while True:
            last_child = adapter.last_child(parent)
            if last_child is None or last_child == node:
                break
            adapter.insert_before(clone, last_child, adapter.first_child(clone))

        grandparent = adapter.parent_element(parent)
        if adapter.element_children(clone) and grandparent is not None:
            adapter.insert_before(grandparent, clone, adapter.next_sibling(parent))
        return parent, clone

    def parse(self) -> ExtractionResult:
        """Run the whole extraction over the tree."""
        if self.adapter.elements_by_class(self.root, COMMENT_PART_CLASS, 1):
            logger.warning("The tree has already been parsed; its comments will be rejected")
        targets = self.find_targets()

        comments: List[Comment] = []
        for signature in signature_targets(targets):
            try:
                comments.append(CommentBuilder(self, signature, targets, len(comments)).build())
            except StructuralReject as e:
                logger.debug(f"Skipped the comment signed by {signature.author_name}: {e}")

        sections: List[Section] = []
        for heading in heading_targets(targets):
            try:
                sections.append(SectionBuilder(self, heading, targets, len(sections), comments).build())
            except StructuralReject as e:
                logger.debug(f"Skipped a section: {e}")

        process_outdents(self, comments)

        logger.info(f"Extracted {len(comments)} comments and {len(sections)} sections")
        return ExtractionResult(comments=comments, sections=sections, targets=targets)


def extract(html: str, features: str = "html.parser", config: MarkupConfig = None) -> Tuple[SoupTreeAdapter, ExtractionResult]:
    """Parse HTML and extract its discussion structure.

    Args:
        html: Page HTML.
        features: Parser backend, "html.parser" or "lxml".
        config: Markup classifications; MediaWiki defaults if omitted.

    Returns:
        Tuple of the adapter over the (now annotated) tree and the result.
    """
    adapter = SoupTreeAdapter(html, features)
    result = PageParser(adapter, config).parse()
    return adapter, result
