"""Comment boundaries, starting from a signature and walking back up the tree."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set, Tuple

from adapters.base import Node, TreeWalker
from constants import (
    COMMENT_INDEX_ATTR,
    COMMENT_LEVEL_CLASS,
    COMMENT_PART_CLASS,
    COMMENT_PART_FIRST_CLASS,
    COMMENT_PART_LAST_CLASS,
    LIST_AND_ITEM_TAGS,
    LIST_TAGS,
    MAX_TRAVERSAL_STEPS,
    REPLACED_PART_CLASS,
    SIGNATURE_CLASS,
    TIMESTAMP_CLASS,
)
from .errors import StructuralReject, TraversalOutcome
from .markup import is_heading_node, is_inline, is_metadata_node
from .targets import SignatureTarget, Target, TargetType

logger = logging.getLogger("talk_structure")

FILE_FIGURE_PATTERN = re.compile(r"\bmw:File/(Thumb|Frame)")
HIDDEN_OR_FLOATING_PATTERN = re.compile(r"float: *(?:left|right)|display: *none")
COMMENT_LEVEL_PATTERN = re.compile(COMMENT_LEVEL_CLASS + r"-(\d+)")


class Step(Enum):
    """How the traversal reached a part."""

    START = "start"
    BACK = "back"
    UP = "up"
    DIVE = "dive"
    REPLACED = "replaced"


class PartKind(Enum):
    """What a part of a comment is."""

    ELEMENT = "element"
    TEXT = "text"
    HEADING = "heading"


@dataclass(eq=False)
class CommentPart:
    node: Node
    kind: PartKind = PartKind.ELEMENT
    has_own_signature: bool = False
    has_foreign_components: bool = False
    step: Step = Step.START


@dataclass(eq=False)
class Comment:
    """One author's contribution, reconstructed from the tree.

    Comments live in one list per extraction and refer to each other and to
    their section by index into the lists.
    """

    index: int
    author_name: str
    date: Optional[datetime]
    signature_element: Node
    timestamp_element: Optional[Node]
    timestamp_text: Optional[str]
    parts: List[CommentPart]
    elements: List[Node]
    highlightables: List[Node]
    level: int
    logical_level: int
    is_unsigned: bool = False
    follows_heading: bool = False
    opens_section: bool = False
    is_outdented: bool = False
    outdent_parent_index: Optional[int] = None
    section_index: Optional[int] = None
    extra_signature_count: int = 0
    id: Optional[str] = None
    traversal: TraversalOutcome = TraversalOutcome.COMPLETE

    def __repr__(self):
        return f"<Comment {self.index} {self.author_name!r} level={self.level}>"


def generate_comment_id(date: Optional[datetime], author_name: Optional[str], existing_ids: Set[str]) -> Optional[str]:
    """Build an id like "202001051234_Author", suffixed on collision."""
    if not date or not author_name:
        return None

    comment_id = date.strftime("%Y%m%d%H%M") + "_" + author_name.replace(" ", "_")
    if comment_id in existing_ids:
        suffix = 2
        while f"{comment_id}_{suffix}" in existing_ids:
            suffix += 1
        comment_id = f"{comment_id}_{suffix}"
    existing_ids.add(comment_id)
    return comment_id


class CommentBuilder:
    """Determines the nodes of the comment ending with a signature.

    The builder mutates the tree: it wraps loose inline parts, splits lists and
    marks the resulting elements with comment classes. Any step may raise
    StructuralReject, in which case no comment is produced.
    """

    def __init__(self, parser, signature: SignatureTarget, targets: List[Target], index: int):
        self.parser = parser
        self.adapter = parser.adapter
        self.config = parser.config
        self.signature = signature
        self.signature_element = signature.element
        self.targets = targets
        self.index = index

        self.parts: List[CommentPart] = []
        self.elements: List[Node] = []
        self.highlightables: List[Node] = []
        self.level = 0
        self.logical_level = 0
        self.traversal = TraversalOutcome.COMPLETE

    def build(self) -> Comment:
        position = next(i for i, target in enumerate(self.targets) if target is self.signature)
        follows_heading = position > 0 and self.targets[position - 1].type is TargetType.HEADING
        preceding_heading = self.targets[position - 1].element if follows_heading else None

        self.collect_parts(preceding_heading)
        self.remove_nested_parts()
        self.wrap_inline_parts()
        self.filter_parts()
        self.parts.reverse()
        self.replace_lists_with_items()
        self.wrap_numbered_list()

        self.elements = [part.node for part in self.parts]
        self.update_highlightables()
        self.update_levels()

        if self.parts[0].kind is PartKind.HEADING and self.level != 0:
            self.parts.pop(0)
            self.elements.pop(0)
        opens_section = self.parts[0].kind is PartKind.HEADING

        self.add_attributes()

        comment = Comment(
            index=self.index,
            author_name=self.signature.author_name,
            date=self.signature.date,
            signature_element=self.signature_element,
            timestamp_element=self.signature.timestamp_element,
            timestamp_text=self.signature.timestamp_text,
            parts=self.parts,
            elements=self.elements,
            highlightables=self.highlightables,
            level=self.level,
            logical_level=self.logical_level,
            is_unsigned=self.signature.is_unsigned,
            follows_heading=follows_heading,
            opens_section=opens_section,
            extra_signature_count=len(self.signature.extra_signatures),
            id=generate_comment_id(
                self.signature.date, self.signature.author_name, self.parser.existing_comment_ids
            ),
            traversal=self.traversal,
        )
        self.signature.comment_index = self.index
        return comment

    # Collecting parts

    def get_start_nodes(self, walker: TreeWalker) -> Tuple[List[CommentPart], Optional[Node]]:
        """Find the nodes the traversal starts from.

        Inline nodes after the signature are part of the comment, up to the
        first block-level node that belongs to something else.
        """
        adapter = self.adapter
        while is_inline(adapter, adapter.parent(walker.current)):
            if walker.parent_node() is None:
                break
        farthest_inline_ancestor = walker.current

        first_foreign_component_after = None
        while first_foreign_component_after is None:
            while True:
                next_sibling = adapter.next_sibling(walker.current)
                if next_sibling is not None and (adapter.is_element(next_sibling) or adapter.is_text(next_sibling)):
                    break
                if walker.parent_node() is None:
                    break
            if walker.next_sibling() is None:
                break
            if not is_inline(adapter, walker.current, True) and not is_metadata_node(adapter, walker.current):
                first_foreign_component_after = walker.current

        parent = adapter.parent(farthest_inline_ancestor)
        parts = []
        if (
            (first_foreign_component_after is not None and adapter.contains(parent, first_foreign_component_after))
            or len(adapter.elements_by_class(parent, SIGNATURE_CLASS, 2)) > 1
            or not self.is_element_eligible(parent, walker, Step.START)
            or any(
                adapter.has_any_class(child, self.parser.reject_classes)
                for child in adapter.element_children(parent)
            )
        ):
            # The inline nodes after the signature, up to a block element
            walker.current = farthest_inline_ancestor
            while walker.next_sibling() is not None:
                if is_inline(adapter, walker.current, True) or is_metadata_node(adapter, walker.current):
                    parts.append(CommentPart(
                        node=walker.current,
                        kind=PartKind.TEXT if adapter.is_text(walker.current) else PartKind.ELEMENT,
                        step=Step.START,
                    ))
                else:
                    break
            parts.reverse()
            walker.current = farthest_inline_ancestor
        else:
            walker.current = parent

        parts.append(CommentPart(node=walker.current, has_own_signature=True, step=Step.START))
        return parts, first_foreign_component_after

    def is_cell_of_multi_comment_table(self, element: Node) -> bool:
        adapter = self.adapter
        if adapter.tag_name(element) not in ("TD", "TH"):
            return False

        table = None
        node = element
        while table is None and node is not None and node != self.parser.root:
            if adapter.tag_name(node) == "TABLE":
                table = node
            node = adapter.parent(node)
        return table is None or len(adapter.elements_by_class(table, SIGNATURE_CLASS, 2)) > 1

    def is_element_eligible(self, element: Node, walker: TreeWalker, step: Step) -> bool:
        adapter = self.adapter
        tag = adapter.tag_name(element)
        previous_element = adapter.previous_element_sibling(element) if tag == "HR" else None
        return not (
            element == walker.root
            or (
                step != Step.UP
                and (
                    adapter.has_any_class(element, self.parser.reject_classes)
                    or (self.config.is_talk_namespace and adapter.has_class(element, "tmbox"))
                )
            )
            or (tag == "META" and adapter.get_attr(element, "property") == "mw:PageProp/toc")
            or adapter.get_attr(element, "id") == "toc"
            or tag == "DT"
            or self.is_cell_of_multi_comment_table(element)
            # Horizontal lines sometimes separate different comments
            or (
                previous_element is not None
                and adapter.element_by_class(previous_element, SIGNATURE_CLASS) is not None
            )
            or (self.config.reject_node is not None and self.config.reject_node(adapter, element))
        )

    def is_other_kind_of_list(self, element: Node) -> bool:
        adapter = self.adapter
        return adapter.tag_name(element) == "UL" and (
            adapter.has_class(element, "gallery") or adapter.get_attr(element, "role") == "navigation"
        )

    def is_intro_list(self, element: Node, check_next_element: bool, last_part_node: Optional[Node] = None) -> bool:
        """Whether a list looks like the introduction of a comment, not a reply."""
        adapter = self.adapter
        tag = adapter.tag_name(element)
        if tag not in LIST_TAGS:
            return False

        previous_element = adapter.previous_element_sibling(element)
        next_element = adapter.next_element_sibling(element)
        result = (
            (tag == "DL" and adapter.tag_name(adapter.first_child(element)) == "DT")
            # Cases like https://ru.wikipedia.org/?diff=103693206
            or (
                tag in ("DL", "UL")
                and previous_element is not None
                and is_heading_node(adapter, previous_element)
                and next_element is not None
                and adapter.tag_name(next_element) not in ("DL", "OL")
                and not self.is_part_of_list(last_part_node, True)
                and adapter.element_by_class(element, SIGNATURE_CLASS) is None
            )
            or self.is_other_kind_of_list(element)
        )

        if check_next_element and not result and next_element is not None and tag != "OL":
            element_levels = self.parser.get_top_elements_with_text(element)[1]
            next_element_levels = self.parser.get_top_elements_with_text(next_element)[1]
            result = (
                next_element_levels > element_levels
                or (
                    element_levels == 1
                    and next_element_levels == element_levels
                    and len(adapter.element_children(element)) > 1
                    and tag != adapter.tag_name(next_element)
                )
            )
        return result

    def is_part_of_list(self, node: Optional[Node], definition_list_only: bool) -> bool:
        if node is None:
            return False
        tags = {"DD", "DL"} if definition_list_only else {"DD", "DL", "LI", "UL"}
        adapter = self.adapter
        return adapter.tag_name(node) in tags or adapter.tag_name(adapter.parent(node)) in tags

    def is_intro(
        self,
        step: Optional[Step],
        stage: int,
        node: Node,
        next_node: Node,
        last_part_node: Optional[Node] = None,
        previous_part: Optional[CommentPart] = None
    ) -> bool:
        """Whether a node introduces the comment (e.g. "Option 1:" above a list) rather than belongs to it."""
        if step != Step.BACK:
            return False
        if previous_part is not None and previous_part.step != Step.UP:
            return False

        adapter = self.adapter
        parent_tag = adapter.tag_name(adapter.parent(node))
        next_tag = adapter.tag_name(next_node)
        next_children = adapter.element_children(next_node) if adapter.is_element(next_node) else []
        next_parent = adapter.parent(next_node)
        previous_sibling = adapter.previous_sibling(node)

        if not (
            parent_tag not in ("DD", "LI")
            or (
                next_tag == "OL"
                and next_children
                and adapter.contains(next_children[0], self.signature_element)
            )
        ):
            return False
        if not (
            next_tag in ("UL", "OL")
            or (
                next_tag == "DL"
                and (
                    stage == 2
                    or (next_parent != self.parser.root and adapter.parent(next_parent) != self.parser.root)
                )
            )
        ):
            return False
        if (
            (adapter.tag_name(node) in LIST_TAGS and not self.is_intro_list(node, stage == 2, last_part_node))
            or (
                adapter.is_text(node)
                and previous_sibling is not None
                and adapter.tag_name(previous_sibling) in LIST_TAGS
                and not self.is_intro_list(previous_sibling, False, last_part_node)
            )
            or (last_part_node is not None and not self.is_part_of_list(last_part_node, False))
        ):
            return False
        # The list ends with the signed item; a longer list is a vote or similar
        return not (
            next_tag in ("UL", "OL")
            and len(next_children) > 1
            and not adapter.contains(next_children[0], self.signature_element)
        )

    def is_unsigned_item(self, part: CommentPart) -> bool:
        """A list item starting with a user link and without nested lists."""
        adapter = self.adapter
        if part.step != Step.BACK or adapter.tag_name(part.node) != "LI" or not self.config.detect_unsigned_items:
            return False
        links = adapter.elements_by_tag(part.node, "a")
        if not links or adapter.elements_by_tag(part.node, "ul", "ol", "dl"):
            return False
        result = self.parser.links.process_link(links[0])
        return bool(result and result[0])

    def traverse_dom(
        self,
        parts: List[CommentPart],
        walker: TreeWalker,
        first_foreign_component_after: Optional[Node],
        preceding_heading: Optional[Node]
    ) -> List[CommentPart]:
        """Go back and up the tree collecting parts until a foreign node is met."""
        adapter = self.adapter
        outcome = TraversalOutcome.EXHAUSTED

        for _ in range(MAX_TRAVERSAL_STEPS):
            step = None
            previous_part = parts[-1]

            if not previous_part.has_own_signature and previous_part.has_foreign_components:
                # Dive into the last child of the previous part
                while True:
                    parent_node = walker.current
                    if walker.last_child() is None:
                        break
                    while (
                        adapter.is_text(walker.current)
                        and not adapter.text(walker.current).strip()
                        and walker.previous_sibling() is not None
                    ):
                        pass
                    if (
                        is_inline(adapter, walker.current, True)
                        or "background-" in (adapter.get_attr(previous_part.node, "style") or "")
                    ):
                        walker.current = parent_node
                        break
                    step = Step.DIVE
                if step != Step.DIVE:
                    outcome = TraversalOutcome.COMPLETE
                    break
            elif walker.previous_sibling() is not None:
                step = Step.BACK
            else:
                if walker.parent_node() is None:
                    outcome = TraversalOutcome.COMPLETE
                    break
                step = Step.UP

            node = walker.current
            if self.is_intro(step, 1, node, previous_part.node, previous_part=previous_part):
                outcome = TraversalOutcome.COMPLETE
                break

            kind = PartKind.TEXT if adapter.is_text(node) else PartKind.ELEMENT
            has_own_signature = False
            has_foreign_components = False
            if kind is PartKind.ELEMENT:
                if not self.is_element_eligible(node, walker, step):
                    outcome = TraversalOutcome.COMPLETE
                    break

                # The parent of a node already claimed by another comment
                if step == Step.UP and adapter.has_class(node, COMMENT_PART_CLASS):
                    raise StructuralReject("Parent of another comment's part reached")

                if is_heading_node(adapter, node):
                    kind = PartKind.HEADING
                has_own_signature = adapter.contains(node, self.signature_element)
                signatures_count = len(adapter.elements_by_class(
                    node, SIGNATURE_CLASS, int(has_own_signature) + 1
                ))
                has_foreign_components = not is_inline(adapter, node) and (
                    signatures_count - int(has_own_signature) > 0
                    or (
                        first_foreign_component_after is not None
                        and adapter.contains(node, first_foreign_component_after)
                        # Cells can contain a signature and a foreign component, while the table
                        # itself can be a comment
                        and not (
                            adapter.tag_name(node) == "TABLE"
                            or "background-" in (adapter.get_attr(node, "style") or "")
                        )
                    )
                    or (
                        preceding_heading is not None
                        and node != preceding_heading
                        and adapter.contains(node, preceding_heading)
                    )
                )

                # A signature-like ending of text that isn't signed by the author
                if (
                    not has_own_signature
                    and not is_inline(adapter, node)
                    and self.config.signature_ending_regexp is not None
                    and self.config.signature_ending_regexp.search(adapter.text(node))
                    and not any(adapter.contains(el, node) for el in self.parser.no_signature_elements)
                ):
                    outcome = TraversalOutcome.COMPLETE
                    break

            parts.append(CommentPart(
                node=node,
                kind=kind,
                has_own_signature=has_own_signature,
                has_foreign_components=has_foreign_components,
                step=step,
            ))
            if kind is PartKind.HEADING:
                outcome = TraversalOutcome.COMPLETE
                break

        self.traversal = outcome
        if outcome is TraversalOutcome.EXHAUSTED:
            logger.warning(f"Traversal from the signature of {self.signature.author_name} hit the step ceiling")
        return parts

    def collect_parts(self, preceding_heading: Optional[Node]) -> None:
        adapter = self.adapter
        walker = TreeWalker(
            adapter,
            self.parser.root,
            self.signature_element,
            accept=lambda n: adapter.is_text(n) or adapter.is_element(n),
        )
        parts, first_foreign_component_after = self.get_start_nodes(walker)
        self.parts = self.traverse_dom(parts, walker, first_foreign_component_after, preceding_heading)

    # Reducing parts

    def remove_nested_parts(self) -> None:
        """Drop parts nested in a later "up" part that has no foreign components."""
        parts = self.parts
        i = len(parts) - 1
        while i >= 0:
            part = parts[i]
            if part.step == Step.UP and not part.has_foreign_components:
                next_dive_index = 0
                for j in range(i - 1, 0, -1):
                    if parts[j].step == Step.DIVE:
                        next_dive_index = j
                        break
                del parts[next_dive_index:i]
                i = next_dive_index
            i -= 1

    def wrap_inline_parts(self) -> None:
        """Wrap runs of sibling inline parts into a block, if they have text."""
        adapter = self.adapter
        parts = self.parts

        sequences = []
        start = None
        enclose = False
        for i in range(len(parts) + 1):
            part = parts[i] if i < len(parts) else None
            if (
                part is not None
                and (start is None or part.step in (Step.BACK, Step.START))
                and not part.has_foreign_components
                and part.kind is not PartKind.HEADING
            ):
                if start is None:
                    # Don't wrap anything inside an inline element
                    if is_inline(adapter, adapter.parent(part.node)):
                        break
                    start = i
                if not enclose and is_inline(adapter, part.node, True) and adapter.text(part.node).strip():
                    enclose = True
            elif start is not None:
                if enclose:
                    sequences.append((start, i - 1))
                start = None
                enclose = False

        for start, end in reversed(sequences):
            wrapper = adapter.create_element("div")
            next_sibling = adapter.next_sibling(parts[start].node)
            parent = adapter.parent(parts[start].node)
            for j in range(end, start - 1, -1):
                adapter.append_child(wrapper, parts[j].node)
            adapter.insert_before(parent, wrapper, next_sibling)
            parts[start:end + 1] = [CommentPart(
                node=wrapper,
                has_own_signature=adapter.contains(wrapper, self.signature_element),
                step=Step.REPLACED,
            )]

    def filter_parts(self) -> None:
        """Drop foreign parts, trailing junk and the introduction of the comment."""
        adapter = self.adapter
        parts = [
            part for part in self.parts
            if not part.has_foreign_components and part.kind is not PartKind.TEXT
        ]

        for i in range(len(parts) - 1, 0, -1):
            node = parts[i].node
            tag = adapter.tag_name(node)
            next_element = adapter.next_element_sibling(node)
            next_first_child = adapter.first_element_child(next_element) if next_element is not None else None
            if (
                (
                    tag == "P"
                    and not adapter.text(node).strip()
                    and all(adapter.tag_name(child) == "BR" for child in adapter.element_children(node))
                )
                or tag == "HR"
                or is_metadata_node(adapter, node)
                or adapter.has_any_class(node, ["references", "reflist-talk"])
                or (
                    tag == "DL"
                    and next_first_child is not None
                    and adapter.first_element_child(next_first_child) == parts[i - 1].node
                )
                or any(adapter.contains(el, node) for el in self.parser.no_signature_elements)
                or (
                    parts[i].step != Step.UP
                    and self.parser.are_there_outdents()
                    and adapter.element_by_class(node, self.config.outdent_class) is not None
                )
            ):
                parts.pop(i)
            else:
                break

        if not parts:
            raise StructuralReject("No parts left after filtering")

        # A line break opening the first paragraph is moved out of it
        first_node = parts[-1].node
        if adapter.tag_name(first_node) == "P":
            first_child = adapter.first_child(first_node)
            if adapter.tag_name(first_child) == "BR":
                adapter.insert_before(adapter.parent(first_node), first_child, first_node)

        start_node = None
        i = len(parts) - 1
        while i >= 1:
            part = parts[i]
            if part.kind is PartKind.HEADING:
                i -= 1
                continue

            if self.is_unsigned_item(part):
                del parts[i:]
                i -= 1
                continue

            if start_node is None:
                start_node = part.node
                if (
                    adapter.tag_name(start_node) in LIST_AND_ITEM_TAGS
                    and not self.is_intro_list(start_node, True, parts[0].node)
                ):
                    break

            next_element = adapter.next_element_sibling(part.node)
            if next_element is not None and self.is_intro(part.step, 2, part.node, next_element, parts[0].node):
                del parts[i:]
            i -= 1

        self.parts = parts

    def is_comment_level(self, i: int, last_part_node: Node) -> bool:
        """Whether a list part stands for the indentation of the comment rather than its content."""
        adapter = self.adapter
        part = self.parts[i]
        tag = adapter.tag_name(part.node)
        next_part = self.parts[i + 1] if i + 1 < len(self.parts) else None
        previous_part = self.parts[i - 1] if i >= 1 else None

        if tag not in LIST_AND_ITEM_TAGS or self.is_other_kind_of_list(part.node):
            return False
        if (
            part.step == Step.UP
            and next_part is not None
            and (
                (
                    tag != "UL"
                    and self.is_part_of_list(next_part.node, False)
                    and next_part.step != Step.REPLACED
                )
                or len(adapter.element_children(part.node)) > 1
            )
            and self.is_part_of_list(last_part_node, True)
        ):
            return False
        return (
            (part.step == Step.UP and (previous_part is None or previous_part.step != Step.BACK))
            or (
                self.is_part_of_list(last_part_node, True)
                and not (part.step == Step.BACK and tag in ("LI", "DD"))
                and not (
                    i != 0
                    and tag in ("UL", "OL")
                    and adapter.tag_name(adapter.previous_element_sibling(part.node)) in ("DL", "UL")
                )
            )
            or (
                tag == "UL"
                and len(adapter.element_children(part.node)) == 1
                and self.is_part_of_list(last_part_node, False)
            )
        )

    def replace_lists_with_items(self) -> None:
        adapter = self.adapter
        last_part_node = self.parts[-1].node
        for i in range(len(self.parts) - 1, -1, -1):
            part = self.parts[i]
            if not self.is_comment_level(i, last_part_node):
                continue

            elements = self.parser.get_top_elements_with_text(part.node)[0]
            if len(elements) > 1:
                self.parts[i:i + 1] = [
                    CommentPart(
                        node=element,
                        has_own_signature=adapter.contains(element, self.signature_element),
                        step=Step.REPLACED,
                    )
                    for element in elements
                ]
            elif elements[0] != part.node:
                part.node = elements[0]
                part.step = Step.REPLACED

    def wrap_numbered_list(self) -> None:
        """Wrap a numbered list that only this comment occupies, so its items don't become levels."""
        adapter = self.adapter
        if len(self.parts) <= 1:
            return

        parent = adapter.parent(self.parts[0].node)
        if adapter.tag_name(parent) != "OL":
            return
        has_own_signature = adapter.contains(parent, self.signature_element)
        if len(adapter.elements_by_class(parent, SIGNATURE_CLASS)) - int(has_own_signature) != 0:
            return

        list_items = [part for part in self.parts if adapter.parent(part.node) == parent]

        # Is the list used as a comment indentation (the comment has parts outside it)?
        used_as_indentation = not any(
            adapter.parent(part.node) != parent and adapter.contains(adapter.parent(part.node), parent)
            for part in self.parts
        )

        next_sibling = adapter.next_sibling(parent)
        parent_parent = adapter.parent(parent)
        if used_as_indentation:
            inner_wrapper = adapter.create_element("dd")
            outer_wrapper = adapter.create_element("dl")
            adapter.append_child(outer_wrapper, inner_wrapper)
        else:
            inner_wrapper = adapter.create_element("div")
            outer_wrapper = inner_wrapper
        adapter.append_child(inner_wrapper, parent)
        adapter.insert_before(parent_parent, outer_wrapper, next_sibling)

        self.parts[0:len(list_items)] = [
            CommentPart(node=inner_wrapper, has_own_signature=True, step=Step.REPLACED)
        ]

    # Highlightables

    def is_highlightable(self, element: Node) -> bool:
        adapter = self.adapter
        return (
            not is_heading_node(adapter, element)
            and not is_metadata_node(adapter, element)
            and not adapter.has_any_class(element, self.config.no_highlight_classes)
            # Shouldn't be the first or last element of the comment
            and not (
                adapter.tag_name(element) == "FIGURE"
                and FILE_FIGURE_PATTERN.search(adapter.get_attr(element, "typeof") or "")
            )
            # Invisible or floating elements
            and not HIDDEN_OR_FLOATING_PATTERN.search(adapter.get_attr(element, "style") or "")
        )

    def update_highlightables(self) -> None:
        self.highlightables = [element for element in self.elements if self.is_highlightable(element)]
        if not self.highlightables:
            raise StructuralReject("Comment has no highlightable elements")
        self.wrap_highlightables()

    def wrap_highlightables(self) -> None:
        """Wrap the first and last highlightables if they can't carry comment styles."""
        adapter = self.adapter
        candidates = [self.highlightables[0]]
        if self.highlightables[-1] != self.highlightables[0]:
            candidates.append(self.highlightables[-1])

        for element in candidates:
            tag = adapter.tag_name(element)
            class_name = adapter.get_attr(element, "class")
            if (
                tag in self.config.bad_highlightable_elements
                or (
                    len(self.highlightables) > 1
                    and tag == "LI"
                    and adapter.tag_name(adapter.parent(element)) == "OL"
                )
                or (class_name and class_name != REPLACED_PART_CLASS)
                or (adapter.get_attr(element, "style") and tag != "LI")
            ):
                wrapper = adapter.create_element("div", REPLACED_PART_CLASS)
                adapter.insert_before(adapter.parent(element), wrapper, element)
                self.elements[self.elements.index(element)] = wrapper
                self.highlightables[self.highlightables.index(element)] = wrapper
                adapter.append_child(wrapper, element)

    def add_attributes(self) -> None:
        adapter = self.adapter
        for element in self.elements:
            adapter.add_class(element, COMMENT_PART_CLASS)
            adapter.set_attr(element, COMMENT_INDEX_ATTR, str(self.index))
        adapter.add_class(self.highlightables[0], COMMENT_PART_FIRST_CLASS)
        adapter.add_class(self.highlightables[-1], COMMENT_PART_LAST_CLASS)

    # Levels

    def get_lists_up_tree(self, initial: Node, include_first_match: bool = False) -> List[Optional[Node]]:
        """The lists the element is nested in, outermost first.

        An ancestor already marked with a comment level stands for that many
        levels, represented by placeholders.
        """
        adapter = self.adapter
        lists = []
        walker = TreeWalker(adapter, self.parser.root, initial, elements_only=True)
        while walker.parent_node() is not None:
            element = walker.current
            if adapter.tag_name(element) not in LIST_TAGS:
                continue
            if adapter.has_class(element, COMMENT_LEVEL_CLASS):
                match = COMMENT_LEVEL_PATTERN.search(adapter.get_attr(element, "class") or "")
                if match:
                    to_add = [None] * int(match.group(1))
                    if include_first_match and to_add:
                        to_add[-1] = element
                    lists[0:0] = to_add
                return lists
            lists.insert(0, element)
        return lists

    def review_dives(self) -> bool:
        """Drop leading elements the traversal dived into that sit deeper than the comment end.

        Returns:
            Whether the elements changed.
        """
        adapter = self.adapter
        if len(self.elements) <= 1 or not any(part.step == Step.DIVE for part in self.parts):
            return False

        levels = [self.get_lists_up_tree(element) for element in self.elements]
        last_ancestors = levels[-1]
        if len(levels[0]) <= len(last_ancestors):
            return False

        first_wrong_index = None
        last_lower_element = None
        for i in range(len(levels) - 2, -1, -1):
            if len(levels[i]) > len(last_ancestors):
                first_wrong_index = i
                last_lower_element = self.elements[i]
                break

        if len(last_ancestors) > 0 or adapter.has_class(
            adapter.last_element_child(last_lower_element), TIMESTAMP_CLASS
        ):
            del self.elements[:first_wrong_index + 1]
            self.update_highlightables()
            return True
        return False

    def fix_indentation_holes(self) -> None:
        """Move unindented middle elements into the indentation of the element before them.

        This is the case of a quote or a code block breaking the indentation of
        a multi-paragraph reply.
        """
        adapter = self.adapter
        if not self.level or len(self.elements) <= 2:
            return

        levels = [self.get_lists_up_tree(element, True) for element in self.elements]
        groups = []
        for i, ancestors in enumerate(levels[1:-1]):
            if ancestors:
                continue
            if not groups or groups[-1][-1] != i:
                groups.append([])
            groups[-1].append(i + 1)

        for indexes in groups:
            level_element = None
            for ancestors in reversed(levels[:indexes[0]]):
                if ancestors:
                    level_element = ancestors[-1]
                    break
            if level_element is None:
                continue
            item = adapter.create_element("dd" if adapter.tag_name(level_element) == "DL" else "li")
            for index in indexes:
                adapter.append_child(item, self.elements[index])
            adapter.append_child(level_element, item)

    def fix_end_level(self, levels: List[List[Optional[Node]]]) -> None:
        """Split a list the comment ends in, so the comment ends at the level it started at."""
        adapter = self.adapter
        if adapter.get_attr(self.highlightables[0], "class"):
            return

        last_ancestors = levels[-1]
        if len(levels[0]) != len(last_ancestors) - 1:
            return
        closest_list = last_ancestors[-1]
        if closest_list is None:
            return

        node = self.highlightables[-1]
        while node != closest_list:
            parent, _ = self.parser.split_parent_after_node(node)
            if parent is None or parent == self.parser.root:
                return
            node = parent

        first_item_index = len(self.elements) - 1
        for i in range(len(self.elements) - 2, 0, -1):
            if adapter.contains(closest_list, self.elements[i]):
                first_item_index = i
            else:
                break
        self.elements[first_item_index:] = [closest_list]
        self.update_highlightables()

    def update_levels(self, fix_markup: bool = True) -> None:
        """Set the comment level and mark the list ancestors with level classes."""
        adapter = self.adapter

        def compute():
            levels = [self.get_lists_up_tree(element) for element in self.highlightables]
            return levels, min(len(levels[0]), len(levels[-1]))

        levels, self.level = compute()
        if fix_markup:
            if self.review_dives():
                levels, self.level = compute()
            self.fix_indentation_holes()
            self.fix_end_level(levels)
        self.logical_level = self.level

        for i in range(self.level):
            level_class = f"{COMMENT_LEVEL_CLASS}-{i + 1}"
            for ancestors in levels:
                if i < len(ancestors) and ancestors[i] is not None:
                    adapter.add_class(ancestors[i], COMMENT_LEVEL_CLASS, level_class)


def get_oldest(comments: List[Comment], allow_undated: bool = False) -> Optional[Comment]:
    """The comment with the earliest date."""
    oldest = None
    for comment in comments:
        if comment.date is None:
            if allow_undated and oldest is None:
                oldest = comment
            continue
        if oldest is None or oldest.date is None or comment.date < oldest.date:
            oldest = comment
    return oldest


def get_newest(comments: List[Comment], allow_undated: bool = False) -> Optional[Comment]:
    """The comment with the latest date."""
    newest = None
    for comment in comments:
        if comment.date is None:
            if allow_undated and newest is None:
                newest = comment
            continue
        if newest is None or newest.date is None or comment.date > newest.date:
            newest = comment
    return newest
