"""Tree adapter interface the extraction core works against."""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, List, Optional


class Node:
    """Handle to one raw node of a concrete tree.

    Two handles are equal when they wrap the very same raw node. Parse tree
    libraries often compare nodes structurally, which would make two identical
    paragraphs indistinguishable in lists and sets.
    """

    __slots__ = ("raw",)

    def __init__(self, raw):
        self.raw = raw

    def __eq__(self, other):
        return isinstance(other, Node) and other.raw is self.raw

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return id(self.raw)

    def __repr__(self):
        name = getattr(self.raw, "name", None)
        if name:
            return f"<Node {name}>"
        return f"<Node {str(self.raw)[:20]!r}>"


class TreeAdapter(ABC):
    """Minimal capability set over a markup tree.

    Concrete adapters implement the raw primitives; everything else is derived
    from them here so every backend navigates the same way.
    """

    root: Node

    # Raw primitives

    @abstractmethod
    def parent(self, node: Node) -> Optional[Node]:
        ...

    @abstractmethod
    def children(self, node: Node) -> List[Node]:
        ...

    @abstractmethod
    def previous_sibling(self, node: Node) -> Optional[Node]:
        ...

    @abstractmethod
    def next_sibling(self, node: Node) -> Optional[Node]:
        ...

    @abstractmethod
    def is_element(self, node: Optional[Node]) -> bool:
        ...

    @abstractmethod
    def is_text(self, node: Optional[Node]) -> bool:
        ...

    @abstractmethod
    def is_comment_node(self, node: Optional[Node]) -> bool:
        ...

    @abstractmethod
    def tag_name(self, node: Optional[Node]) -> str:
        """Upper case tag name, or an empty string for non-elements."""

    @abstractmethod
    def text(self, node: Node) -> str:
        ...

    @abstractmethod
    def set_text(self, node: Node, text: str) -> Node:
        """Replace the data of a text node, returning the node now in its place."""

    @abstractmethod
    def attrs(self, node: Node) -> Dict[str, str]:
        ...

    @abstractmethod
    def get_attr(self, node: Node, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_attr(self, node: Node, name: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_attr(self, node: Node, name: str) -> None:
        ...

    @abstractmethod
    def classes(self, node: Node) -> List[str]:
        ...

    @abstractmethod
    def add_class(self, node: Node, *names: str) -> None:
        ...

    @abstractmethod
    def remove_class(self, node: Node, *names: str) -> None:
        ...

    @abstractmethod
    def create_element(self, tag: str, class_name: str = None) -> Node:
        ...

    @abstractmethod
    def create_text(self, text: str) -> Node:
        ...

    @abstractmethod
    def insert_before(self, parent: Node, node: Node, reference: Optional[Node]) -> None:
        """Insert (or move) `node` into `parent` before `reference`, or at the end."""

    @abstractmethod
    def remove(self, node: Node) -> None:
        ...

    @abstractmethod
    def clone_shallow(self, node: Node) -> Node:
        ...

    @abstractmethod
    def clone_deep(self, node: Node) -> Node:
        """Detached copy of the subtree."""

    @abstractmethod
    def outer_html(self, node: Node) -> str:
        ...

    @abstractmethod
    def inner_html(self, node: Node) -> str:
        ...

    # Derived helpers

    def append_child(self, parent: Node, node: Node) -> None:
        self.insert_before(parent, node, None)

    def has_class(self, node: Optional[Node], name: str) -> bool:
        return self.is_element(node) and name in self.classes(node)

    def has_any_class(self, node: Optional[Node], names) -> bool:
        if not self.is_element(node):
            return False
        node_classes = self.classes(node)
        return any(name in node_classes for name in names)

    def parent_element(self, node: Node) -> Optional[Node]:
        parent = self.parent(node)
        return parent if self.is_element(parent) else None

    def element_children(self, node: Node) -> List[Node]:
        return [child for child in self.children(node) if self.is_element(child)]

    def first_child(self, node: Node) -> Optional[Node]:
        children = self.children(node)
        return children[0] if children else None

    def last_child(self, node: Node) -> Optional[Node]:
        children = self.children(node)
        return children[-1] if children else None

    def first_element_child(self, node: Node) -> Optional[Node]:
        for child in self.children(node):
            if self.is_element(child):
                return child
        return None

    def last_element_child(self, node: Node) -> Optional[Node]:
        for child in reversed(self.children(node)):
            if self.is_element(child):
                return child
        return None

    def previous_element_sibling(self, node: Node) -> Optional[Node]:
        sibling = self.previous_sibling(node)
        while sibling is not None and not self.is_element(sibling):
            sibling = self.previous_sibling(sibling)
        return sibling

    def next_element_sibling(self, node: Node) -> Optional[Node]:
        sibling = self.next_sibling(node)
        while sibling is not None and not self.is_element(sibling):
            sibling = self.next_sibling(sibling)
        return sibling

    def contains(self, ancestor: Optional[Node], node: Optional[Node]) -> bool:
        """Whether `node` is `ancestor` itself or one of its descendants."""
        if ancestor is None or node is None:
            return False
        while node is not None:
            if node == ancestor:
                return True
            node = self.parent(node)
        return False

    def _index_path(self, node: Node) -> List[int]:
        path = []
        parent = self.parent(node)
        while parent is not None:
            path.append(self.children(parent).index(node))
            node = parent
            parent = self.parent(node)
        path.reverse()
        return path

    def follows(self, a: Node, b: Node) -> bool:
        """Whether `a` comes after `b` in document order (descendants follow ancestors)."""
        if a == b:
            return False
        return self._index_path(a) > self._index_path(b)

    def descendants(self, node: Node) -> Iterator[Node]:
        """All nodes under `node` in document order, `node` excluded."""
        stack = list(reversed(self.children(node)))
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.children(current)))

    def text_nodes(self, node: Node) -> List[Node]:
        return [n for n in self.descendants(node) if self.is_text(n)]

    def elements_by_class(self, node: Node, name: str, limit: int = None) -> List[Node]:
        found = []
        for descendant in self.descendants(node):
            if self.has_class(descendant, name):
                found.append(descendant)
                if limit is not None and len(found) >= limit:
                    break
        return found

    def element_by_class(self, node: Node, name: str) -> Optional[Node]:
        found = self.elements_by_class(node, name, 1)
        return found[0] if found else None

    def elements_by_tag(self, node: Node, *tags: str) -> List[Node]:
        wanted = {tag.upper() for tag in tags}
        return [n for n in self.descendants(node) if self.tag_name(n) in wanted]


class TreeWalker:
    """Walks a tree from a start node without leaving `root`.

    Moves other than into children are refused at the root itself. With
    `elements_only`, text and other nodes are skipped; `accept` filters the
    nodes the walker may stop at.
    """

    def __init__(
        self,
        adapter: TreeAdapter,
        root: Node,
        start: Node = None,
        elements_only: bool = False,
        accept: Callable[[Node], bool] = None
    ):
        self.adapter = adapter
        self.root = root
        self.current = start if start is not None else root
        self.accept = accept
        if elements_only:
            self._first = adapter.first_element_child
            self._last = adapter.last_element_child
            self._previous = adapter.previous_element_sibling
            self._next = adapter.next_element_sibling
        else:
            self._first = adapter.first_child
            self._last = adapter.last_child
            self._previous = adapter.previous_sibling
            self._next = adapter.next_sibling

    def _accepted(self, node: Node) -> bool:
        return self.accept is None or self.accept(node)

    def _try_move(self, move, into_child: bool = False) -> Optional[Node]:
        node = self.current
        if node == self.root and not into_child:
            return None
        node = move(node)
        while node is not None and not self._accepted(node):
            node = move(node)
        if node is not None:
            self.current = node
        return node

    def parent_node(self) -> Optional[Node]:
        return self._try_move(self.adapter.parent)

    def first_child(self) -> Optional[Node]:
        return self._try_move(self._first, into_child=True)

    def last_child(self) -> Optional[Node]:
        return self._try_move(self._last, into_child=True)

    def previous_sibling(self) -> Optional[Node]:
        return self._try_move(self._previous)

    def next_sibling(self) -> Optional[Node]:
        return self._try_move(self._next)

    def next_node(self) -> Optional[Node]:
        """Go to the next node in document order (not just the next sibling)."""
        node = self.current
        while True:
            first = self._first(node)
            if first is not None:
                node = first
            else:
                while (
                    node is not None
                    and self._next(node) is None
                    and self.adapter.parent(node) != self.root
                ):
                    node = self.adapter.parent(node)
                node = self._next(node) if node is not None else None
            if node is None or self._accepted(node):
                break
        if node is not None:
            self.current = node
        return node

    def previous_node(self) -> Optional[Node]:
        """Go to the previous node in document order."""
        node = self.current
        if node == self.root:
            return None
        while True:
            previous = self._previous(node)
            if previous is not None:
                node = previous
                last = self._last(node)
                while last is not None:
                    node = last
                    last = self._last(node)
            else:
                node = self.adapter.parent(node)
            if node is None or self._accepted(node):
                break
        if node is not None:
            self.current = node
        return node
