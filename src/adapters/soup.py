"""BeautifulSoup implementation of the tree adapter."""

import copy
import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Comment, Tag

from .base import Node, TreeAdapter

logger = logging.getLogger("talk_structure")

SUPPORTED_PARSERS = ("html.parser", "lxml")


class SoupTreeAdapter(TreeAdapter):
    """Headless parse tree over BeautifulSoup.

    `features` selects the underlying parser: the pure Python "html.parser" or
    the faster "lxml". The root is the <body> element if the markup has one.
    """

    def __init__(self, html: str, features: str = "html.parser"):
        if features not in SUPPORTED_PARSERS:
            raise ValueError(f"Unsupported parser: {features}")
        self.features = features
        self.soup = BeautifulSoup(html, features)
        body = self.soup.body
        self.root = Node(body if body is not None else self.soup)
        logger.debug(f"Parsed {len(html)} characters with {features}")

    @staticmethod
    def _wrap(raw) -> Optional[Node]:
        return Node(raw) if raw is not None else None

    def parent(self, node: Node) -> Optional[Node]:
        return self._wrap(node.raw.parent)

    def children(self, node: Node) -> List[Node]:
        if not isinstance(node.raw, Tag):
            return []
        return [Node(child) for child in node.raw.contents]

    def previous_sibling(self, node: Node) -> Optional[Node]:
        return self._wrap(node.raw.previous_sibling)

    def next_sibling(self, node: Node) -> Optional[Node]:
        return self._wrap(node.raw.next_sibling)

    def is_element(self, node: Optional[Node]) -> bool:
        return node is not None and isinstance(node.raw, Tag)

    def is_text(self, node: Optional[Node]) -> bool:
        return (
            node is not None
            and isinstance(node.raw, NavigableString)
            and not isinstance(node.raw, PreformattedString)
        )

    def is_comment_node(self, node: Optional[Node]) -> bool:
        return node is not None and isinstance(node.raw, Comment)

    def tag_name(self, node: Optional[Node]) -> str:
        if not self.is_element(node):
            return ""
        return node.raw.name.upper()

    def text(self, node: Node) -> str:
        if isinstance(node.raw, Tag):
            return node.raw.get_text()
        if isinstance(node.raw, NavigableString):
            # Text, or the data of an HTML comment
            return str(node.raw)
        return ""

    def set_text(self, node: Node, text: str) -> Node:
        if isinstance(node.raw, Tag):
            node.raw.string = text
            return node
        replacement = NavigableString(text)
        node.raw.replace_with(replacement)
        return Node(replacement)

    def attrs(self, node: Node) -> Dict[str, str]:
        if not isinstance(node.raw, Tag):
            return {}
        return {name: self.get_attr(node, name) for name in node.raw.attrs}

    def get_attr(self, node: Node, name: str) -> Optional[str]:
        if not isinstance(node.raw, Tag):
            return None
        value = node.raw.attrs.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set_attr(self, node: Node, name: str, value: str) -> None:
        if name == "class":
            node.raw["class"] = value.split()
        else:
            node.raw[name] = value

    def remove_attr(self, node: Node, name: str) -> None:
        if name in node.raw.attrs:
            del node.raw[name]

    def classes(self, node: Node) -> List[str]:
        if not isinstance(node.raw, Tag):
            return []
        value = node.raw.attrs.get("class")
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        return list(value)

    def add_class(self, node: Node, *names: str) -> None:
        current = self.classes(node)
        for name in names:
            if name not in current:
                current.append(name)
        node.raw["class"] = current

    def remove_class(self, node: Node, *names: str) -> None:
        current = [name for name in self.classes(node) if name not in names]
        if current:
            node.raw["class"] = current
        elif "class" in node.raw.attrs:
            del node.raw["class"]

    def create_element(self, tag: str, class_name: str = None) -> Node:
        element = self.soup.new_tag(tag.lower())
        if class_name:
            element["class"] = class_name.split()
        return Node(element)

    def create_text(self, text: str) -> Node:
        return Node(NavigableString(text))

    def insert_before(self, parent: Node, node: Node, reference: Optional[Node]) -> None:
        if reference is not None and reference == node:
            return
        if node.raw.parent is not None:
            node.raw.extract()
        if reference is None:
            parent.raw.append(node.raw)
        else:
            reference.raw.insert_before(node.raw)

    def remove(self, node: Node) -> None:
        node.raw.extract()

    def clone_shallow(self, node: Node) -> Node:
        raw = node.raw
        if not isinstance(raw, Tag):
            return Node(type(raw)(str(raw)))
        attrs = {
            name: list(value) if isinstance(value, list) else value
            for name, value in raw.attrs.items()
        }
        return Node(self.soup.new_tag(raw.name, attrs=attrs))

    def clone_deep(self, node: Node) -> Node:
        # Copying a Tag copies its whole subtree, detached from the document
        return Node(copy.copy(node.raw))

    def outer_html(self, node: Node) -> str:
        if isinstance(node.raw, Tag):
            return node.raw.decode()
        return str(node.raw)

    def inner_html(self, node: Node) -> str:
        if isinstance(node.raw, Tag):
            return node.raw.decode_contents()
        return str(node.raw)
