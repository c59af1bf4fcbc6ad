"""Markup classification used by the extraction heuristics."""

import os
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern, Set

from dotenv import load_dotenv

from adapters.base import Node, TreeAdapter
from constants import (
    BAD_HIGHLIGHTABLE_ELEMENTS,
    CONTRIBS_PAGE,
    DEFAULT_CLOSED_DISCUSSION_CLASSES,
    DEFAULT_OUTDENT_CLASS,
    DEFAULT_REFLIST_TALK_CLASSES,
    DEFAULT_SIGNATURE_SCAN_LIMIT,
    DEFAULT_TIMESTAMP_PATTERN,
    DEFAULT_UNSIGNED_CLASS,
    HEADING_TAGS,
    NO_HIGHLIGHT_CLASSES,
    NO_SIGNATURE_CLASSES,
    POPULAR_INLINE_ELEMENTS,
    POPULAR_NOT_INLINE_ELEMENTS,
    USER_NAMESPACES,
    USER_TALK_NAMESPACES,
)

HEADING_WRAPPER_CLASS = "mw-heading"
HEADING_LEVEL_CLASS_PATTERN = re.compile(r"\bmw-heading([1-6])\b")


def is_inline(adapter: TreeAdapter, node: Optional[Node], text_as_inline: bool = False) -> Optional[bool]:
    """Tell whether a node is inline.

    Returns None for elements whose display can't be known without a renderer.
    """
    if text_as_inline and adapter.is_text(node):
        return True
    if not adapter.is_element(node):
        return None

    tag = adapter.tag_name(node)
    if tag in POPULAR_INLINE_ELEMENTS:
        return True
    if tag in POPULAR_NOT_INLINE_ELEMENTS:
        return False
    return None


def is_heading_node(adapter: TreeAdapter, node: Optional[Node], only_h: bool = False) -> bool:
    """A `.mw-heading` wrapper or an <h1>-<h6> element."""
    if not adapter.is_element(node):
        return False
    return (
        (not only_h and adapter.has_class(node, HEADING_WRAPPER_CLASS))
        or adapter.tag_name(node) in HEADING_TAGS
    )


def get_heading_level(adapter: TreeAdapter, node: Node) -> Optional[int]:
    tag = adapter.tag_name(node)
    if tag in HEADING_TAGS:
        return int(tag[1])
    match = HEADING_LEVEL_CLASS_PATTERN.search(adapter.get_attr(node, "class") or "")
    if match:
        return int(match.group(1))
    return None


def is_metadata_node(adapter: TreeAdapter, node: Optional[Node]) -> bool:
    return adapter.is_element(node) and adapter.tag_name(node) in ("STYLE", "LINK")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class MarkupConfig:
    """Classifications of the markup that the heuristics depend on.

    The defaults describe MediaWiki talk page HTML.
    """

    outdent_class: str = DEFAULT_OUTDENT_CLASS
    unsigned_class: Optional[str] = DEFAULT_UNSIGNED_CLASS
    closed_discussion_classes: List[str] = field(
        default_factory=lambda: list(DEFAULT_CLOSED_DISCUSSION_CLASSES)
    )
    reflist_talk_classes: List[str] = field(default_factory=lambda: list(DEFAULT_REFLIST_TALK_CLASSES))
    exclude_from_headline_classes: List[str] = field(default_factory=list)
    no_highlight_classes: List[str] = field(default_factory=lambda: list(NO_HIGHLIGHT_CLASSES))
    no_signature_classes: List[str] = field(default_factory=lambda: list(NO_SIGNATURE_CLASSES))
    bad_highlightable_elements: Set[str] = field(default_factory=lambda: set(BAD_HIGHLIGHTABLE_ELEMENTS))
    signature_scan_limit: int = DEFAULT_SIGNATURE_SCAN_LIMIT
    signature_ending_regexp: Optional[Pattern] = None
    is_talk_namespace: bool = True
    reject_node: Optional[Callable[[TreeAdapter, Node], bool]] = None
    user_namespaces: List[str] = field(default_factory=lambda: list(USER_NAMESPACES))
    user_talk_namespaces: List[str] = field(default_factory=lambda: list(USER_TALK_NAMESPACES))
    contribs_page: str = CONTRIBS_PAGE
    timestamp_pattern: str = DEFAULT_TIMESTAMP_PATTERN
    detect_unsigned_items: bool = True
    server_name: Optional[str] = None
    page_title: Optional[str] = None

    def __post_init__(self):
        self.timestamp_regexp = re.compile(self.timestamp_pattern)

    @classmethod
    def from_env(cls) -> "MarkupConfig":
        """Build a config from TALK_* environment variables (and a .env file)."""
        load_dotenv()

        kwargs = {}
        if os.getenv("TALK_OUTDENT_CLASS"):
            kwargs["outdent_class"] = os.getenv("TALK_OUTDENT_CLASS")
        if os.getenv("TALK_UNSIGNED_CLASS"):
            kwargs["unsigned_class"] = os.getenv("TALK_UNSIGNED_CLASS")
        if os.getenv("TALK_SIGNATURE_SCAN_LIMIT"):
            kwargs["signature_scan_limit"] = int(os.getenv("TALK_SIGNATURE_SCAN_LIMIT"))
        if os.getenv("TALK_TALK_NAMESPACE"):
            kwargs["is_talk_namespace"] = os.getenv("TALK_TALK_NAMESPACE").lower() in ("1", "true", "yes")
        if os.getenv("TALK_SERVER_NAME"):
            kwargs["server_name"] = os.getenv("TALK_SERVER_NAME")
        kwargs["closed_discussion_classes"] = _env_list(
            "TALK_CLOSED_DISCUSSION_CLASSES", DEFAULT_CLOSED_DISCUSSION_CLASSES
        )

        return cls(**kwargs)
