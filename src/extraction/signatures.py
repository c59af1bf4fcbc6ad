"""Default detectors of signatures and headings in MediaWiki-style HTML."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

from adapters.base import Node, TreeAdapter, TreeWalker
from constants import HEADING_TAGS, MONTH_NAMES, SIGNATURE_CLASS, TIMESTAMP_CLASS
from .markup import MarkupConfig, get_heading_level, is_heading_node, is_inline, is_metadata_node
from .targets import HeadingTarget, SignatureTarget

logger = logging.getLogger("talk_structure")

# Parenthesis for the case `smth). ~~~~`
PUNCTUATION_PATTERN = re.compile(r"(?:^|[^\W\d_])[)\]]*(?:[.!?…।։။۔]+ |[。！？]+)")

FACTOTUM_OUTDENT_PATTERN = re.compile(r"^┌─*┘$")

COMMENT_ID_PATTERN = re.compile(r"^\d{12}_.+$")

STRIKE_TAGS = {"S", "STRIKE", "DEL"}

LINK_TYPE_USER = "user"
LINK_TYPE_USER_TALK = "userTalk"
LINK_TYPE_CONTRIBS = "contribs"
LINK_TYPE_USER_SUBPAGE = "userSubpage"
LINK_TYPE_USER_TALK_SUBPAGE = "userTalkSubpage"
LINK_TYPE_UNKNOWN = "unknown"
FOREIGN_SUFFIX = "Foreign"


def parse_timestamp(text: str, regexp) -> Optional[Tuple[datetime, "re.Match"]]:
    """Find a timestamp in text.

    The pattern must capture hours, minutes, day, month name and year, in
    this order.

    Returns:
        Tuple of the UTC date and the match, or None.
    """
    match = regexp.search(text)
    if not match:
        return None

    hours, minutes, day, month_name, year = match.groups()[:5]
    try:
        date = datetime(
            int(year),
            MONTH_NAMES.index(month_name) + 1,
            int(day),
            int(hours),
            int(minutes),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None

    return date, match


def is_comment_id(string: Optional[str]) -> bool:
    if not string:
        return False
    return bool(COMMENT_ID_PATTERN.match(string)) or string.startswith("c-")


def _namespace_pattern(names: List[str]) -> str:
    alternatives = []
    for name in names:
        first, rest = name[0], name[1:]
        pattern = "[ _]+".join(re.escape(word) for word in rest.split(" "))
        alternatives.append(f"[{first.upper()}{first.lower()}]{pattern}")
    return "(?:" + "|".join(alternatives) + ")"


class LinkClassifier:
    """Extracts user names from user, user talk and contributions links."""

    def __init__(self, adapter: TreeAdapter, config: MarkupConfig):
        self.adapter = adapter
        self.config = config

        user = _namespace_pattern(config.user_namespaces)
        user_talk = _namespace_pattern(config.user_talk_namespaces)
        self.user_namespaces_regexp = re.compile(f"^(?:{user}|{user_talk}):([^/]+)")
        self.user_link_regexp = re.compile(f"^{user}:[^/]+$")
        self.user_talk_link_regexp = re.compile(f"^{user_talk}:[^/]+$")
        self.user_subpage_link_regexp = re.compile(f"^{user}:.+/")
        self.user_talk_subpage_link_regexp = re.compile(f"^{user_talk}:.+/")
        contribs = _namespace_pattern([config.contribs_page])
        self.contribs_page_link_regexp = re.compile(f"^{contribs}/")

    @staticmethod
    def parse_wiki_url(href: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Get the page name, host name and fragment of a wiki link."""
        parts = urlsplit(href)
        page_name = None
        if parts.path.startswith("/wiki/"):
            page_name = parts.path[len("/wiki/"):]
        elif parts.query:
            titles = parse_qs(parts.query).get("title")
            if titles:
                page_name = titles[0]
        if page_name:
            page_name = unquote(page_name).replace("_", " ")
        fragment = unquote(parts.fragment) if parts.fragment else None
        return page_name, parts.hostname, fragment

    def process_link(self, link: Node) -> Optional[Tuple[str, str]]:
        """Get the user name and the link type, or None if it's not a user link."""
        href = self.adapter.get_attr(link, "href")
        link_type = LINK_TYPE_UNKNOWN
        user_name = None
        if href:
            page_name, hostname, fragment = self.parse_wiki_url(href)
            if not page_name or is_comment_id(fragment):
                return None

            match = self.user_namespaces_regexp.match(page_name)
            if match:
                user_name = match.group(1)
                if self.user_link_regexp.match(page_name):
                    link_type = LINK_TYPE_USER
                elif self.user_talk_link_regexp.match(page_name):
                    link_type = LINK_TYPE_USER_TALK
                elif self.user_subpage_link_regexp.match(page_name):
                    link_type = LINK_TYPE_USER_SUBPAGE
                elif self.user_talk_subpage_link_regexp.match(page_name):
                    link_type = LINK_TYPE_USER_TALK_SUBPAGE
            elif self.contribs_page_link_regexp.match(page_name):
                user_name = self.contribs_page_link_regexp.sub("", page_name)
                if ":" in user_name:
                    # IPv6 addresses are case-insensitive
                    user_name = user_name.upper()
                link_type = LINK_TYPE_CONTRIBS

            if hostname and hostname != self.config.server_name:
                link_type += FOREIGN_SUFFIX

            if not user_name:
                return None
            user_name = user_name.split("/")[0].replace("_", " ")
            user_name = (user_name[:1].upper() + user_name[1:]).strip()
        else:
            title = self.config.page_title
            if (
                self.adapter.has_class(link, "mw-selflink")
                and title
                and "/" not in title
                and self.user_talk_link_regexp.match(title)
            ):
                # Users with only the user talk page link in their signature, on their talk page
                user_name = title.split(":", 1)[1]
            else:
                return None

        return user_name, link_type

    def process_link_data(self, link: Node, author: "AuthorData") -> bool:
        """Enrich author data from a link.

        Returns:
            Whether the link can still be a part of the signature.
        """
        result = self.process_link(link)
        if not result:
            return True

        user_name, link_type = result
        if not author.name:
            author.name = user_name
        if author.name != user_name:
            # Could be a mention of a redirect to the author's page
            return True

        if link_type in (LINK_TYPE_USER, LINK_TYPE_USER + FOREIGN_SUFFIX):
            # A second user link breaks the signature only when it points to another wiki
            if author.not_foreign_link and link_type == LINK_TYPE_USER + FOREIGN_SUFFIX:
                return False
            if link_type == LINK_TYPE_USER:
                author.not_foreign_link = link
            author.link = link
        elif link_type in (LINK_TYPE_USER_TALK, LINK_TYPE_USER_TALK + FOREIGN_SUFFIX):
            if author.talk_not_foreign_link:
                return False
            if link_type == LINK_TYPE_USER_TALK:
                author.talk_not_foreign_link = link
            author.talk_link = link
        elif link_type in (LINK_TYPE_CONTRIBS, LINK_TYPE_CONTRIBS + FOREIGN_SUFFIX):
            if author.contribs_not_foreign_link and (author.link or author.talk_link):
                return False
            if link_type == LINK_TYPE_CONTRIBS:
                author.contribs_not_foreign_link = link
        elif author.link or author.talk_link:
            # A subpage or unknown link before a user link is most likely part of the comment
            return False

        author.is_last_link_author_link = True
        return True


@dataclass
class AuthorData:
    name: Optional[str] = None
    link: Optional[Node] = None
    talk_link: Optional[Node] = None
    not_foreign_link: Optional[Node] = None
    talk_not_foreign_link: Optional[Node] = None
    contribs_not_foreign_link: Optional[Node] = None
    is_last_link_author_link: bool = False


class SignatureFinder:
    """Finds signatures: a timestamp preceded by links to the author's pages."""

    def __init__(self, adapter: TreeAdapter, config: MarkupConfig, no_signature_elements: List[Node]):
        self.adapter = adapter
        self.config = config
        self.no_signature_elements = no_signature_elements
        self.links = LinkClassifier(adapter, config)

    def _in_no_signature_element(self, node: Node) -> bool:
        return any(self.adapter.contains(el, node) for el in self.no_signature_elements)

    def handle_factotum_outdents(self, text: str, node: Node) -> bool:
        """Wrap outdent character sequences added by Factotum into an outdent span."""
        adapter = self.adapter
        outdent_class = self.config.outdent_class
        parent = adapter.parent_element(node)
        if (
            not FACTOTUM_OUTDENT_PATTERN.match(text)
            or parent is None
            or adapter.has_class(parent, outdent_class)
            or adapter.has_class(adapter.parent_element(parent), outdent_class)
        ):
            return False

        span = adapter.create_element("span", outdent_class)
        adapter.append_child(span, adapter.create_text(text))
        next_sibling = adapter.next_sibling(node)
        if adapter.tag_name(next_sibling) == "BR":
            adapter.remove(next_sibling)
        adapter.insert_before(parent, span, node)
        adapter.remove(node)
        return True

    def find_timestamp(self, node: Node) -> Optional[Tuple[Node, datetime]]:
        """Find a timestamp in a text node and wrap it into a span."""
        adapter = self.adapter
        text = adapter.text(node)

        # While we're here, wrap outdents inserted by Factotum into a span.
        if self.handle_factotum_outdents(text, node):
            return None

        parsed = parse_timestamp(text, self.config.timestamp_regexp)
        if not parsed or self._in_no_signature_element(node):
            return None

        date, match = parsed
        element = adapter.create_element("span", TIMESTAMP_CLASS)
        adapter.append_child(element, adapter.create_text(match.group(0)))
        remained_text = text[match.end():]
        node = adapter.set_text(node, text[:match.start()])
        parent = adapter.parent(node)
        adapter.insert_before(parent, element, adapter.next_sibling(node))
        if remained_text:
            adapter.insert_before(parent, adapter.create_text(remained_text), adapter.next_sibling(element))

        return element, date

    def _find_unsigned_element(self, timestamp_element: Node) -> Optional[Node]:
        adapter = self.adapter
        if not self.config.unsigned_class:
            return None
        el = timestamp_element
        while True:
            el = adapter.parent_element(el)
            if el is None or el == adapter.root or is_inline(adapter, el) is False:
                return None
            if adapter.has_class(el, self.config.unsigned_class):
                return el

    def _is_extra_signature(self, timestamp_element: Node) -> bool:
        # If the closest block ancestor has more than one signature, the first one is the author's
        adapter = self.adapter
        walker = TreeWalker(adapter, adapter.root, timestamp_element, elements_only=True)
        while walker.previous_node() is not None and (
            is_inline(adapter, walker.current) is not False
            or is_metadata_node(adapter, walker.current)
        ):
            if adapter.has_class(walker.current, SIGNATURE_CLASS):
                return True
        return False

    def _ends_scan(self, node: Node, author: AuthorData) -> bool:
        adapter = self.adapter
        is_element = adapter.is_element(node)
        text = adapter.text(node)
        if author.name and (
            # The author may cross out the text ended with their signature and sign again
            (is_element and adapter.tag_name(node) in STRIKE_TAGS)
            or (not is_element and PUNCTUATION_PATTERN.search(text))
            or (
                is_element
                and (
                    re.search(r"display: *none", adapter.get_attr(node, "style") or "")
                    or node in self.no_signature_elements
                )
            )
        ):
            return True
        return is_element and (
            adapter.has_class(node, TIMESTAMP_CLASS)
            or adapter.has_class(node, SIGNATURE_CLASS)
            or (adapter.tag_name(node) in STRIKE_TAGS and len(text) >= 30)
            or len(text) >= self.config.signature_scan_limit
        )

    def signature_from_timestamp(self, timestamp_element: Node, date: datetime) -> Optional[SignatureTarget]:
        """Collect the nodes of a signature walking back from its timestamp."""
        adapter = self.adapter
        unsigned_element = self._find_unsigned_element(timestamp_element)
        is_extra_signature = self._is_extra_signature(timestamp_element)

        start_element = unsigned_element or timestamp_element
        walker = TreeWalker(
            adapter,
            adapter.root,
            start_element,
            accept=lambda n: adapter.is_text(n) or adapter.is_element(n),
        )
        author = AuthorData()

        length = 0
        first_signature_element = None
        signature_nodes = []
        if unsigned_element is not None:
            first_signature_element = start_element
        else:
            signature_nodes.append(start_element)
            walker.previous_sibling()

        # Unsigned templates of the "undated" kind contain a timestamp but no author name, so the
        # tree is walked anyway.
        node = walker.current
        while True:
            length += len(adapter.text(node))
            if adapter.is_element(node):
                author.is_last_link_author_link = False
                if adapter.tag_name(node) == "A":
                    if not self.links.process_link_data(node, author):
                        break
                else:
                    for link in reversed(adapter.elements_by_tag(node, "a")):
                        if adapter.has_class(link, "external"):
                            continue
                        self.links.process_link_data(link, author)
                if author.is_last_link_author_link:
                    first_signature_element = node
            signature_nodes.append(node)

            node = walker.previous_sibling()
            if node is None and first_signature_element is None:
                node = walker.parent_node()
                if node is None or is_inline(adapter, node) is False:
                    break
                length = 0
                signature_nodes = []

            if (
                length >= self.config.signature_scan_limit
                or node is None
                or is_inline(adapter, node, True) is False
                or self._ends_scan(node, author)
            ):
                break

        if not author.name:
            return None

        if not signature_nodes:
            signature_nodes = [start_element]

        if first_signature_element is not None and first_signature_element in signature_nodes:
            del signature_nodes[signature_nodes.index(first_signature_element) + 1:]
        else:
            del signature_nodes[1:]

        container = adapter.parent(signature_nodes[0])
        next_sibling = adapter.next_sibling(signature_nodes[0])
        element = adapter.create_element("span", SIGNATURE_CLASS)
        for signature_node in reversed(signature_nodes):
            adapter.append_child(element, signature_node)
        adapter.insert_before(container, element, next_sibling)

        return SignatureTarget(
            element=element,
            author_name=author.name,
            date=date,
            timestamp_element=timestamp_element,
            timestamp_text=adapter.text(timestamp_element),
            author_link=author.link,
            author_talk_link=author.talk_link,
            is_unsigned=unsigned_element is not None,
            is_extra_signature=is_extra_signature,
        )

    def find_remaining_unsigneds(self) -> List[SignatureTarget]:
        """Outputs of unsigned templates that have no timestamp."""
        adapter = self.adapter
        unsigned_class = self.config.unsigned_class
        if not unsigned_class:
            return []

        unsigneds = []
        for element in adapter.elements_by_class(adapter.root, unsigned_class):
            if adapter.element_by_class(element, TIMESTAMP_CLASS) is not None:
                continue
            el = element
            inside_signature = False
            while el is not None and el != adapter.root:
                if adapter.has_class(el, SIGNATURE_CLASS):
                    inside_signature = True
                    break
                el = adapter.parent_element(el)
            if inside_signature:
                continue

            for link in adapter.elements_by_tag(element, "a"):
                result = self.links.process_link(link)
                if not result:
                    continue
                author_name, link_type = result
                adapter.add_class(element, SIGNATURE_CLASS)
                unsigneds.append(SignatureTarget(
                    element=element,
                    author_name=author_name,
                    is_unsigned=True,
                    author_link=link if link_type == LINK_TYPE_USER else None,
                    author_talk_link=link if link_type == LINK_TYPE_USER_TALK else None,
                ))
                break

        return unsigneds

    def find_signatures(self) -> List[SignatureTarget]:
        """Find all signatures under the root.

        Characters before the author link, like "—", aren't a part of the signature.
        """
        adapter = self.adapter
        signatures = []
        for text_node in adapter.text_nodes(adapter.root):
            timestamp = self.find_timestamp(text_node)
            if timestamp is None:
                continue
            signature = self.signature_from_timestamp(*timestamp)
            if signature is not None:
                signatures.append(signature)
        signatures.extend(self.find_remaining_unsigneds())

        # Extra signatures are assigned to the signature that goes first in the same block
        result = []
        extra_signatures = []
        for signature in reversed(signatures):
            if signature.is_extra_signature:
                extra_signatures.append(signature)
            else:
                signature.extra_signatures = extra_signatures
                extra_signatures = []
                result.append(signature)
        result.reverse()

        logger.debug(f"Found {len(result)} signatures")
        return result


def find_headings(adapter: TreeAdapter, no_signature_elements: List[Node]) -> List[HeadingTarget]:
    """Find section headings, lifted to their `.mw-heading` wrappers."""
    headings = []
    for h_element in adapter.elements_by_tag(adapter.root, *HEADING_TAGS):
        element = h_element
        el = h_element
        while el is not None and el != adapter.root:
            if adapter.has_class(el, "mw-heading"):
                element = el
                break
            el = adapter.parent_element(el)

        if adapter.get_attr(element, "id") == "mw-toc-heading":
            continue
        if any(adapter.contains(no_sig, element) for no_sig in no_signature_elements):
            continue
        if any(heading.element == element for heading in headings):
            continue

        headings.append(HeadingTarget(
            element=element,
            level=get_heading_level(adapter, element) or get_heading_level(adapter, h_element),
            is_wrapper=not is_heading_node(adapter, element, only_h=True),
        ))

    return headings
