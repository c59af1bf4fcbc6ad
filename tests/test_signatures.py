"""Tests for signature, timestamp and heading detection."""

import pytest
from datetime import datetime, timezone

from adapters.soup import SoupTreeAdapter
from constants import SIGNATURE_CLASS, TIMESTAMP_CLASS
from extraction.markup import MarkupConfig
from extraction.parser import PageParser
from extraction.signatures import LinkClassifier, is_comment_id, parse_timestamp
from extraction.targets import TargetType


def link_in(html):
    adapter = SoupTreeAdapter(f"<html><body>{html}</body></html>")
    return adapter, adapter.elements_by_tag(adapter.root, "a")[0]


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_parses_default_format(self):
        """Test that a MediaWiki timestamp is parsed as UTC."""
        config = MarkupConfig()
        date, match = parse_timestamp("Thanks. 12:34, 5 January 2020 (UTC)", config.timestamp_regexp)

        assert date == datetime(2020, 1, 5, 12, 34, tzinfo=timezone.utc)
        assert match.group(0) == "12:34, 5 January 2020 (UTC)"

    def test_no_timestamp(self):
        """Test that text without a timestamp gives None."""
        assert parse_timestamp("No date here", MarkupConfig().timestamp_regexp) is None

    def test_impossible_date(self):
        """Test that a timestamp with an impossible date is ignored."""
        assert parse_timestamp("12:34, 31 February 2020 (UTC)", MarkupConfig().timestamp_regexp) is None


class TestIsCommentId:
    """Tests for is_comment_id."""

    @pytest.mark.parametrize("value,expected", [
        ("202001051234_Alice", True),
        ("c-Alice-20200105123400", True),
        ("Some_section", False),
        (None, False),
    ])
    def test_comment_ids(self, value, expected):
        assert is_comment_id(value) is expected


class TestLinkClassifier:
    """Tests for user link classification."""

    def test_user_link(self):
        """Test that a user page link gives the user name."""
        adapter, link = link_in('<a href="/wiki/User:Bob_Smith">Bob</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) == ("Bob Smith", "user")

    def test_user_talk_link(self):
        """Test that a user talk link is told apart from a user link."""
        adapter, link = link_in('<a href="/wiki/User_talk:Bob">talk</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) == ("Bob", "userTalk")

    def test_namespace_alias_with_several_spaces(self):
        """Test that configured namespace aliases with spaces match underscored links."""
        adapter, link = link_in('<a href="/wiki/discussion_de_utilisateur:Bob">Bob</a>')
        config = MarkupConfig(user_talk_namespaces=["User talk", "Discussion de utilisateur"])
        classifier = LinkClassifier(adapter, config)

        assert classifier.process_link(link) == ("Bob", "userTalk")

    def test_index_php_link(self):
        """Test that links with a title parameter are understood."""
        adapter, link = link_in('<a href="/w/index.php?title=User:Bob&amp;action=edit&amp;redlink=1">Bob</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) == ("Bob", "user")

    def test_contributions_link(self):
        """Test that an anonymous user is found by the contributions link."""
        adapter, link = link_in('<a href="/wiki/Special:Contributions/192.0.2.1">192.0.2.1</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) == ("192.0.2.1", "contribs")

    def test_foreign_link(self):
        """Test that a link to another host is marked foreign."""
        adapter, link = link_in('<a href="https://other.example.org/wiki/User:Bob">Bob</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) == ("Bob", "userForeign")

    def test_own_host_is_not_foreign(self):
        """Test that a link to the configured server is local."""
        adapter, link = link_in('<a href="https://wiki.example.org/wiki/User:Bob">Bob</a>')
        classifier = LinkClassifier(adapter, MarkupConfig(server_name="wiki.example.org"))

        assert classifier.process_link(link) == ("Bob", "user")

    def test_other_page_link(self):
        """Test that links to other pages are ignored."""
        adapter, link = link_in('<a href="/wiki/Main_Page">Main</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) is None

    def test_link_to_comment_is_ignored(self):
        """Test that a link to a comment on a user talk page isn't a signature link."""
        adapter, link = link_in('<a href="/wiki/User_talk:Bob#202001051234_Alice">here</a>')
        classifier = LinkClassifier(adapter, MarkupConfig())

        assert classifier.process_link(link) is None


class TestSignatureDetection:
    """Tests for finding signatures in a page."""

    def test_finds_signatures_and_headings_in_order(self, simple_thread_html):
        """Test that targets are merged in document order."""
        parser = PageParser(SoupTreeAdapter(simple_thread_html))
        targets = parser.find_targets()

        assert [target.type for target in targets] == [
            TargetType.HEADING,
            TargetType.SIGNATURE,
            TargetType.SIGNATURE,
        ]
        assert [target.author_name for target in targets[1:]] == ["Alice", "Bob"]
        assert targets[0].level == 2

    def test_signature_wraps_links_and_timestamp(self, make_page, sign):
        """Test that the signature span holds the author links and the timestamp only."""
        adapter = SoupTreeAdapter(make_page(f"<p>I agree. {sign('Alice', '10:00')}</p>"))
        targets = PageParser(adapter).find_targets()

        signature = targets[0]
        assert adapter.has_class(signature.element, SIGNATURE_CLASS)
        assert adapter.text(signature.element) == "Alice (talk) 10:00, 5 January 2020 (UTC)"
        assert adapter.has_class(signature.timestamp_element, TIMESTAMP_CLASS)
        assert signature.date == datetime(2020, 1, 5, 10, 0, tzinfo=timezone.utc)
        assert adapter.text(adapter.parent(signature.element)) == (
            "I agree. Alice (talk) 10:00, 5 January 2020 (UTC)"
        )

    def test_timestamp_in_quote_is_ignored(self, make_page, sign):
        """Test that signatures inside quotes aren't detected."""
        html = make_page(
            f"<blockquote><p>Old words. {sign('Bob', '09:00')}</p></blockquote>\n"
            f"<p>Quoting Bob. {sign('Alice', '10:00')}</p>"
        )
        targets = PageParser(SoupTreeAdapter(html)).find_targets()

        assert [target.author_name for target in targets] == ["Alice"]

    def test_talk_link_only_signature(self, make_page):
        """Test that a signature with a user talk link and no user link is found."""
        adapter = SoupTreeAdapter(make_page(
            '<p>Hello. <a href="/wiki/User_talk:Bob">Bob</a> 10:00, 5 January 2020 (UTC)</p>'
        ))
        targets = PageParser(adapter).find_targets()

        assert [target.author_name for target in targets] == ["Bob"]

    def test_text_without_author_link(self, make_page):
        """Test that a timestamp with no user link around is not a signature."""
        html = make_page("<p>Deadline is 10:00, 5 January 2020 (UTC) for everyone.</p>")
        targets = PageParser(SoupTreeAdapter(html)).find_targets()

        assert targets == []

    def test_second_signature_in_paragraph_is_extra(self, make_page, sign):
        """Test that a second signature in the same block belongs to the first one."""
        html = make_page(
            f"<p>Proposal. {sign('Alice', '10:00')} Seconded. {sign('Bob', '10:05')}</p>"
        )
        targets = PageParser(SoupTreeAdapter(html)).find_targets()

        assert [target.author_name for target in targets] == ["Alice"]
        assert [extra.author_name for extra in targets[0].extra_signatures] == ["Bob"]

    def test_unsigned_template(self, make_page):
        """Test that an unsigned template output is a signature of its author."""
        html = make_page(
            '<p>Forgot to sign. <span class="autosigned">— Preceding '
            '<a href="/wiki/User:Eve">unsigned</a> comment added by Eve</span></p>'
        )
        targets = PageParser(SoupTreeAdapter(html)).find_targets()

        assert len(targets) == 1
        assert targets[0].author_name == "Eve"
        assert targets[0].is_unsigned
        assert targets[0].date is None

    def test_discussiontools_markup_removed(self, make_page, sign):
        """Test that DiscussionTools markers and reply buttons are dropped before detection."""
        adapter = SoupTreeAdapter(make_page(
            '<p><span data-mw-comment-start="" id="c-Alice-20200105100000"></span>'
            f"Hello. {sign('Alice', '10:00')}"
            '<span data-mw-comment-end="c-Alice-20200105100000"></span>'
            '<span class="ext-discussiontools-init-replylink-buttons">[reply]</span></p>'
        ))
        targets = PageParser(adapter).find_targets()

        assert [target.author_name for target in targets] == ["Alice"]
        assert adapter.elements_by_class(adapter.root, "ext-discussiontools-init-replylink-buttons") == []
        assert all(
            adapter.get_attr(span, "data-mw-comment-start") is None
            for span in adapter.elements_by_tag(adapter.root, "span")
        )

    def test_toc_heading_is_skipped(self, make_page):
        """Test that the table of contents title isn't a section heading."""
        html = make_page('<div id="toc"><h2 id="mw-toc-heading">Contents</h2></div>\n<h2>Real</h2>')
        targets = PageParser(SoupTreeAdapter(html)).find_targets()

        assert len(targets) == 1
        assert targets[0].type is TargetType.HEADING
