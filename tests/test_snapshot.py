"""Tests for comment and section snapshots."""

import json
from datetime import datetime, timezone

from adapters.soup import SoupTreeAdapter
from extraction.parser import extract
from extraction.snapshot import CommentContentFilter, Snapshot, html_to_compare, take_snapshot


class TestTakeSnapshot:
    """Tests for take_snapshot."""

    def test_comment_fields(self, simple_thread_html):
        """Test the compared HTML, text and relations of comments."""
        adapter, result = extract(simple_thread_html)
        snapshot = take_snapshot(adapter, result)
        alice, bob = snapshot.comments

        assert alice.id == "202001051000_Alice"
        assert alice.date == datetime(2020, 1, 5, 10, 0, tzinfo=timezone.utc)
        assert alice.element_names == ["H2", "P"]
        assert alice.heading_html_to_compare == "Topic"
        assert alice.text == "Topic\nFirst comment."
        assert alice.children == [1]
        assert alice.section_headline == "Topic"

        assert bob.text == "Reply."
        assert bob.parent_index == 0
        assert bob.parent_id == "202001051000_Alice"
        assert bob.text_html_to_compare.startswith("Reply. <span")

    def test_data_attributes_removed(self, simple_thread_html):
        """Test that the markup added during extraction doesn't leak into compared HTML."""
        adapter, result = extract(simple_thread_html)
        snapshot = take_snapshot(adapter, result)

        for comment in snapshot.comments:
            for html in comment.element_htmls:
                assert "data-cd-comment-index" not in html

    def test_live_tree_untouched(self, make_page, sign):
        """Test that snapshots don't alter the parsed tree."""
        html = make_page(
            '<p>Claim.<sup class="reference"><a href="#cite_note-1">[1]</a></sup> '
            f"Thus spoke. {sign('Alice', '10:00')}</p>"
        )
        adapter, result = extract(html)
        before = adapter.outer_html(adapter.root)

        snapshot = take_snapshot(adapter, result)

        assert adapter.outer_html(adapter.root) == before
        comment = snapshot.comments[0]
        assert comment.hidden_elements[0]["type"] == "reference"
        assert "\x011_reference\x02" in comment.html_to_compare
        assert "[1]" not in comment.text

    def test_sections(self, multi_section_html):
        """Test section snapshots."""
        adapter, result = extract(multi_section_html)
        snapshot = take_snapshot(adapter, result)
        first, details, second = snapshot.sections

        assert details.parent_index == 0
        assert details.ancestors == ["First"]
        assert first.oldest_comment_id == "202001051000_Alice"
        assert second.comments == [3]

    def test_repeated_extraction_is_identical(self, outdent_html):
        """Test that extracting fresh trees of the same HTML gives the same snapshot."""
        first = take_snapshot(*extract(outdent_html)).to_dict()
        second = take_snapshot(*extract(outdent_html)).to_dict()

        assert first == second

    def test_json_round_trip(self, simple_thread_html):
        """Test that a snapshot survives serialization."""
        snapshot = take_snapshot(*extract(simple_thread_html))

        restored = Snapshot.from_dict(json.loads(json.dumps(snapshot.to_dict())))

        assert restored == snapshot


class TestHtmlToCompare:
    """Tests for html_to_compare and the content filter."""

    def test_plain_div_compared_by_content(self):
        """Test that a wrapper div is compared by its inner HTML."""
        adapter = SoupTreeAdapter("<html><body><div>text <b>bold</b></div></body></html>")
        div = adapter.elements_by_tag(adapter.root, "div")[0]

        assert html_to_compare(adapter, div) == "text <b>bold</b>"

    def test_div_with_attributes_compared_whole(self):
        adapter = SoupTreeAdapter('<html><body><div class="box">text</div></body></html>')
        div = adapter.elements_by_tag(adapter.root, "div")[0]

        assert html_to_compare(adapter, div) == '<div class="box">text</div>'

    def test_filter_removes_comments_and_anchors(self):
        """Test that HTML comments and empty anchors are dropped."""
        adapter = SoupTreeAdapter(
            '<html><body><p data-x="1">a<!-- hidden --><span id="anchor"></span>b</p></body></html>'
        )
        p = adapter.elements_by_tag(adapter.root, "p")[0]

        filtered = CommentContentFilter(adapter).filter(adapter.clone_deep(p))

        assert adapter.outer_html(filtered) == "<p>ab</p>"
