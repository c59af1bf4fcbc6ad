"""Tests for sections."""

import pytest

from extraction.parser import extract
from extraction.sections import get_section_ancestors, get_section_parent, parse_edit_section_number


class TestParseEditSectionNumber:
    """Tests for parse_edit_section_number."""

    def test_plain_section(self):
        assert parse_edit_section_number("/w/index.php?title=Talk:Page&action=edit&section=3") == (3, None)

    def test_transcluded_section(self):
        """Test that a transcluded section gives its source page."""
        href = "/w/index.php?title=Talk:Other_page&action=edit&section=T-2"
        assert parse_edit_section_number(href) == (2, "Talk:Other page")

    def test_no_section(self):
        assert parse_edit_section_number("/w/index.php?title=Talk:Page&action=edit") == (None, None)


class TestSections:
    """Tests for section extraction."""

    def test_headline_and_number(self, simple_thread_html):
        """Test the headline, anchor and edit section number."""
        _, result = extract(simple_thread_html)
        section = result.sections[0]

        assert section.headline == "Topic"
        assert section.id == "Topic"
        assert section.level == 2
        assert section.section_number == 1
        assert section.comments == [0, 1]

    def test_subsection_comments(self, multi_section_html):
        """Test that a section includes its subsections' comments, its first chunk doesn't."""
        _, result = extract(multi_section_html)
        first, details, second = result.sections

        assert [s.headline for s in result.sections] == ["First", "Details", "Second"]
        assert first.comments == [0, 1, 2]
        assert first.comments_in_first_chunk == [0, 1]
        assert details.comments == [2]
        assert second.comments == [3]

    def test_first_chunk_is_prefix(self, multi_section_html):
        """Test that the first chunk comments start every section's comment list."""
        _, result = extract(multi_section_html)

        for section in result.sections:
            chunk = section.comments_in_first_chunk
            assert section.comments[:len(chunk)] == chunk

    def test_comment_section_is_nearest_heading(self, multi_section_html):
        """Test that each comment belongs to the closest heading above it."""
        _, result = extract(multi_section_html)

        assert [c.section_index for c in result.comments] == [0, 0, 1, 2]
        assert result.section_of(result.comments[2]).headline == "Details"

    def test_oldest_comment(self, multi_section_html):
        _, result = extract(multi_section_html)
        assert result.sections[0].oldest_comment_index == 0

    def test_span_ends(self, multi_section_html):
        """Test where the section and its first chunk end."""
        adapter, result = extract(multi_section_html)
        first = result.sections[0]

        assert adapter.text(first.span_end).startswith("More details.")
        assert adapter.text(first.first_chunk_end).startswith("Answer.")
        assert first.span_start == first.heading_element

    def test_parent_and_ancestors(self, multi_section_html):
        """Test section nesting."""
        _, result = extract(multi_section_html)

        assert result.get_section_parent(1) == 0
        assert result.get_section_parent(0) is None
        assert result.get_section_ancestors(1) == [0]
        assert get_section_ancestors(2, result.sections) == []
        assert get_section_parent(0, result.sections, ignore_first_level=False) is None

    def test_heading_wrapper(self, make_page, sign):
        """Test a heading wrapped into a .mw-heading element."""
        html = make_page(
            '<div class="mw-heading mw-heading2"><h2 id="Wrapped">Wrapped</h2></div>\n'
            f"<p>Text. {sign('Alice', '10:00')}</p>"
        )
        _, result = extract(html)
        section = result.sections[0]

        assert section.headline == "Wrapped"
        assert section.id == "Wrapped"
        assert section.level == 2
        assert section.comments == [0]
