"""Tests for cross-revision matching of comments and sections."""

import pytest
from datetime import datetime, timezone

from extraction.parser import extract
from extraction.snapshot import CommentSnapshot, SectionSnapshot, take_snapshot
from matching.comments import CommentMatcher, MatchResult, score_comment_pair
from matching.overlap import array_overlap, word_overlap
from matching.report import compare_snapshots
from matching.sections import SectionMatcher, score_section_pair

DATE = datetime(2020, 1, 5, 10, 0, tzinfo=timezone.utc)


def comment(index, author="Carol", parent_id=None, text="Some text here", headline="Topic", date=DATE):
    return CommentSnapshot(
        index=index,
        id=None,
        author_name=author,
        date=date,
        level=1 if parent_id else 0,
        logical_level=1 if parent_id else 0,
        element_htmls=[f"<p>{text}</p>"],
        html_to_compare=text,
        text=text,
        section_headline=headline,
        parent_id=parent_id,
    )


def section(index, headline, ancestors=(), oldest=None):
    return SectionSnapshot(
        index=index,
        id=None,
        headline=headline,
        level=2,
        ancestors=list(ancestors),
        oldest_comment_id=oldest,
    )


class TestWordOverlap:
    """Tests for word overlap."""

    def test_identical(self):
        assert word_overlap("The quick fox", "The quick fox") == 1

    def test_partial(self):
        """Test the ratio of shared unique words to all unique words."""
        assert word_overlap("foo bar", "bar baz") == pytest.approx(1 / 3)

    def test_numbers_and_single_letters_ignored(self):
        assert word_overlap("a 12", "a 12") == 0

    def test_case_insensitive(self):
        assert word_overlap("Hello World", "hello world") == 0
        assert word_overlap("Hello World", "hello world", case_insensitive=True) == 1

    def test_array_overlap_empty(self):
        assert array_overlap([], []) == 0


class TestMatchResult:
    """Tests for MatchResult links."""

    def test_link_is_injective(self):
        """Test that relinking an other comment unlinks the previous current one."""
        result = MatchResult()
        result.link(0, 5, 3.0)
        result.link(1, 5, 4.0)

        assert result.match == {1: 5}
        assert result.match_score == {1: 4.0}
        assert result.matched_by(5) == 1

    def test_relink_current(self):
        result = MatchResult()
        result.link(0, 5)
        result.link(0, 6)

        assert result.match == {0: 6}
        assert result.matched_by(5) is None


class TestCommentMatcher:
    """Tests for CommentMatcher."""

    def test_single_candidate(self):
        """Test that a unique author and date is a match regardless of content."""
        current = [comment(0, author="Alice", text="Old wording")]
        other = [comment(0, author="Alice", text="Completely rewritten")]

        result = CommentMatcher().map(current, other)

        assert result.match == {0: 0}

    def test_same_author_same_minute_told_apart_by_parent(self):
        """Test that identical comments replying to different comments match by parent."""
        current = [comment(0, parent_id="p1", text="Agreed"), comment(1, parent_id="p2", text="Agreed")]
        other = [comment(0, parent_id="p1", text="Agreed"), comment(1, parent_id="p2", text="Agreed")]

        result = CommentMatcher().map(current, other)

        assert result.match == {0: 0, 1: 1}
        assert result.has_poor_match == set()

    def test_swapped_order(self):
        """Test that matches follow content, not position."""
        current = [
            comment(0, parent_id="p1", text="First thought about apples"),
            comment(1, parent_id="p2", text="Second thought about oranges"),
        ]
        other = [
            comment(0, parent_id="p2", text="Second thought about oranges"),
            comment(1, parent_id="p1", text="First thought about apples"),
        ]

        result = CommentMatcher().map(current, other)

        assert result.match == {0: 1, 1: 0}

    def test_links_are_injective(self):
        """Test that no other comment is matched twice."""
        current = [comment(i, text="Same words") for i in range(3)]
        other = [comment(i, text="Same words") for i in range(2)]

        result = CommentMatcher().map(current, other)

        assert len(result.match) == 2
        assert len(set(result.match.values())) == 2

    def test_below_threshold_not_matched(self):
        """Test that candidates scoring at or below the threshold aren't matched."""
        current = [
            comment(0, parent_id="p1", text="alpha beta", headline="One"),
            comment(1, parent_id="p2", text="gamma delta", headline="One"),
        ]
        other = [comment(0, parent_id="p3", text="epsilon zeta", headline="Two")]

        result = CommentMatcher().map(current, other)

        assert result.match == {}
        assert score_comment_pair(current[0], other[0], False) == 0

    def test_threshold_is_exclusive(self):
        """Test that a score equal to the threshold doesn't count."""
        matcher = CommentMatcher(threshold=1)
        candidate = comment(0, text="alpha beta")
        target = comment(0, parent_id="p1", text="gamma delta")
        # Only the headline matches
        target.element_htmls = ["<p>other</p>"]
        target.section_headline = "Topic"

        assert score_comment_pair(candidate, target, False) == 1
        assert matcher.sort_by_match_score([candidate], target, False) == []

    def test_different_author_not_matched(self):
        current = [comment(0, author="Alice")]
        other = [comment(0, author="Bob")]

        assert CommentMatcher().map(current, other).match == {}


class TestSectionMatcher:
    """Tests for SectionMatcher."""

    def test_same_headline_matches(self):
        current = [section(0, "Proposal", oldest="c1")]
        other = [section(0, "Proposal", oldest="c1")]

        assert SectionMatcher().map(current, other).match == {0: 0}

    def test_renamed_section_found_by_content(self):
        """Test that a renamed section is matched by its oldest comment and ancestors."""
        target = section(0, "Proposal", oldest="c1")
        renamed = section(3, "Proposal (closed)", oldest="c1")

        found = SectionMatcher().search(target, [renamed])

        assert found is not None
        assert found[0] is renamed

    def test_floor(self):
        """Test that a weak candidate is rejected."""
        target = section(0, "Proposal", oldest="c1")
        unrelated = section(1, "Unrelated", oldest="c9")

        assert score_section_pair(unrelated, target) < 2
        assert SectionMatcher().search(target, [unrelated]) is None

    def test_ceiling_stops_search(self):
        """Test that a candidate scoring at the ceiling ends the search."""
        target = section(0, "Proposal", oldest="c1")
        renamed = section(1, "Proposal (closed)", oldest="c1")
        exact = section(2, "Proposal", oldest="c1")

        assert SectionMatcher().search(target, [renamed, exact])[0] is exact
        assert SectionMatcher(ceiling=2.5).search(target, [renamed, exact])[0] is renamed


class TestCompareSnapshots:
    """Tests for compare_snapshots."""

    def test_added_and_edited(self, make_page, sign):
        """Test a revision where a comment was edited and another one added."""
        heading = '<h2><span class="mw-headline" id="Topic">Topic</span></h2>\n'
        current_html = make_page(
            heading
            + f"<p>First comment. {sign('Alice', '10:00')}</p>\n"
            + f"<dl><dd>Reply. {sign('Bob', '11:00')}</dd></dl>"
        )
        other_html = make_page(
            heading
            + f"<p>First comment. {sign('Alice', '10:00')}</p>\n"
            + f"<dl><dd>Reply, reworded. {sign('Bob', '11:00')}</dd></dl>\n"
            + f"<p>New point. {sign('Carol', '12:00')}</p>"
        )

        current = take_snapshot(*extract(current_html))
        other = take_snapshot(*extract(other_html))
        report = compare_snapshots(current, other)

        assert len(report.matched) == 2
        assert [change.author_name for change in report.edited] == ["Bob"]
        assert [change.author_name for change in report.added] == ["Carol"]
        assert report.removed == []
        assert report.sections[0].renamed is False

        data = report.to_dict()
        assert data["matched_count"] == 2
        assert data["added"][0]["id"] == "202001051200_Carol"

    def test_removed_and_renamed(self, make_page, sign):
        """Test a revision where a comment was removed and the section renamed."""
        current_html = make_page(
            "<h2>Proposal</h2>\n"
            f"<p>Let's do it. {sign('Alice', '10:00')}</p>\n"
            f"<dl><dd>No. {sign('Bob', '11:00')}</dd></dl>"
        )
        other_html = make_page(
            "<h2>Proposal (withdrawn)</h2>\n"
            f"<p>Let's do it. {sign('Alice', '10:00')}</p>"
        )

        report = compare_snapshots(take_snapshot(*extract(current_html)), take_snapshot(*extract(other_html)))

        assert [change.author_name for change in report.removed] == ["Bob"]
        assert [change.headline for change in report.renamed_sections] == ["Proposal"]
        assert report.renamed_sections[0].other_headline == "Proposal (withdrawn)"
