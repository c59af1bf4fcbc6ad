"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def signature(user, time, day="5 January 2020"):
    """Render a MediaWiki-style signature with a user link, a talk link and a timestamp."""
    return (
        f'<a href="/wiki/User:{user}" title="User:{user}">{user}</a> '
        f'(<a href="/wiki/User_talk:{user}" title="User talk:{user}">talk</a>) '
        f'{time}, {day} (UTC)'
    )


def page(body):
    return f"<html><head><title>Talk</title></head><body>\n{body}\n</body></html>"


@pytest.fixture
def sign():
    """Signature renderer."""
    return signature


@pytest.fixture
def make_page():
    """Wrap body markup into a full page."""
    return page


@pytest.fixture
def simple_thread_html():
    """A section with a comment and an indented reply."""
    return page(
        '<h2><span class="mw-headline" id="Topic">Topic</span>'
        '<span class="mw-editsection">[<a href="/w/index.php?title=Talk:Page&amp;action=edit&amp;section=1">edit</a>]</span></h2>\n'
        f'<p>First comment. {signature("Alice", "10:00")}</p>\n'
        f'<dl><dd>Reply. {signature("Bob", "11:00")}</dd></dl>'
    )


@pytest.fixture
def outdent_html():
    """A thread where a late reply to the first comment precedes an outdented reply."""
    return page(
        '<h2>Topic</h2>\n'
        f'<p>Zero. {signature("Alice", "10:00")}</p>\n'
        '<dl>'
        f'<dd>One. {signature("Bob", "10:05")}'
        f'<dl><dd>Two. {signature("Alice", "10:10")}</dd></dl>'
        '</dd>'
        f'<dd>Three. {signature("Dave", "10:30")}</dd>'
        '</dl>\n'
        '<div class="outdent-template">(outdent)</div>\n'
        f'<p>Four. {signature("Bob", "10:20")}</p>'
    )


@pytest.fixture
def multi_section_html():
    """Two top level sections, the first one with a subsection."""
    return page(
        '<h2><span class="mw-headline" id="First">First</span></h2>\n'
        f'<p>Opening. {signature("Alice", "10:00")}</p>\n'
        f'<dl><dd>Answer. {signature("Bob", "10:30")}</dd></dl>\n'
        '<h3><span class="mw-headline" id="Details">Details</span></h3>\n'
        f'<p>More details. {signature("Carol", "09:00", "6 January 2020")}</p>\n'
        '<h2><span class="mw-headline" id="Second">Second</span></h2>\n'
        f'<p>Another topic. {signature("Dave", "12:00", "7 January 2020")}</p>'
    )


@pytest.fixture
def indentation_hole_html():
    """A reply whose indentation is broken by a quote in the middle."""
    return page(
        '<h2>Topic</h2>\n'
        f'<p>Start. {signature("Alice", "10:00")}</p>\n'
        '<dl><dd><dl><dd>Reply one.</dd></dl></dd></dl>\n'
        '<blockquote><p>Quoted text.</p></blockquote>\n'
        f'<dl><dd><dl><dd>Reply one continued. {signature("Bob", "10:05")}</dd></dl></dd></dl>'
    )
