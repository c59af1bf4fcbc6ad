"""Canonical constants for talk-structure."""

POPULAR_INLINE_ELEMENTS = {
    'A', 'ABBR', 'B', 'BDI', 'BIG', 'BR', 'BUTTON', 'CITE', 'CODE', 'DEL', 'EM', 'FONT', 'I',
    'IMG', 'INS', 'KBD', 'META', 'Q', 'S', 'SAMP', 'SMALL', 'SPAN', 'STRIKE', 'STRONG', 'SUB',
    'SUP', 'TIME', 'TT', 'U', 'VAR',
}

POPULAR_NOT_INLINE_ELEMENTS = {
    'BLOCKQUOTE', 'CAPTION', 'CENTER', 'DD', 'DIV', 'DL', 'DT', 'FIGURE', 'FIGCAPTION', 'FORM',
    'H1', 'H2', 'H3', 'H4', 'H5', 'H6', 'HR', 'INPUT', 'LI', 'LINK', 'OL', 'P', 'PRE', 'SECTION',
    'STYLE', 'TABLE', 'TBODY', 'TD', 'TFOOT', 'TH', 'THEAD', 'TR', 'UL',
}

# Elements that shouldn't be the first or last highlightable of a comment
BAD_HIGHLIGHTABLE_ELEMENTS = {'BLOCKQUOTE', 'DL', 'FORM', 'HR', 'OL', 'PRE', 'TABLE', 'UL'}

NO_HIGHLIGHT_CLASSES = [
    'mw-empty-elt',
    'tleft',
    'tright',
    'floatleft',
    'floatright',
    'cd-moveMark',
    'cd-noHighlight',
]

NO_SIGNATURE_CLASSES = ['mw-notalk', 'cd-moveMark']

NO_SIGNATURE_TAGS = {'BLOCKQUOTE', 'Q', 'CITE', 'FIGURE', 'TH'}

HEADING_TAGS = {'H1', 'H2', 'H3', 'H4', 'H5', 'H6'}

LIST_TAGS = {'DL', 'UL', 'OL'}

LIST_AND_ITEM_TAGS = {'DL', 'UL', 'OL', 'DD', 'LI'}

DEFAULT_OUTDENT_CLASS = 'outdent-template'

DEFAULT_UNSIGNED_CLASS = 'autosigned'

DEFAULT_CLOSED_DISCUSSION_CLASSES = ['archived', 'boilerplate']

DEFAULT_REFLIST_TALK_CLASSES = ['reflist-talk']

DEFAULT_SIGNATURE_SCAN_LIMIT = 100

# Classes added to the tree while parsing
SIGNATURE_CLASS = 'cd-signature'
TIMESTAMP_CLASS = 'cd-timestamp'
COMMENT_PART_CLASS = 'cd-comment-part'
COMMENT_PART_FIRST_CLASS = 'cd-comment-part-first'
COMMENT_PART_LAST_CLASS = 'cd-comment-part-last'
COMMENT_LEVEL_CLASS = 'cd-commentLevel'
REPLACED_PART_CLASS = 'cd-comment-replacedPart'
OUTDENTED_CLASS = 'cd-comment-outdented'
COMMENT_INDEX_ATTR = 'data-cd-comment-index'

# Upper bound of steps when walking back from a signature
MAX_TRAVERSAL_STEPS = 500

# Comments are matched only above this score
COMMENT_MATCH_THRESHOLD = 1.66

# Sections are matched at or above this score
SECTION_MATCH_FLOOR = 2

# No section can score higher, so the search stops here
SECTION_MATCH_CEILING = 3.5

# A comment below this raw level is not outdented together with a following same-level sibling
OUTDENT_SIBLING_LEVEL_THRESHOLD = 2

USER_NAMESPACES = ['User']

USER_TALK_NAMESPACES = ['User talk']

CONTRIBS_PAGE = 'Special:Contributions'

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]

# 12:34, 5 January 2020 (UTC)
DEFAULT_TIMESTAMP_PATTERN = (
    r'\b(\d\d):(\d\d), (\d{1,2}) (' + '|'.join(MONTH_NAMES) + r') (\d{4}) \(UTC\)'
)
