"""Discussion structure extraction: signatures, comments, levels and sections."""

from .comments import Comment, CommentPart, PartKind, Step
from .errors import StructuralReject, TraversalOutcome
from .markup import MarkupConfig
from .parser import ExtractionResult, PageParser, extract
from .sections import Section
from .snapshot import CommentSnapshot, SectionSnapshot, Snapshot, take_snapshot
from .targets import HeadingTarget, SignatureTarget, TargetType

__all__ = [
    "Comment",
    "CommentPart",
    "PartKind",
    "Step",
    "StructuralReject",
    "TraversalOutcome",
    "MarkupConfig",
    "ExtractionResult",
    "PageParser",
    "extract",
    "Section",
    "CommentSnapshot",
    "SectionSnapshot",
    "Snapshot",
    "take_snapshot",
    "HeadingTarget",
    "SignatureTarget",
    "TargetType",
]
