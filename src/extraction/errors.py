"""Error kinds raised while extracting discussion structure."""

from enum import Enum


class StructuralReject(Exception):
    """A single comment or section can't be formed from the markup.

    Callers skip the entity and carry on with the rest of the page.
    """


class TraversalOutcome(Enum):
    """How the walk back from a signature ended."""

    COMPLETE = "complete"
    EXHAUSTED = "exhausted"  # hit the step ceiling; the comment is bounded where the walk stopped
