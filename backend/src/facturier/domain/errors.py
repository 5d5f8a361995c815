"""
Domain exceptions.

Every failure the core can report derives from DocumentError so the
calling layer can map the whole family in one place.
"""

from dataclasses import dataclass


class DocumentError(Exception):
    """Base class for all document issuing failures."""


class DocumentNotFound(DocumentError):
    """A requested record or its line items are absent."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


@dataclass(frozen=True)
class ValidationIssue:
    """One rejected input value."""
    field_path: str  # e.g. "line_items[2].quantity"
    message: str

    def __str__(self) -> str:
        return f"{self.field_path}: {self.message}"


class ValidationFailure(DocumentError):
    """
    Input violates a numeric invariant or the document kind's contract.

    Carries every issue found, not just the first one, so callers can
    report them all at once.
    """

    def __init__(self, issues: list[ValidationIssue]) -> None:
        if not issues:
            raise ValueError("ValidationFailure requires at least one issue")
        self.issues = list(issues)
        super().__init__("; ".join(str(issue) for issue in self.issues))

    @classmethod
    def single(cls, field_path: str, message: str) -> "ValidationFailure":
        return cls([ValidationIssue(field_path, message)])


class SequenceConflict(DocumentError):
    """
    Two generators produced the same document number.

    This is a correctness bug in the counter store, never a transient
    condition: it is raised, not retried.
    """


class SequenceExhausted(DocumentError):
    """The monthly sequence ran past the four-digit range."""

    def __init__(self, scope: str, value: int) -> None:
        super().__init__(f"Sequence for {scope} exhausted at {value}")
        self.scope = scope
        self.value = value


class LayoutOverflow(DocumentError):
    """Rendering would exceed the configured page cap."""

    def __init__(self, max_pages: int) -> None:
        super().__init__(f"Document exceeds the {max_pages} page limit")
        self.max_pages = max_pages
