"""
Document number format.

Numbers look like FACT202410-0007: kind prefix, four-digit year,
two-digit month, dash, four-digit sequence within that month.
Pure functions only - reserving the sequence value is the job of
services.sequence.
"""

import re
from dataclasses import dataclass

from .errors import SequenceExhausted, ValidationFailure
from .models import DocumentKind

NUMBER_PATTERN = re.compile(r"^(FACT|DEV|BL)(\d{4})(\d{2})-(\d{4})$")

MAX_SEQUENCE = 9999

_KIND_BY_PREFIX = {kind.prefix: kind for kind in DocumentKind}


@dataclass(frozen=True)
class DocumentNumber:
    """A parsed document number."""
    kind: DocumentKind
    year: int
    month: int
    sequence: int

    @property
    def period(self) -> str:
        return f"{self.year:04d}{self.month:02d}"

    def __str__(self) -> str:
        return format_document_number(self.kind, self.year, self.month, self.sequence)


def period_key(year: int, month: int) -> str:
    """Counter scope for a calendar month, e.g. '202410'."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    return f"{year:04d}{month:02d}"


def format_document_number(kind: DocumentKind, year: int, month: int, sequence: int) -> str:
    """
    Build the printed document number.

    Raises:
        SequenceExhausted: If sequence does not fit in four digits
        ValueError: If sequence is not positive
    """
    if sequence < 1:
        raise ValueError(f"Sequence starts at 1, got {sequence}")
    if sequence > MAX_SEQUENCE:
        raise SequenceExhausted(f"{kind.prefix}{period_key(year, month)}", sequence)
    return f"{kind.prefix}{period_key(year, month)}-{sequence:04d}"


def parse_document_number(number: str) -> DocumentNumber:
    """
    Split a document number into its parts.

    Raises:
        ValidationFailure: If the string does not follow the number format
    """
    match = NUMBER_PATTERN.match(number)
    if match is None:
        raise ValidationFailure.single("number", f"Malformed document number: {number!r}")

    prefix, year, month, sequence = match.groups()
    if not 1 <= int(month) <= 12:
        raise ValidationFailure.single("number", f"Invalid month in document number: {number!r}")

    return DocumentNumber(
        kind=_KIND_BY_PREFIX[prefix],
        year=int(year),
        month=int(month),
        sequence=int(sequence),
    )


def document_filename(kind: DocumentKind, number: str) -> str:
    """Suggested download name: '<prefix-lowercase>-<number>.pdf'."""
    return f"{kind.prefix.lower()}-{number}.pdf"
