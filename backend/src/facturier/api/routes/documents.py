"""
Document issuing endpoints.

Issue documents, render them to PDF and move them through their
status lifecycle. Records are returned to the caller for storage;
nothing here persists them.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Response, status
from starlette.concurrency import run_in_threadpool

from facturier.api.schemas import (
    ConvertQuoteRequest,
    ConvertQuoteResponse,
    DocumentRecordSchema,
    ErrorResponse,
    IssueDocumentRequest,
    TransitionRequest,
)
from facturier.config import get_settings
from facturier.domain.models import DocumentStatus
from facturier.infrastructure.database import get_engine
from facturier.services import (
    CounterStore,
    DocumentService,
    InMemoryCounterStore,
    RenderedDocument,
    SequenceGenerator,
    SqlCounterStore,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])
quotes_router = APIRouter(prefix="/quotes", tags=["quotes"])


# Service instance (overridable through app.dependency_overrides)
_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """Get or create the document service instance."""
    global _document_service
    if _document_service is None:
        settings = get_settings()
        store: CounterStore
        if settings.sequence_backend == "memory":
            store = InMemoryCounterStore()
        else:
            store = SqlCounterStore(get_engine())
        generator = SequenceGenerator(store, tz=settings.numbering_timezone)
        _document_service = DocumentService.from_settings(settings, generator)
        logger.info(f"Document service ready ({settings.sequence_backend} counters)")
    return _document_service


def pdf_response(rendered: RenderedDocument) -> Response:
    """Wrap a rendered document as a downloadable PDF response."""
    return Response(
        content=rendered.content,
        media_type=rendered.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{rendered.filename}"',
            "X-Document-Number": rendered.number,
            "ETag": f'"{rendered.content_hash}"',
        },
    )


_VALIDATION_ERROR = {"model": ErrorResponse, "description": "Validation failure"}
_SEQUENCE_ERROR = {"model": ErrorResponse, "description": "Monthly sequence exhausted"}
_NOT_FOUND_ERROR = {"model": ErrorResponse, "description": "Record arrived without its line items"}


@router.post(
    "",
    response_model=DocumentRecordSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: _SEQUENCE_ERROR,
        422: _VALIDATION_ERROR,
    },
)
async def issue_document(
    request: IssueDocumentRequest,
    service: DocumentService = Depends(get_document_service),
) -> DocumentRecordSchema:
    """
    Issue a document.

    Validates the line items, locks the totals and reserves the next
    number for the account, kind and month.
    """
    record = await service.issue(request.account_id, request.to_draft())
    return DocumentRecordSchema.from_domain(record)


@router.post(
    "/pdf",
    response_class=Response,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"content": {"application/pdf": {}}, "description": "Issued document as PDF"},
        409: _SEQUENCE_ERROR,
        422: _VALIDATION_ERROR,
    },
)
async def issue_document_pdf(
    request: IssueDocumentRequest,
    service: DocumentService = Depends(get_document_service),
) -> Response:
    """
    Issue a document and return it rendered as PDF.

    The assigned number is returned in the X-Document-Number header.
    """
    record = await service.issue(request.account_id, request.to_draft())
    rendered = await run_in_threadpool(service.render, record)
    response = pdf_response(rendered)
    response.status_code = status.HTTP_201_CREATED
    return response


@router.post(
    "/render",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Rendered PDF"},
        404: _NOT_FOUND_ERROR,
        422: _VALIDATION_ERROR,
    },
)
async def render_document(
    document: DocumentRecordSchema,
    service: DocumentService = Depends(get_document_service),
) -> Response:
    """
    Re-render a previously issued document.

    The totals in the payload are printed as they are; they were locked
    when the document was issued and are never recomputed.
    """
    rendered = await run_in_threadpool(service.render, document.to_domain())
    return pdf_response(rendered)


@router.post(
    "/transition",
    response_model=DocumentRecordSchema,
    responses={422: _VALIDATION_ERROR},
)
async def transition_document(
    request: TransitionRequest,
    service: DocumentService = Depends(get_document_service),
) -> DocumentRecordSchema:
    """Change a document's status without touching its number or totals."""
    record = service.transition(request.document.to_domain(), DocumentStatus(request.status.value))
    return DocumentRecordSchema.from_domain(record)


@quotes_router.post(
    "/convert",
    response_model=ConvertQuoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: _SEQUENCE_ERROR,
        422: _VALIDATION_ERROR,
    },
)
async def convert_quote(
    request: ConvertQuoteRequest,
    service: DocumentService = Depends(get_document_service),
) -> ConvertQuoteResponse:
    """
    Convert a quote into an invoice.

    Returns the quote marked accepted and the new invoice; the caller
    stores both.
    """
    result = await service.convert_quote(
        request.account_id,
        request.quote.to_domain(),
        issue_date=request.issue_date or date.today(),
    )
    return ConvertQuoteResponse(
        quote=DocumentRecordSchema.from_domain(result.quote),
        invoice=DocumentRecordSchema.from_domain(result.invoice),
    )
