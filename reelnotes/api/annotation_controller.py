"""Controller for annotation document operations.

Request bodies are taken as raw JSON objects so that a field that is missing
stays distinguishable from a field sent as null. Requests that cannot be
served (malformed fields, unreadable document for update/delete) answer 200
with a JSON ``null`` body; a document that could not be saved answers 500.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from ..domain.exceptions import DocumentWriteError
from ..domain.models import AnnotationDocument, IntervalKind
from ..services.annotation_service import AnnotationService
from .schemas import AnnotationDocumentSchema, ErrorResponseSchema, InitResponseSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/annotations", tags=["annotations"])

# Error codes for consistent error handling
ERROR_CODES = {
    "DOCUMENT_WRITE_FAILED": "DOCUMENT_WRITE_FAILED",
}

DOCUMENT_RESPONSES = {
    200: {
        "description": "The updated document, or null if the request was not applied",
        "model": AnnotationDocumentSchema,
    },
    500: {
        "description": "The document could not be saved",
        "model": ErrorResponseSchema,
    },
}


def create_error_response(
    status_code: int, detail: str, error_code: str
) -> JSONResponse:
    """Create a consistent error response with detail, error_code, and timestamp."""
    error_data = ErrorResponseSchema(
        detail=detail,
        error_code=error_code,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_data.model_dump(mode="json"),
    )


def get_annotation_service(request: Request) -> AnnotationService:
    """Dependency injection for AnnotationService."""
    return request.app.state.annotation_service


def _document_body(document: AnnotationDocument | None) -> dict | None:
    return document.to_dict() if document is not None else None


def _write_failed(e: DocumentWriteError) -> JSONResponse:
    logger.error(f"Annotation change not saved: {e}")
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e),
        error_code=ERROR_CODES["DOCUMENT_WRITE_FAILED"],
    )


@router.post(
    "/init",
    response_model=None,
    responses={
        200: {"model": InitResponseSchema},
        500: {"model": ErrorResponseSchema},
    },
)
async def init_document(
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | JSONResponse | None:
    """Create an empty document for a media file unless one exists."""
    try:
        path = service.init(payload.get("mediaPath"))
    except DocumentWriteError as e:
        return _write_failed(e)
    return {"path": path} if path is not None else None


@router.post(
    "/read",
    response_model=None,
    responses={200: {"model": AnnotationDocumentSchema}},
)
async def read_document(
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | None:
    """Get the document for a media file, or null if missing or unreadable."""
    return _document_body(service.read(payload.get("mediaPath")))


@router.patch("/document", response_model=None, responses=DOCUMENT_RESPONSES)
async def patch_document(
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | JSONResponse | None:
    """Shallow-merge ``patch`` into the document root (e.g. to replace notes)."""
    try:
        document = service.patch(payload.get("mediaPath"), payload.get("patch"))
    except DocumentWriteError as e:
        return _write_failed(e)
    return _document_body(document)


@router.post("/{kind}", response_model=None, responses=DOCUMENT_RESPONSES)
async def add_interval(
    kind: IntervalKind,
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | JSONResponse | None:
    """Start an interval at ``time``.

    A new act closes the open section and shot; a new section closes the
    open shot.
    """
    try:
        document = service.add_interval(
            kind, payload.get("mediaPath"), payload.get("time")
        )
    except DocumentWriteError as e:
        return _write_failed(e)
    return _document_body(document)


@router.patch("/{kind}", response_model=None, responses=DOCUMENT_RESPONSES)
async def update_interval(
    kind: IntervalKind,
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | JSONResponse | None:
    """Update the interval identified by ``createdAt``.

    ``start``, ``end``, ``title`` and ``note`` are optional: leave a field out
    to keep it, send null to clear it (null ``end`` reopens the interval).
    """
    try:
        document = service.update_interval(
            kind, payload.get("mediaPath"), payload.get("createdAt"), payload
        )
    except DocumentWriteError as e:
        return _write_failed(e)
    return _document_body(document)


@router.delete("/{kind}", response_model=None, responses=DOCUMENT_RESPONSES)
async def delete_interval(
    kind: IntervalKind,
    payload: dict = Body(...),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict | JSONResponse | None:
    """Delete the interval identified by ``createdAt``."""
    try:
        document = service.delete_interval(
            kind, payload.get("mediaPath"), payload.get("createdAt")
        )
    except DocumentWriteError as e:
        return _write_failed(e)
    return _document_body(document)
