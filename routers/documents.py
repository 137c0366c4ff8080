import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from core.config import settings
from core.errors import AppError, DocumentNotFound, InvalidUpload, StoreError
from dependencies.services import get_ocr_service
from rag_services.ocr import OCRService
from schemas.document import (
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    ERROR_RESPONSES,
    ProcessPdfResponse,
)
from services import documents as document_service

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


def _check_size(size: Optional[int]) -> None:
    if size is not None and size > settings.MAX_FILE_SIZE_MB * 1024 * 1024:
        raise InvalidUpload(f"File exceeds the {settings.MAX_FILE_SIZE_MB}MB limit")


def _check_upload(file: Optional[UploadFile]) -> None:
    if file is None or not file.filename:
        raise InvalidUpload("No file provided")

    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in settings.ALLOWED_EXTENSIONS:
        raise InvalidUpload(f"Only {', '.join(settings.ALLOWED_EXTENSIONS)} files are allowed")

    # size is unknown for some clients until the body is read
    _check_size(file.size)


@router.post("/documents", response_model=ProcessPdfResponse)
@router.post("/process-pdf", response_model=ProcessPdfResponse, include_in_schema=False)
async def process_pdf(
    file: Optional[UploadFile] = File(None),
    ocr_service: OCRService = Depends(get_ocr_service),
):
    """
    Upload a PDF, OCR it and store the document with its OCR result.

    The document only becomes visible once OCR has finished and both rows
    are written.
    """
    _check_upload(file)
    content = await file.read()
    _check_size(len(content))
    filename = os.path.basename(file.filename)

    payload = await ocr_service.run_ocr(content, filename)

    try:
        doc = await document_service.create_document(filename, content, payload)
    except Exception as e:
        logger.exception("Failed to store %s", filename)
        raise StoreError(f"Failed to store document: {str(e)}")

    return {"success": True, "document": document_service.document_to_public(doc)}


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents():
    try:
        docs = await document_service.list_documents()
    except Exception as e:
        logger.exception("Error fetching documents")
        raise StoreError("Failed to fetch documents") from e
    return {"documents": [document_service.document_to_public(d) for d in docs]}


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str):
    try:
        doc = await document_service.get_document(document_id)
    except AppError:
        raise
    except Exception as e:
        logger.exception("Error fetching document %s", document_id)
        raise StoreError("Failed to fetch document") from e
    if not doc:
        raise DocumentNotFound()
    return {"document": document_service.document_to_public(doc)}


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(document_id: str):
    try:
        deleted = await document_service.delete_document(document_id)
    except AppError:
        raise
    except Exception as e:
        logger.exception("Error deleting document %s", document_id)
        raise StoreError("Failed to delete document") from e
    if not deleted:
        raise DocumentNotFound()
    return {"success": True}
