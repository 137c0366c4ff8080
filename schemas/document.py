from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class OCRResultOut(BaseModel):
    id: str
    content: str  # serialized OCR payload
    documentId: str
    createdAt: datetime
    updatedAt: datetime


class DocumentOut(BaseModel):
    id: str
    filename: str
    content: str  # base64 of the uploaded PDF
    createdAt: datetime
    updatedAt: datetime
    ocrResult: Optional[OCRResultOut] = None


class ProcessPdfResponse(BaseModel):
    success: bool
    document: DocumentOut


class DocumentListResponse(BaseModel):
    documents: List[DocumentOut]


class DocumentResponse(BaseModel):
    document: DocumentOut


class DeleteResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str
    database: bool


class ErrorResponse(BaseModel):
    error: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Not found"},
    500: {"model": ErrorResponse, "description": "Upstream or store failure"},
}
