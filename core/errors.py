"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the status code it maps to at the request boundary,
where it is turned into a ``{"error": message}`` body.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---- 400 ----
class InputError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NoDocumentsSelected(InputError):
    default_message = "No documents selected"


class InvalidUpload(InputError):
    default_message = "No file provided"


# ---- 404 ----
class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class NoResultsFound(NotFoundError):
    default_message = "No OCR results found for selected documents"


class DocumentNotFound(NotFoundError):
    default_message = "Document not found"


# ---- 500 ----
class UpstreamError(AppError):
    status_code = 500
    default_message = "Upstream service failure"


class OCRError(UpstreamError):
    default_message = "Error processing PDF"


class AnswerError(UpstreamError):
    default_message = "Error processing chat message"


class StoreError(UpstreamError):
    default_message = "Document store failure"


class MalformedResult(UpstreamError):
    def __init__(self, document_id: str, filename: Optional[str] = None, reason: Optional[str] = None):
        self.document_id = document_id
        self.filename = filename
        label = filename or document_id
        message = f"Stored OCR result for document '{label}' is malformed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
