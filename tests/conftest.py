import pytest
from mongomock_motor import AsyncMongoMockClient

import db.mongo as mongo
from models.ocr import OCRPage, OCRPayload, OCRSummary


@pytest.fixture
def mock_db(monkeypatch):
    """Swap the Motor database for an in-memory mongomock one."""
    client = AsyncMongoMockClient()
    database = client["document-chat-test"]
    monkeypatch.setattr(mongo, "db", database)
    return database


def make_payload(filename, pages):
    """Build an OCRPayload from (page_number, content) pairs, kept in the given order."""
    ocr_pages = [OCRPage.from_text(number, content) for number, content in pages]
    return OCRPayload(
        completion_time=1200,
        file_name=filename,
        input_tokens=100,
        output_tokens=40,
        pages=ocr_pages,
        summary=OCRSummary(failed_pages=0, successful_pages=len(ocr_pages), total_pages=len(ocr_pages)),
    )


@pytest.fixture
def invoice_payload():
    return make_payload("invoice.pdf", [(1, "Total: $10"), (2, "Thank you")])
