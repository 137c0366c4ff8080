import pytest
from pydantic import ValidationError

from conftest import make_payload
from models.ocr import OCRPage, OCRPayload, dump_payload, load_payload

# A row as written by the previous version of the service
STORED_ROW = (
    '{"completionTime":5321,"fileName":"invoice.pdf","inputTokens":1200,"outputTokens":80,'
    '"pages":[{"content":"Total: $10","page":1,"contentLength":10},'
    '{"content":"Thank you","page":2,"contentLength":9}],'
    '"summary":{"failedPages":0,"successfulPages":2,"totalPages":2}}'
)


def test_existing_rows_are_readable_and_rewritten_identically():
    payload = load_payload(STORED_ROW)
    assert payload.file_name == "invoice.pdf"
    assert payload.completion_time == 5321
    assert [p.content for p in payload.ordered_pages()] == ["Total: $10", "Thank you"]
    assert dump_payload(payload) == STORED_ROW


def test_round_trip_is_field_for_field_equal():
    payload = make_payload("scan.pdf", [(2, "b"), (1, "a")])
    assert load_payload(dump_payload(payload)) == payload


def test_ordered_pages_uses_page_number_not_position():
    payload = make_payload("scan.pdf", [(2, "b"), (1, "a")])
    assert [p.page for p in payload.pages] == [2, 1]
    assert [p.page for p in payload.ordered_pages()] == [1, 2]


@pytest.mark.parametrize("text", [
    "",
    "[]",
    '{"fileName": "x.pdf", "pages": []}',
    '{"fileName": "x.pdf", "pages": [{"page": 1, "content": "a"}, {"page": 1, "content": "b"}]}',
    '{"fileName": "x.pdf", "pages": [{"page": 0, "content": "a"}]}',
])
def test_malformed_rows_are_rejected(text):
    with pytest.raises(ValidationError):
        load_payload(text)


def test_missing_metadata_defaults():
    payload = OCRPayload.model_validate({"fileName": "x.pdf", "pages": [{"page": 1, "content": "a"}]})
    assert payload.input_tokens == 0
    assert payload.summary.total_pages == 0


@pytest.mark.parametrize("content, expected", [
    ("Total: $10", 10),
    ("Café", 4),
    ("Paid 😀", 7),
    ("", 0),
])
def test_content_length_counts_utf16_units(content, expected):
    assert OCRPage.from_text(1, content).content_length == expected
