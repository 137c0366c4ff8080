import threading
import time
from types import SimpleNamespace

import fitz
import pytest
from openai import OpenAIError

from core.errors import InvalidUpload, OCRError
from rag_services.ocr import OCRService
from rag_services.pdf_processor import PDFProcessor


def make_pdf(texts):
    doc = fitz.open()
    for text in texts:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, model, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply()
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=reply))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=4),
        )


def fake_client(replies):
    completions = FakeCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_validate_counts_pages():
    assert PDFProcessor.validate(make_pdf(["a", "b", "c"])) == 3


@pytest.mark.parametrize("data", [b"", b"definitely not a pdf"])
def test_validate_rejects_bad_input(data):
    with pytest.raises(InvalidUpload):
        PDFProcessor.validate(data)


def test_render_pages_returns_png_per_page():
    images = PDFProcessor.render_pages(make_pdf(["one", "two"]), dpi=72)
    assert len(images) == 2
    assert all(image.startswith(b"\x89PNG") for image in images)


async def test_run_ocr_builds_payload():
    client, completions = fake_client(["Total: $10", "```markdown\nThank you\n```"])
    service = OCRService(client=client, render_dpi=72)

    payload = await service.run_ocr(make_pdf(["Total: $10", "Thank you"]), "invoice.pdf")

    assert payload.file_name == "invoice.pdf"
    assert [p.page for p in payload.pages] == [1, 2]
    assert [p.content for p in payload.pages] == ["Total: $10", "Thank you"]
    assert all(p.content_length == len(p.content) for p in payload.pages)
    assert payload.input_tokens == 20
    assert payload.output_tokens == 8
    assert payload.summary.total_pages == 2
    assert payload.summary.successful_pages == 2
    assert payload.summary.failed_pages == 0
    assert payload.completion_time >= 0
    assert len(completions.calls) == 2


async def test_maintain_format_passes_previous_page():
    client, completions = fake_client(["# Heading", "body"])
    service = OCRService(client=client, render_dpi=72, maintain_format=True)

    await service.run_ocr(make_pdf(["a", "b"]), "doc.pdf")

    first_call, second_call = completions.calls
    assert len(first_call) == 2
    assert any("# Heading" in m["content"] for m in second_call if m["role"] == "system")


async def test_failed_page_falls_back_to_text_layer():
    client, _ = fake_client(["first page", OpenAIError("rate limited")])
    service = OCRService(client=client, render_dpi=72)

    payload = await service.run_ocr(make_pdf(["first page", "Thank you"]), "doc.pdf")

    assert payload.summary.failed_pages == 1
    assert payload.summary.successful_pages == 1
    assert "Thank you" in payload.pages[1].content


async def test_all_pages_failing_is_an_ocr_error():
    client, _ = fake_client([OpenAIError("down"), OpenAIError("down")])
    service = OCRService(client=client, render_dpi=72, maintain_format=False, max_workers=2)

    with pytest.raises(OCRError):
        await service.run_ocr(make_pdf(["a", "b"]), "doc.pdf")


async def test_invalid_pdf_never_reaches_the_model():
    client, completions = fake_client([])
    service = OCRService(client=client)

    with pytest.raises(InvalidUpload):
        await service.run_ocr(b"not a pdf", "doc.pdf")
    assert completions.calls == []


async def test_run_ocr_times_out():
    def slow():
        time.sleep(0.5)
        return "late"

    client, _ = fake_client([slow])
    service = OCRService(client=client, render_dpi=72, timeout=0.05)

    with pytest.raises(OCRError, match="timed out"):
        await service.run_ocr(make_pdf(["a"]), "doc.pdf")


async def test_pdf_parsing_runs_off_the_event_loop(monkeypatch):
    threads = []
    original = PDFProcessor.validate

    def recording_validate(pdf_bytes):
        threads.append(threading.current_thread())
        return original(pdf_bytes)

    monkeypatch.setattr(PDFProcessor, "validate", staticmethod(recording_validate))
    client, _ = fake_client(["text"])
    service = OCRService(client=client, render_dpi=72)

    await service.run_ocr(make_pdf(["text"]), "doc.pdf")
    assert threads and threads[0] is not threading.current_thread()
