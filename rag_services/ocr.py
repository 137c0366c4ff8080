"""
Vision-model OCR for uploaded PDFs
"""
import asyncio
import base64
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from openai import OpenAI, OpenAIError

from core.errors import AppError, OCRError
from models.ocr import OCRPage, OCRPayload, OCRSummary
from rag_services.pdf_processor import PDFProcessor

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = (
    "Convert the following PDF page to markdown. "
    "Return only the markdown with no explanation text. "
    "Do not exclude any content from the page."
)

CONSISTENCY_PROMPT = 'Markdown must maintain consistent formatting with the following page: \n\n"""{prior_page}"""'

_FENCE_RE = re.compile(r"^```(?:markdown)?\s*\n(.*?)\n?```\s*$", re.DOTALL)


class OCRService:
    """Runs OCR over a PDF byte buffer and returns an OCRPayload."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_workers: int = 1,
        render_dpi: int = 150,
        maintain_format: bool = True,
        timeout: float = 300.0,
        client: Optional[OpenAI] = None,
    ):
        # Delay OpenAI client construction until first use so importing
        # modules does not fail when OPENAI_API_KEY is not set.
        self._client = client
        self.model = model
        self.max_workers = max(1, max_workers)
        self.render_dpi = render_dpi
        self.maintain_format = maintain_format
        self.timeout = timeout
        self.pdf_processor = PDFProcessor()

    def _ensure_client(self):
        if self._client is None:
            try:
                self._client = OpenAI(timeout=self.timeout)
            except Exception as e:
                raise OCRError(
                    "OpenAI client could not be initialized. "
                    "Set the OPENAI_API_KEY environment variable. "
                    f"Original error: {e}"
                )

    @staticmethod
    def _strip_fences(text: str) -> str:
        match = _FENCE_RE.match(text.strip())
        return match.group(1).strip() if match else text.strip()

    def _ocr_page(self, image: bytes, prior_page: str = "") -> Tuple[str, int, int]:
        """OCR a single rendered page. Returns (markdown, input_tokens, output_tokens)."""
        messages = [{"role": "system", "content": OCR_SYSTEM_PROMPT}]
        if prior_page:
            messages.append({"role": "system", "content": CONSISTENCY_PROMPT.format(prior_page=prior_page)})
        encoded = base64.b64encode(image).decode("ascii")
        messages.append({
            "role": "user",
            "content": [{"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}}],
        })

        response = self._client.chat.completions.create(model=self.model, messages=messages)
        content = self._strip_fences(response.choices[0].message.content or "")
        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        return content, input_tokens, output_tokens

    def _ocr_pages(self, images: List[bytes]) -> List[Optional[Tuple[str, int, int]]]:
        """OCR every page; a failed page yields None in its slot."""
        results: List[Optional[Tuple[str, int, int]]] = [None] * len(images)

        def run(index: int, prior_page: str = ""):
            try:
                results[index] = self._ocr_page(images[index], prior_page)
            except OpenAIError as e:
                logger.warning("OCR failed for page %d: %s", index + 1, e)

        if self.maintain_format or self.max_workers == 1:
            prior = ""
            for i in range(len(images)):
                run(i, prior if self.maintain_format else "")
                if results[i] is not None:
                    prior = results[i][0]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                list(executor.map(run, range(len(images))))
        return results

    def _process(self, pdf_bytes: bytes, filename: str) -> OCRPayload:
        start = time.perf_counter()
        total_pages = self.pdf_processor.validate(pdf_bytes)
        logger.info("Processing %s (%d pages) with %s", filename, total_pages, self.model)

        images = self.pdf_processor.render_pages(pdf_bytes, self.render_dpi)
        results = self._ocr_pages(images)

        failed = [i for i, r in enumerate(results) if r is None]
        if len(failed) == len(results):
            raise OCRError(f"OCR failed for every page of {filename}")

        fallback_texts = self.pdf_processor.extract_page_texts(pdf_bytes) if failed else []

        pages = []
        input_tokens = output_tokens = 0
        for i, result in enumerate(results):
            if result is None:
                # text layer is the best we have for this page
                content = fallback_texts[i] if i < len(fallback_texts) else ""
            else:
                content, page_in, page_out = result
                input_tokens += page_in
                output_tokens += page_out
            pages.append(OCRPage.from_text(i + 1, content))

        completion_time = int((time.perf_counter() - start) * 1000)
        return OCRPayload(
            completion_time=completion_time,
            file_name=filename,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            pages=pages,
            summary=OCRSummary(
                failed_pages=len(failed),
                successful_pages=len(pages) - len(failed),
                total_pages=len(pages),
            ),
        )

    async def run_ocr(self, pdf_bytes: bytes, filename: str) -> OCRPayload:
        """
        OCR a PDF held in memory.

        Raises InvalidUpload for unreadable input and OCRError for engine
        failures or when the run exceeds ``timeout`` seconds.
        """
        self._ensure_client()

        loop = asyncio.get_running_loop()
        try:
            payload = await asyncio.wait_for(
                loop.run_in_executor(None, self._process, pdf_bytes, filename),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise OCRError(f"OCR timed out after {self.timeout:g}s")
        except AppError:
            raise
        except Exception as e:
            logger.exception("OCR failed for %s", filename)
            raise OCRError(f"OCR failed: {str(e)}")

        logger.info(
            "OCR finished for %s: %d/%d pages in %sms",
            filename,
            payload.summary.successful_pages,
            payload.summary.total_pages,
            payload.completion_time,
        )
        return payload
