"""
PDF validation, text-layer extraction and page rendering
"""
import io
import re
from typing import List

import fitz  # PyMuPDF
from pypdf import PdfReader

from core.errors import InvalidUpload


class PDFProcessor:
    """Handles PDF reading for the OCR pipeline. Works on byte buffers only."""

    @staticmethod
    def validate(pdf_bytes: bytes) -> int:
        """Check that the buffer is a readable PDF and return its page count."""
        if not pdf_bytes:
            raise InvalidUpload("Uploaded file is empty")
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            if reader.is_encrypted:
                raise InvalidUpload("Encrypted PDFs are not supported")
            total_pages = len(reader.pages)
        except InvalidUpload:
            raise
        except Exception as e:
            raise InvalidUpload(f"Failed to read PDF: {str(e)}")

        if total_pages == 0:
            raise InvalidUpload("PDF has no pages")
        return total_pages

    @staticmethod
    def extract_page_texts(pdf_bytes: bytes) -> List[str]:
        """Text layer of every page, one string per page ('' when a page has none)."""
        reader = PdfReader(io.BytesIO(pdf_bytes))
        texts = []
        for page in reader.pages:
            try:
                extracted = page.extract_text() or ""
            except Exception:
                extracted = ""
            texts.append(PDFProcessor._clean_text(extracted))
        return texts

    @staticmethod
    def render_pages(pdf_bytes: bytes, dpi: int = 150) -> List[bytes]:
        """Render every page to PNG bytes."""
        zoom = dpi / 72.0
        matrix = fitz.Matrix(zoom, zoom)
        images = []
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page in doc:
                pix = page.get_pixmap(matrix=matrix)
                images.append(pix.tobytes("png"))
        return images

    @staticmethod
    def _clean_text(text: str) -> str:
        """Clean and normalize text while keeping paragraph breaks."""
        text = re.sub(r"-\s*\n", "", text)
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()
