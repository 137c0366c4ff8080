"""
OCR payload models.

The payload is persisted as JSON text in the ``content`` field of an OCR
result row. Keys are camelCase and declared in the order existing rows were
written, so ``dump_payload`` output stays byte-compatible with them.
"""
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Number = Union[int, float]


def utf16_length(text: str) -> int:
    """Length in UTF-16 code units, the unit existing rows were measured in."""
    return len(text.encode("utf-16-le")) // 2


class OCRPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = ""
    page: int = Field(ge=1)
    content_length: int = Field(default=0, ge=0, alias="contentLength")

    @classmethod
    def from_text(cls, page: int, content: str) -> "OCRPage":
        content = content or ""
        return cls(content=content, page=page, content_length=utf16_length(content))


class OCRSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    failed_pages: int = Field(default=0, ge=0, alias="failedPages")
    successful_pages: int = Field(default=0, ge=0, alias="successfulPages")
    total_pages: int = Field(default=0, ge=0, alias="totalPages")


class OCRPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completion_time: Number = Field(default=0, alias="completionTime")  # ms
    file_name: str = Field(alias="fileName")
    input_tokens: int = Field(default=0, alias="inputTokens")
    output_tokens: int = Field(default=0, alias="outputTokens")
    pages: List[OCRPage] = Field(min_length=1)
    summary: OCRSummary = Field(default_factory=OCRSummary)

    @field_validator("pages")
    @classmethod
    def _unique_page_numbers(cls, pages: List[OCRPage]) -> List[OCRPage]:
        numbers = [p.page for p in pages]
        if len(numbers) != len(set(numbers)):
            raise ValueError("page numbers must be unique")
        return pages

    def ordered_pages(self) -> List[OCRPage]:
        """Pages in render order (ascending page number)."""
        return sorted(self.pages, key=lambda p: p.page)


def dump_payload(payload: OCRPayload) -> str:
    """Serialize to the stored text form."""
    return payload.model_dump_json(by_alias=True)


def load_payload(text: str) -> OCRPayload:
    """Parse the stored text form. Raises pydantic.ValidationError on bad input."""
    return OCRPayload.model_validate_json(text)
