from functools import lru_cache

from core.config import settings
from rag_services.llm import AnsweringService, LangflowService, OpenAIChatService
from rag_services.ocr import OCRService


@lru_cache
def get_ocr_service() -> OCRService:
    return OCRService(
        model=settings.OCR_MODEL,
        max_workers=settings.OCR_MAX_WORKERS,
        render_dpi=settings.OCR_RENDER_DPI,
        maintain_format=settings.OCR_MAINTAIN_FORMAT,
        timeout=settings.OCR_TIMEOUT_SECONDS,
    )


@lru_cache
def get_answering_service() -> AnsweringService:
    if settings.ANSWER_BACKEND == "openai":
        return OpenAIChatService(
            model=settings.CHAT_MODEL,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
            timeout=settings.ANSWER_TIMEOUT_SECONDS,
        )
    return LangflowService(
        api_url=settings.LANGFLOW_API_URL,
        api_key=settings.LANGFLOW_API_KEY,
        timeout=settings.ANSWER_TIMEOUT_SECONDS,
    )
