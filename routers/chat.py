import logging

from fastapi import APIRouter, Depends

from core.config import settings
from core.errors import AnswerError, AppError
from dependencies.services import get_answering_service
from rag_services.context import assemble_context
from rag_services.llm import AnsweringService
from schemas.chat import ChatRequest, ChatResponse
from schemas.document import ERROR_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    answering_service: AnsweringService = Depends(get_answering_service),
):
    """
    Answer a question grounded in the selected documents.

    Request body:
    ```json
    {
        "message": "What is the total?",
        "documentIds": ["66f1c2..."]
    }
    ```

    Response:
    ```json
    {
        "message": "The total is $10."
    }
    ```
    """
    bundle = await assemble_context(
        payload.documentIds,
        payload.message,
        skip_malformed=settings.SKIP_MALFORMED_RESULTS,
    )

    try:
        answer = await answering_service.answer(bundle.prompt)
    except AppError:
        raise
    except Exception as e:
        logger.exception("Answering backend failed")
        raise AnswerError(str(e))

    return ChatResponse(message=answer)
