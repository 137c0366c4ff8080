"""
Grounding context assembly for document chat.

Turns a selection of document ids plus a question into the prompt handed to
the answering backend. Reads the store once per call and keeps no state
between calls.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from core.errors import MalformedResult, NoDocumentsSelected, NoResultsFound
from models.ocr import OCRPayload, load_payload
from services import documents as document_service

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n\n---\n\n"
PAGE_SEPARATOR = "\n\n"

FetchResults = Callable[[Sequence[str]], Awaitable[List[Tuple[Dict[str, Any], Dict[str, Any]]]]]


@dataclass
class RenderedDocument:
    document_id: str
    filename: str
    rendered_text: str


@dataclass
class ContextBundle:
    documents: List[RenderedDocument]
    combined_text: str
    prompt: str
    warnings: List[str] = field(default_factory=list)


def render_document(filename: str, payload: OCRPayload) -> str:
    pages = PAGE_SEPARATOR.join(page.content for page in payload.ordered_pages())
    return f"Document: {filename}\n{pages}"


def build_prompt(combined_text: str, question: str) -> str:
    return f"Context from documents:\n{combined_text}\n\nUser question: {question}"


def _unique_in_order(document_ids: Sequence[str]) -> List[str]:
    """Canonical ids in first-seen order; ids that cannot exist are dropped."""
    seen = set()
    ordered = []
    for raw_id in document_ids:
        document_id = document_service.normalize_document_id(raw_id)
        if document_id is None:
            continue
        if document_id not in seen:
            seen.add(document_id)
            ordered.append(document_id)
    return ordered


async def assemble_context(
    document_ids: Sequence[str],
    question: str,
    fetch: Optional[FetchResults] = None,
    skip_malformed: bool = False,
) -> ContextBundle:
    """
    Build the grounding context and prompt for ``question``.

    Documents are rendered in the order their ids were given (duplicates
    collapsed). Pages within a document are rendered in ascending page number.

    Raises:
        NoDocumentsSelected: ``document_ids`` is empty.
        NoResultsFound: none of the ids has a stored OCR result.
        MalformedResult: a stored payload does not parse (unless
            ``skip_malformed``, in which case it is dropped with a warning).
    """
    if not document_ids:
        raise NoDocumentsSelected()

    ordered_ids = _unique_in_order(document_ids)
    if not ordered_ids:
        raise NoResultsFound()

    fetch = fetch or document_service.find_ocr_results_by_document_ids
    rows = await fetch(ordered_ids)
    if not rows:
        raise NoResultsFound()

    by_document_id = {str(result["documentId"]): (result, document) for result, document in rows}

    rendered: List[RenderedDocument] = []
    warnings: List[str] = []
    for document_id in ordered_ids:
        row = by_document_id.get(document_id)
        if row is None:
            continue
        result, document = row
        filename = document.get("filename", "")
        try:
            payload = load_payload(result.get("content"))
        except (ValidationError, TypeError, ValueError) as e:
            error = MalformedResult(document_id, filename, reason=e.__class__.__name__)
            if not skip_malformed:
                raise error from e
            logger.warning("Skipping document %s: %s", document_id, error.message)
            warnings.append(error.message)
            continue
        rendered.append(RenderedDocument(document_id, filename, render_document(filename, payload)))

    if not rendered:
        raise NoResultsFound()

    combined_text = DOCUMENT_SEPARATOR.join(doc.rendered_text for doc in rendered)
    prompt = build_prompt(combined_text, question)
    logger.debug("Assembled context for %d document(s): %s", len(rendered), prompt)
    return ContextBundle(documents=rendered, combined_text=combined_text, prompt=prompt, warnings=warnings)
