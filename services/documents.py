"""
Document store backed by MongoDB.

Two collections: ``documents`` (the uploaded PDF, base64) and ``ocr_results``
(one row per document holding the serialized OCR payload). Readers only ever
see an OCR result through its parent document, which is written last.
"""
import base64
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

import db.mongo as mongo
from db.mongo import DOCUMENTS, OCR_RESULTS
from core.errors import InputError
from models.ocr import OCRPayload, dump_payload

logger = logging.getLogger(__name__)


def parse_object_id(value: str) -> ObjectId:
    if not value or not isinstance(value, str):
        raise InputError("Document ID is required")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InputError("Invalid document id format")


def normalize_document_id(value: str) -> Optional[str]:
    """Canonical (lowercase hex) form of a document id, or None if it cannot be one."""
    try:
        return str(ObjectId(value))
    except (InvalidId, TypeError):
        return None


def _object_ids(values: Iterable[str]) -> List[ObjectId]:
    oids = []
    for value in values:
        try:
            oids.append(ObjectId(value))
        except (InvalidId, TypeError):
            # unknown ids are omitted like any other absent id
            continue
    return oids


async def create_document(filename: str, raw_bytes: bytes, payload: OCRPayload) -> Dict[str, Any]:
    """
    Persist a document together with its OCR result.

    The OCR row is written first under a pre-allocated document id; it is not
    reachable until the document row exists. If the document write fails the
    OCR row is removed again.
    """
    now = datetime.now(timezone.utc)
    document_id = ObjectId()

    ocr_doc = {
        "documentId": document_id,
        "content": dump_payload(payload),
        "createdAt": now,
        "updatedAt": now,
    }
    res = await mongo.db[OCR_RESULTS].insert_one(ocr_doc)
    ocr_doc["_id"] = res.inserted_id

    doc = {
        "_id": document_id,
        "filename": filename,
        "content": base64.b64encode(raw_bytes).decode("ascii"),
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        await mongo.db[DOCUMENTS].insert_one(doc)
    except Exception:
        logger.error("Document insert failed for %s, removing its OCR result", filename)
        await mongo.db[OCR_RESULTS].delete_one({"_id": ocr_doc["_id"]})
        raise

    doc["ocrResult"] = ocr_doc
    return doc


async def list_documents() -> List[Dict[str, Any]]:
    """All documents, newest first, each with its OCR result (or None) embedded."""
    cursor = mongo.db[DOCUMENTS].find({}).sort([("createdAt", -1), ("_id", -1)])
    docs = [doc async for doc in cursor]
    if not docs:
        return []

    results = mongo.db[OCR_RESULTS].find({"documentId": {"$in": [d["_id"] for d in docs]}})
    by_document = {r["documentId"]: r async for r in results}
    for doc in docs:
        doc["ocrResult"] = by_document.get(doc["_id"])
    return docs


async def get_document(document_id: str) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(document_id)
    doc = await mongo.db[DOCUMENTS].find_one({"_id": oid})
    if not doc:
        return None
    doc["ocrResult"] = await mongo.db[OCR_RESULTS].find_one({"documentId": oid})
    return doc


async def find_ocr_results_by_document_ids(
    document_ids: Iterable[str],
) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """
    Set-membership fetch of OCR results joined with their parent document.
    Ids that do not exist (or have no OCR result) are silently omitted.
    """
    oids = _object_ids(document_ids)
    if not oids:
        return []

    results = [r async for r in mongo.db[OCR_RESULTS].find({"documentId": {"$in": oids}})]
    if not results:
        return []

    parents = mongo.db[DOCUMENTS].find({"_id": {"$in": [r["documentId"] for r in results]}})
    by_id = {d["_id"]: d async for d in parents}
    return [(r, by_id[r["documentId"]]) for r in results if r["documentId"] in by_id]


async def delete_document(document_id: str) -> bool:
    """
    Delete the OCR result (if any) and then the document.
    Returns False when no document with that id exists.
    """
    oid = parse_object_id(document_id)
    await mongo.db[OCR_RESULTS].delete_many({"documentId": oid})
    res = await mongo.db[DOCUMENTS].delete_one({"_id": oid})
    return res.deleted_count == 1


def _as_utc(value: datetime) -> datetime:
    # Mongo hands back naive UTC datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def ocr_result_to_public(result: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not result:
        return None
    return {
        "id": str(result["_id"]),
        "content": result.get("content", ""),
        "documentId": str(result["documentId"]),
        "createdAt": _as_utc(result.get("createdAt")),
        "updatedAt": _as_utc(result.get("updatedAt")),
    }


def document_to_public(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "filename": doc["filename"],
        "content": doc.get("content", ""),
        "createdAt": _as_utc(doc.get("createdAt")),
        "updatedAt": _as_utc(doc.get("updatedAt")),
        "ocrResult": ocr_result_to_public(doc.get("ocrResult")),
    }
