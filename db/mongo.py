import logging
from typing import Optional

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from core.config import settings

logger = logging.getLogger(__name__)

DOCUMENTS = "documents"
OCR_RESULTS = "ocr_results"

# Global connection variables
mongo_client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo() -> None:
    """
    Initialize MongoDB connection using Motor.
    Creates indexes for the documents and ocr_results collections.
    """
    global mongo_client, db
    if mongo_client is None:
        uri = str(settings.mongo_uri)
        kwargs = {}
        if uri.startswith("mongodb+srv://"):
            kwargs["tlsCAFile"] = certifi.where()  # Required for MongoDB Atlas SSL connections
        mongo_client = AsyncIOMotorClient(uri, **kwargs)
        # Get database from the URI path (e.g., /document-chat in the connection string)
        db = mongo_client.get_default_database()

        await create_document_indexes()

        logger.info("Connected to MongoDB: %s", db.name)


async def close_mongo_connection() -> None:
    global mongo_client, db
    if mongo_client is not None:
        mongo_client.close()
        mongo_client = None
        db = None
        logger.info("MongoDB connection closed")


async def create_document_indexes() -> None:
    """
    Create indexes used by the document store.
    This is called automatically during connect_to_mongo().
    """
    if db is None:
        return

    # Listing is newest first
    await db[DOCUMENTS].create_index(
        [("createdAt", DESCENDING)],
        name="created_at_idx"
    )

    # One OCR result per document
    await db[OCR_RESULTS].create_index(
        [("documentId", ASCENDING)],
        name="document_id_idx",
        unique=True
    )

    logger.debug("Document store indexes created")


async def ping() -> bool:
    if db is None:
        return False
    try:
        await db.command("ping")
        return True
    except Exception:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False
