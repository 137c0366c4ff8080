import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.errors import AppError
from core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message,
                         exc_info=exc.__cause__ or exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @application.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Upload PDFs, OCR them and chat with their contents",
        version="1.0.0",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    # DB lifecycle
    from db.mongo import connect_to_mongo, close_mongo_connection, ping

    @application.on_event("startup")
    async def startup_event():
        await connect_to_mongo()

    @application.on_event("shutdown")
    async def shutdown_event():
        await close_mongo_connection()

    # Routers are imported lazily to avoid circular deps during app creation
    from routers.documents import router as documents_router
    from routers.chat import router as chat_router
    from schemas.document import HealthResponse

    application.include_router(documents_router, tags=["documents"])
    application.include_router(chat_router, tags=["chat"])

    @application.get("/health", response_model=HealthResponse, tags=["health"])
    async def health():
        return {"status": "ok", "database": await ping()}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
