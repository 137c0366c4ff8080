from pydantic_settings import BaseSettings
from pydantic import AnyUrl, Field
from typing import List, Literal, Optional


class Settings(BaseSettings):
    app_name: str = "Document Chat API"
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Mongo (database name is extracted from the URI path)
    mongo_uri: AnyUrl | str = Field(default="mongodb://localhost:27017/document-chat")

    # CORS
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # File Upload Settings
    MAX_FILE_SIZE_MB: int = 20
    ALLOWED_EXTENSIONS: List[str] = [".pdf"]

    # OCR Settings
    OCR_MODEL: str = "gpt-4o-mini"
    OCR_MAX_WORKERS: int = 1
    OCR_RENDER_DPI: int = 150
    OCR_MAINTAIN_FORMAT: bool = True
    OCR_TIMEOUT_SECONDS: float = 300.0

    # Answering Settings
    ANSWER_BACKEND: Literal["langflow", "openai"] = "langflow"
    LANGFLOW_API_URL: str = ""
    LANGFLOW_API_KEY: Optional[str] = None
    ANSWER_TIMEOUT_SECONDS: float = 120.0

    # OpenAI answering backend
    CHAT_MODEL: str = "gpt-4o-mini"
    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 1000

    # Context assembly
    SKIP_MALFORMED_RESULTS: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


settings = Settings()
