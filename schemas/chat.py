from typing import List

from pydantic import BaseModel, Field


# Request Schemas
class ChatRequest(BaseModel):
    message: str
    # empty selection is reported as "No documents selected", not a validation error
    documentIds: List[str] = Field(default_factory=list)


# Response Schemas
class ChatResponse(BaseModel):
    message: str
