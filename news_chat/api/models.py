from typing import List, Optional

from pydantic import BaseModel, Field


class Source(BaseModel):
    title: str = Field(..., description="Title of the retrieved article")
    url: str = Field(..., description="URL of the retrieved article")


class ChatRequest(BaseModel):
    # Optional so that missing fields map to a 400 instead of a schema error
    sessionId: Optional[str] = Field(default=None, description="Opaque session identifier")
    message: Optional[str] = Field(default=None, description="The user's question")


class ChatResponse(BaseModel):
    response: str = Field(..., description="Generated answer")
    sources: List[Source] = Field(..., description="Articles used as context, in retrieval order")


class IngestResponse(BaseModel):
    count: int = Field(..., description="Number of articles ingested")
    message: str


class SessionResponse(BaseModel):
    sessionId: str


class HistoryMessage(BaseModel):
    role: str
    content: str
    timestamp: int = Field(..., description="Milliseconds since the epoch")


class HistoryResponse(BaseModel):
    history: List[HistoryMessage]


class ClearResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str
    timestamp: str
