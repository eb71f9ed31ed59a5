"""
API Models - Request and response bodies of the HTTP surface.
Field names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .session import Message, SessionStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionRequest(CamelModel):
    user_id: str


class CreateSessionResponse(CamelModel):
    session_id: str


class ChatRequest(CamelModel):
    message: str
    session_id: str
    user_id: str


class ChatResponse(CamelModel):
    message: str


class EndSessionResponse(CamelModel):
    success: bool = True
    summary: str
    related_sessions: int
    session_id: str


class SessionSummaryResponse(CamelModel):
    success: bool = True
    summary: Optional[str] = None
    status: SessionStatus
    ended_at: Optional[datetime] = None


class SessionDetailResponse(CamelModel):
    session_id: str
    user_id: str
    status: SessionStatus
    messages: List[Message]
    summary: Optional[str] = None
    ended_at: Optional[datetime] = None
    related_sessions: List[str] = []
    created_at: datetime
    pending: bool = False


class DeleteSessionsRequest(CamelModel):
    user_id: str


class DeleteSessionsResponse(CamelModel):
    success: bool = True
    deleted_count: int


class QuickSummaryRequest(CamelModel):
    # Validated by the summarization service so non-list payloads get a clear 400
    messages: Any


class QuickSummaryResponse(CamelModel):
    success: bool = True
    summary: str
