"""Models module."""

from .session import Message, Session, Sender, SessionStatus
from .api import (
    CreateSessionRequest, CreateSessionResponse, ChatRequest, ChatResponse,
    EndSessionResponse, SessionSummaryResponse, SessionDetailResponse,
    DeleteSessionsRequest, DeleteSessionsResponse, QuickSummaryRequest, QuickSummaryResponse,
)

__all__ = [
    'Message', 'Session', 'Sender', 'SessionStatus',
    'CreateSessionRequest', 'CreateSessionResponse', 'ChatRequest', 'ChatResponse',
    'EndSessionResponse', 'SessionSummaryResponse', 'SessionDetailResponse',
    'DeleteSessionsRequest', 'DeleteSessionsResponse', 'QuickSummaryRequest', 'QuickSummaryResponse',
]
