"""API module."""

from .chat import router as chat_router
from .sessions import router as sessions_router
from .summary import router as summary_router

__all__ = ['chat_router', 'sessions_router', 'summary_router']
