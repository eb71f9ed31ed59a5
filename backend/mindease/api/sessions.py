"""
Session API endpoints - create, inspect, end and delete sessions.

Only ending a session waits on the LLM provider, so only that route runs
through ``run_bound_to_request``. The other routes are single store calls
already bounded by ``store_timeout_seconds``; a bulk delete is not
interrupted halfway when the caller disconnects.
"""

from fastapi import APIRouter, Depends, Request

from ..core import SessionLifecycle
from ..models import (
    CreateSessionRequest, CreateSessionResponse,
    DeleteSessionsRequest, DeleteSessionsResponse,
    EndSessionResponse, SessionDetailResponse, SessionSummaryResponse,
)
from .deps import get_lifecycle, run_bound_to_request

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("", response_model=CreateSessionResponse)
async def create_session(
    body: CreateSessionRequest,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """Start a new, empty, active session for the user."""
    session = await lifecycle.create_session(body.user_id)
    return CreateSessionResponse(session_id=session.id)


@router.post("/delete", response_model=DeleteSessionsResponse)
async def delete_sessions(
    body: DeleteSessionsRequest,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """Delete every session of the user, active or ended."""
    deleted = await lifecycle.delete_all_sessions(body.user_id)
    return DeleteSessionsResponse(deleted_count=deleted)


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """
    Full session record.

    ``pending`` is true when the last user message never got a stored reply.
    """
    session = await lifecycle.get_session(session_id)
    return SessionDetailResponse(
        session_id=session.id,
        user_id=session.user_id,
        status=session.status,
        messages=session.messages,
        summary=session.summary,
        ended_at=session.ended_at,
        related_sessions=session.related_sessions,
        created_at=session.created_at,
        pending=session.pending_message is not None,
    )


@router.post("/{session_id}/summary", response_model=EndSessionResponse)
async def end_session(
    session_id: str,
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """Summarize the session, link related sessions and mark it ended."""
    result = await run_bound_to_request(request, lifecycle.end_session(session_id))
    return EndSessionResponse(
        summary=result.summary,
        related_sessions=len(result.related_session_ids),
        session_id=result.session.id,
    )


@router.get("/{session_id}/summary", response_model=SessionSummaryResponse)
async def get_session_summary(
    session_id: str,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """Stored summary, status and end time of a session."""
    session = await lifecycle.get_summary(session_id)
    return SessionSummaryResponse(
        summary=session.summary,
        status=session.status,
        ended_at=session.ended_at,
    )
