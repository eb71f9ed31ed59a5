"""
Chat API endpoints - one user message in, one bot reply out.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core import SessionLifecycle
from ..models import ChatRequest, ChatResponse
from .deps import get_lifecycle, run_bound_to_request

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def send_message(
    body: ChatRequest,
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """
    Store the user message, generate a reply and store it.

    A provider failure still answers 200 with the fallback reply; the
    ``X-Completion-Fallback`` header tells the two apart.
    """
    result = await run_bound_to_request(
        request,
        lifecycle.append_exchange(body.session_id, body.user_id, body.message),
    )
    response = ChatResponse(message=result.reply)
    if result.fallback:
        return _with_fallback_header(response, result.error_kind)
    return response


def _with_fallback_header(body: ChatResponse, error_kind: Optional[str]) -> JSONResponse:
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers={"X-Completion-Fallback": error_kind or "unknown"},
    )
