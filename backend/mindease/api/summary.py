"""
On-demand summary endpoint - summarizes a message list sent by the client.
Nothing is stored.
"""

from fastapi import APIRouter, Depends, Request

from ..core import SessionLifecycle
from ..models import QuickSummaryRequest, QuickSummaryResponse
from .deps import get_lifecycle, run_bound_to_request

router = APIRouter(prefix="/api/session-summary", tags=["summary"])


@router.post("", response_model=QuickSummaryResponse)
async def summarize_messages(
    body: QuickSummaryRequest,
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle)
):
    """Summarize ``messages`` ([{text, sender}, ...]) without touching any session."""
    result = await run_bound_to_request(request, lifecycle.summarizer.summarize_messages(body.messages))
    return QuickSummaryResponse(summary=result.text)
