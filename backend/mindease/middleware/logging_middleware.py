"""
ASGI middleware that logs every API request with its outcome.

Pure ASGI (no BaseHTTPMiddleware) so request cancellation and disconnects
reach the route handlers unchanged. Bodies are logged at DEBUG only, with
credentials masked and large payloads truncated; chat text is user content
and stays out of INFO logs.
"""

import json
import logging
import re
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

SESSION_PATH = re.compile(r"^/api/sessions/(?P<session_id>[^/]+)")


def _sanitize_body(data: bytes) -> str:
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = filter_sensitive_data(json.loads(text))
        text = json.dumps(payload, ensure_ascii=False)
    except json.JSONDecodeError:
        pass
    return truncate_large_data(text, max_length=2000)


def _error_reason(body: bytes) -> Optional[str]:
    try:
        payload = json.loads(body.decode("utf-8", errors="ignore"))
    except json.JSONDecodeError:
        return None
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            if payload.get(key):
                return truncate_large_data(str(payload[key]), max_length=500)
    return None


class RequestLoggingMiddleware:
    """Log method, path, status and duration of each HTTP request."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are not logged (e.g. ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        match = SESSION_PATH.match(path)
        fields = {
            "request_id": id(scope),
            "method": method,
            "path": path,
            "session_id": match.group("session_id") if match else None,
        }

        request_body = bytearray()
        response_body = bytearray()
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_body.extend(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif message["type"] == "http.response.body" and status_code >= 400:
                response_body.extend(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {**fields, "duration_ms": round(duration_ms, 2), "error": str(e)}}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if request_body and logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Request body: {_sanitize_body(bytes(request_body))}",
                extra={"extra_fields": fields}
            )

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        error_reason = _error_reason(bytes(response_body)) if status_code >= 400 else None
        completion_message = f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)"
        if error_reason:
            completion_message += f" | error_reason={error_reason}"

        logger.log(
            log_level,
            completion_message,
            extra={"extra_fields": {
                **fields,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "error_reason": error_reason,
            }}
        )
