"""Request logging middleware for the clause API."""

import json
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("bill_clauses.requests")

# Longest error detail echoed into the log
MAX_LOGGED_DETAIL = 500


def summarize_detail(body: bytes) -> str:
    """Condense an error response body into one log-friendly line.

    FastAPI error bodies carry a ``detail`` that is either a message
    ("Bill 12 not found") or a list of field errors, both for request
    validation and for rejected clause edits. Field errors are rendered
    as ``field: message`` pairs; anything else falls back to the raw body.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        detail = json.loads(text)["detail"]
    except (ValueError, KeyError, TypeError):
        detail = text

    if isinstance(detail, list):
        parts = []
        for error in detail:
            if not isinstance(error, dict):
                parts.append(str(error))
                continue
            # Drop the "body"/"query"/"path" prefix FastAPI puts on loc
            loc = [str(part) for part in error.get("loc", [])[1:]]
            field = ".".join(loc) or "request"
            parts.append(f"{field}: {error.get('msg', '')}")
        detail = "; ".join(parts)
    elif not isinstance(detail, str):
        detail = json.dumps(detail)

    if len(detail) > MAX_LOGGED_DETAIL:
        detail = detail[:MAX_LOGGED_DETAIL] + "..."
    return detail


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status, and duration.

    Requests routed to a bill are tagged with its id so a bill's parse and
    edit history can be grepped out of the log. For 4xx/5xx responses the
    error detail is logged as well.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        status = response.status_code
        method = request.method
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        # Routing fills path_params on the shared scope during call_next
        bill_id = request.path_params.get("bill_id")
        tag = f" [bill {bill_id}]" if bill_id is not None else ""

        if status >= 400 and hasattr(response, "body_iterator"):
            # Read the body to include error detail in the log, then
            # reconstruct the response so the client still receives it.
            body_bytes = b""
            async for chunk in response.body_iterator:
                if isinstance(chunk, str):
                    body_bytes += chunk.encode("utf-8")
                else:
                    body_bytes += chunk

            detail = summarize_detail(body_bytes)
            log = logger.warning if status < 500 else logger.error
            log(
                "%s %s%s -> %d (%.0fms): %s",
                method,
                path,
                tag,
                status,
                duration_ms,
                detail,
            )

            return Response(
                content=body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        logger.info("%s %s%s -> %d (%.0fms)", method, path, tag, status, duration_ms)
        return response
