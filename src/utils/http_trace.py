"""
HTTP request/response tracing.

Dumps full requests and responses to the debug log when tracing is enabled
for a client. Authorization values are redacted.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

REDACTED_HEADERS = frozenset({"authorization", "proxy-authorization"})
MAX_BODY_CHARS = 4096


def _redact(headers) -> dict[str, str]:
    return {
        key: ("<redacted>" if key.lower() in REDACTED_HEADERS else value)
        for key, value in headers.items()
    }


def _body_text(body: Optional[object]) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    text = str(body)
    if len(text) > MAX_BODY_CHARS:
        return f"{text[:MAX_BODY_CHARS]}... ({len(text)} chars)"
    return text


def dump_response(response: requests.Response, enabled: bool = True) -> None:
    """
    Log a response and the request that produced it.

    Args:
        response: Response returned by requests
        enabled: Tracing switch of the calling client
    """
    if not enabled:
        return

    request = response.request
    if request is not None:
        logger.debug(
            f"request_dump: {request.method} {request.url}\n"
            f"headers: {_redact(request.headers)}\n"
            f"{_body_text(request.body)}"
        )
    logger.debug(
        f"response_dump: {response.status_code} {response.reason}\n"
        f"headers: {_redact(response.headers)}\n"
        f"{_body_text(response.content)}"
    )


__all__ = ["dump_response"]
