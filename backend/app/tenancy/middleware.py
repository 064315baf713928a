"""
Request correlation ids.
"""

import logging
import re
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

# Caller-supplied ids end up in logs and response headers, so only short
# opaque tokens are echoed back.
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(candidate: str | None) -> str:
    if candidate and _REQUEST_ID_PATTERN.match(candidate):
        return candidate
    return uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Gives every request an id on request.state and echoes it in the response.

    Identity is not resolved here: the authentication dependency attaches
    the actor later, once the session token has been checked.
    """

    async def dispatch(self, request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        request.state.actor = None
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
