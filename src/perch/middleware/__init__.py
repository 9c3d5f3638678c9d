"""Middleware — Protocol-based, no inheritance required.

A transport middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware (installed by ``create_app()``):
    AccessLogMiddleware -- One access-log line per request
    CORSMiddleware -- Cross-Origin Resource Sharing
    RequestIdMiddleware -- X-Request-ID / X-Powered-By headers
"""

from perch.middleware.access_log import AccessLogMiddleware
from perch.middleware.builtin import CORSMiddleware
from perch.middleware.protocol import Middleware, Next
from perch.middleware.request_id import RequestIdMiddleware

__all__ = [
    "AccessLogMiddleware",
    "CORSMiddleware",
    "Middleware",
    "Next",
    "RequestIdMiddleware",
]
