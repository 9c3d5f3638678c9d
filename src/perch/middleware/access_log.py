"""HTTP access logging middleware.

One line per request on the ``perch.access`` logger::

    GET /members/42 200 1.284 ms - 57

Installed by ``create_app()`` when ``AppConfig.enable_http_logging`` is set.
"""

import logging
import time

from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

logger = logging.getLogger("perch.access")


class AccessLogMiddleware:
    """Log method, path, status, elapsed time and body length."""

    __slots__ = ()

    async def __call__(self, request: Request, next: Next) -> Response:
        start = time.perf_counter()
        response = await next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        length = len(response.body_bytes)
        logger.info(
            "%s %s %d %.3f ms - %s",
            request.method,
            request.path,
            response.status,
            elapsed_ms,
            length if length else "-",
        )
        return response
