"""Request id middleware.

Assigns every request a fresh UUID4, exposes it as ``Request.request_id``
(and so ``RequestContext.request_id``), and echoes it back in the
``X-Request-ID`` response header alongside ``X-Powered-By``.
"""

import uuid
from dataclasses import replace

from perch.context import request_var
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next


class RequestIdMiddleware:
    """Tag requests and responses with an id.

    ``powered_by`` is the ``X-Powered-By`` value; an empty string omits
    the header.
    """

    __slots__ = ("powered_by",)

    def __init__(self, powered_by: str = "perch") -> None:
        self.powered_by = powered_by

    async def __call__(self, request: Request, next: Next) -> Response:
        request_id = str(uuid.uuid4())
        request = replace(request, request_id=request_id)
        request_var.set(request)

        response = await next(request)

        response = response.with_header("X-Request-ID", request_id)
        if self.powered_by:
            response = response.with_header("X-Powered-By", self.powered_by)
        return response
