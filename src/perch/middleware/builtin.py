"""Built-in middleware: CORS.

Adds CORS headers to every response and answers preflight requests
before they reach routing.
"""

from perch.config import CORSConfig
from perch.http.request import Request
from perch.http.response import Response, empty_response
from perch.middleware.protocol import Next


class CORSMiddleware:
    """CORS middleware, installed by ``create_app()`` from ``AppConfig.cors``.

    Handles:
    - Preflight ``OPTIONS`` requests (204 with CORS headers)
    - Actual requests (CORS headers added to the response)
    - Credential support (``Access-Control-Allow-Credentials``)
    - Wildcard origins (``"*"``) when credentials are disabled

    With ``CORSConfig(disable=True)`` no CORS headers are sent and
    ``OPTIONS`` requests are answered with an empty 200.
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        """Check if the origin is in the allow list."""
        origins = self.config.origins
        return "*" in origins or origin in origins

    def _add_cors_headers(self, response: Response, origin: str | None) -> Response:
        """Add CORS headers to a response."""
        cfg = self.config

        if "*" in cfg.origins and not cfg.allow_credentials:
            response = response.with_header("Access-Control-Allow-Origin", "*")
        elif origin is not None and self._is_allowed_origin(origin):
            response = response.with_header("Access-Control-Allow-Origin", origin)
            response = response.with_header("Vary", "Origin")

        if cfg.allow_credentials:
            response = response.with_header("Access-Control-Allow-Credentials", "true")

        response = response.with_header("Access-Control-Allow-Methods", ",".join(cfg.allow_methods))
        if cfg.allow_headers:
            response = response.with_header(
                "Access-Control-Allow-Headers",
                ", ".join(cfg.allow_headers),
            )
        if cfg.expose_headers:
            response = response.with_header(
                "Access-Control-Expose-Headers",
                ", ".join(cfg.expose_headers),
            )
        return response

    async def __call__(self, request: Request, next: Next) -> Response:
        """Process the request with CORS handling."""
        if self.config.disable:
            if request.method == "OPTIONS":
                return empty_response(200)
            return await next(request)

        origin = request.headers.get("origin")

        # Preflight request
        if request.method == "OPTIONS":
            response = self._add_cors_headers(empty_response(204), origin)
            if self.config.max_age is not None:
                response = response.with_header("Access-Control-Max-Age", str(self.config.max_age))
            return response

        response = await next(request)
        return self._add_cors_headers(response, origin)
