"""Development server.

Starts a uvicorn ASGI server with the live perch App object, single
process. Any ASGI server can host a perch app in production; this is
the ``app.run()`` convenience.
"""

from __future__ import annotations


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    log_level: str = "info",
    reload: bool = False,
    app_path: str | None = None,
) -> None:
    """Start a uvicorn server with the given perch App.

    uvicorn can only reload from an import string, so *reload* needs
    *app_path* (``"module:attribute"``); without it the live object is
    served as-is.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        log_level: uvicorn log level name.
        reload: Restart on source changes (requires *app_path*).
        app_path: Optional ``"module:attribute"`` import string.
    """
    import uvicorn

    if reload and app_path is not None:
        uvicorn.run(app_path, host=host, port=port, log_level=log_level, reload=True)
        return

    config = uvicorn.Config(app, host=host, port=port, log_level=log_level, lifespan="on")
    server = uvicorn.Server(config)
    server.run()
