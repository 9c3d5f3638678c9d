"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. Callables (observers, plugins, hooks) are passed to
``create_app()`` directly and never live in the config.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS policy.

    Defaults are permissive (any origin, the five route methods plus
    ``OPTIONS``). Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_credentials=True,
        )

    ``allow_origins`` also accepts a single origin string. Set
    ``disable=True`` to turn CORS handling off entirely.
    """

    disable: bool = False
    allow_origins: tuple[str, ...] | str = ("*",)
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int | None = None

    @property
    def origins(self) -> tuple[str, ...]:
        """``allow_origins`` normalized to a tuple."""
        if isinstance(self.allow_origins, str):
            return (self.allow_origins,)
        return tuple(self.allow_origins)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(is_dev=True, enable_http_logging=True)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Include error message and stack in 500 envelopes
    is_dev: bool = False

    # One access-log line per request on the "perch.access" logger
    enable_http_logging: bool = False
    log_level: str = "info"

    cors: CORSConfig = CORSConfig()

    # Value of the X-Powered-By response header
    powered_by: str = "perch"
