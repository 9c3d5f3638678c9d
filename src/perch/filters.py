"""Response filter chain.

A response filter post-processes every successful handler result before
it is serialized::

    from perch import register_response_filter

    def envelope(ctx, value):
        return {"data": value, "requestId": ctx.request_id}

    register_response_filter(envelope)

Filters run in registration order; each receives the previous filter's
output. They never see error envelopes, ``None`` results, or ``Response``
objects returned by handlers.
"""

from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import ResponseFilter


class ResponseFilterChain:
    """Append-only, ordered list of response filters."""

    __slots__ = ("_filters", "_frozen")

    def __init__(self) -> None:
        self._filters: list[ResponseFilter] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, response_filter: ResponseFilter) -> None:
        """Append a filter. Raises ``RuntimeError`` once frozen."""
        if self._frozen:
            msg = (
                "Cannot register a response filter: the filter chain is frozen "
                "because an app has already compiled. Register filters before "
                "the first request, or call clear_response_filters()."
            )
            raise RuntimeError(msg)
        self._filters.append(response_filter)

    def all(self) -> list[ResponseFilter]:
        return list(self._filters)

    def freeze(self) -> None:
        self._frozen = True

    def clear(self) -> None:
        self._filters.clear()
        self._frozen = False

    def truncate(self, count: int) -> None:
        """Drop every filter registered after the first *count*."""
        del self._filters[count:]

    def __len__(self) -> int:
        return len(self._filters)


async def apply_filters(filters: tuple[ResponseFilter, ...], ctx: Any, value: Any) -> Any:
    """Thread *value* through *filters* in order."""
    for response_filter in filters:
        value = await invoke(response_filter, ctx, value)
    return value


_chain = ResponseFilterChain()


def get_filter_chain() -> ResponseFilterChain:
    """Return the process-wide default filter chain."""
    return _chain


def register_response_filter(response_filter: ResponseFilter) -> ResponseFilter:
    """Append *response_filter* to the default chain.

    Returns the filter, so this also works as a decorator.
    """
    _chain.register(response_filter)
    return response_filter


def get_response_filters() -> list[ResponseFilter]:
    """Every filter on the default chain, in registration order."""
    return _chain.all()


def clear_response_filters() -> None:
    """Reset the default chain. Intended for test isolation."""
    _chain.clear()
