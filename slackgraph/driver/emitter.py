"""
emitter.py: Hand inbound Slack events to the host runtime.

The host owns subscriptions; the driver only needs an ``emit(target, event,
payload)`` primitive. Two implementations ship here:

    EventBus     in-process listener registry (default, and used by tests)
    HttpEmitter  forwards each event as JSON to a host URL
"""

import json
import logging
from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx

from .references import Ref

logger = logging.getLogger(__name__)

Listener = Callable[[Ref, str, dict[str, Any]], Awaitable[None]]

_TIMEOUT_SECONDS = 10
HISTORY_SIZE = 100


def _encode(value: Any) -> Any:
    if isinstance(value, Ref):
        return value.as_dict()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


class Emitter(Protocol):
    async def emit(self, target: Ref, event: str, payload: dict[str, Any]) -> None: ...


class EventBus:
    """
    In-memory emitter. Listeners subscribe to a (target, event) pair, or to
    every event of a target by passing ``event="*"``.

    The most recent emissions are kept in ``history`` so callers can inspect
    what was sent without subscribing first.

    Args:
        history_size: How many emissions to keep; 0 keeps none.
    """

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        self._listeners: dict[tuple[Ref, str], list[Listener]] = defaultdict(list)
        self._history: deque[tuple[Ref, str, dict[str, Any]]] = deque(maxlen=history_size)

    @property
    def history(self) -> list[tuple[Ref, str, dict[str, Any]]]:
        return list(self._history)

    def subscribe(self, target: Ref, event: str, listener: Listener) -> None:
        self._listeners[(target, event)].append(listener)

    def unsubscribe(self, target: Ref, event: str, listener: Listener) -> None:
        listeners = self._listeners.get((target, event), [])
        if listener in listeners:
            listeners.remove(listener)

    async def emit(self, target: Ref, event: str, payload: dict[str, Any]) -> None:
        self._history.append((target, event, payload))
        listeners = self._listeners.get((target, event), []) + self._listeners.get((target, "*"), [])
        logger.info("emit: target=%s event=%s listeners=%d", target, event, len(listeners))
        for listener in listeners:
            await listener(target, event, payload)


class HttpEmitter:
    """
    Forwards events to the host over HTTP.

    Args:
        url: Host endpoint that accepts ``{"target", "event", "payload"}``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass an httpx.MockTransport).
    """

    def __init__(
        self,
        url: str,
        timeout: float = _TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def emit(self, target: Ref, event: str, payload: dict[str, Any]) -> None:
        body = json.dumps(
            {"target": target.as_dict(), "event": event, "payload": payload},
            default=_encode,
        )
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self._url, content=body, headers={"Content-Type": "application/json"})
            resp.raise_for_status()
        logger.info("emit → %s target=%s event=%s", self._url, target, event)
