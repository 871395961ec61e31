import asyncio
from typing import Any, Dict, Protocol, Set

import structlog
from anyio import from_thread
from fastapi import WebSocket

from ..config import settings

logger = structlog.get_logger(__name__)

EVENT_CHECK_IN = "attendance_check_in"
EVENT_CHECK_OUT = "attendance_check_out"


class Notifier(Protocol):
    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class EventHub:
    def __init__(self) -> None:
        # user_id (str) -> set of WebSocket connections
        self._user_connections: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._user_connections.setdefault(user_id, set())
            conns.add(ws)

    async def disconnect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._user_connections.get(user_id)
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._user_connections.pop(user_id, None)

    async def broadcast(self, event: str, payload: Any) -> None:
        data = {"event": event, "data": payload}
        async with self._lock:
            targets = [ws for conns in self._user_connections.values() for ws in conns]
        for ws in targets:
            try:
                await ws.send_json(data)
            except Exception as e:
                # best-effort; drop on failure
                logger.debug("ws_send_failed", event=event, error=str(e))


class HubNotifier:
    """
    Fire-and-forget publisher.
    Called on the event loop it schedules the broadcast directly; called from a
    threadpool route it hops to the loop through anyio.from_thread.
    """

    def __init__(self, hub: EventHub) -> None:
        self._hub = hub

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        if not settings.enable_realtime:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._schedule(event, payload)
            return
        try:
            from_thread.run_sync(self._schedule, event, payload)
        except RuntimeError:
            logger.info("notify_skipped_no_loop", event=event)

    def _schedule(self, event: str, payload: Dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(self._hub.broadcast(event, payload))
        _pending.add(task)
        task.add_done_callback(_finish)


# Strong references until each broadcast completes
_pending: Set["asyncio.Task[None]"] = set()


def _finish(task: "asyncio.Task[None]") -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("notify_failed", error=str(exc))


# Global singleton hub
hub = EventHub()
notifier = HubNotifier(hub)


def get_notifier() -> Notifier:
    return notifier
