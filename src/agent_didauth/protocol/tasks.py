"""Task handlers run after a client has been authorized.

Dispatch is outside the authentication core: the server gates it on a
well-formed, unexpired bearer token and a whitelisted action, then hands
the request to a handler registered here.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable

from agent_didauth._time import Clock, utcnow
from agent_didauth.protocol.messages import TaskResult

logger = logging.getLogger(__name__)

TaskHandler = Callable[[dict[str, Any]], dict[str, Any]]


def _order_pizza(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "orderId": "ORD-" + uuid.uuid4().hex[:9].upper(),
        "menu": data.get("menu", "Pepperoni Pizza"),
        "size": data.get("size", "L"),
        "price": 25000,
        "estimatedDelivery": "30 minutes",
    }


def _update_profile(data: dict[str, Any]) -> dict[str, Any]:
    return {"updated": True, "fields": sorted(data)}


class TaskDispatcher:
    """Route an action name to its handler.

    Unknown actions produce an echo result rather than an error.

    Parameters
    ----------
    clock:
        Optional clock for result timestamps.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utcnow
        self._handlers: dict[str, TaskHandler] = {
            "OrderPizza": _order_pizza,
            "QueryStatus": self._query_status,
            "UpdateProfile": _update_profile,
        }

    def register(self, action: str, handler: TaskHandler) -> None:
        """Add or replace the handler for *action*."""
        self._handlers[action] = handler

    def actions(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, action: str, data: dict[str, Any] | None = None) -> TaskResult:
        started = time.perf_counter()
        handler = self._handlers.get(action)
        if handler is None:
            details: dict[str, Any] = {"message": "Unknown task type", "received": action}
        else:
            details = handler(dict(data or {}))
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("Task %s completed in %.2fms", action, elapsed_ms)
        return TaskResult(
            success=True,
            task_type=action,
            details=details,
            processing_time_ms=round(elapsed_ms, 3),
            timestamp=self._clock().isoformat(),
        )

    def _query_status(self, data: dict[str, Any]) -> dict[str, Any]:
        return {"status": "active", "lastUpdate": self._clock().isoformat()}


__all__ = ["TaskDispatcher", "TaskHandler"]
