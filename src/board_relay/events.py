# src/board_relay/events.py

from __future__ import annotations

"""
Explicit publish/subscribe channel.

Collaborators (issue collections, accounts) own an EventChannel and expose its
subscribe(); whoever subscribes keeps the returned Subscription and releases it
on shutdown.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], Awaitable[None] | None]


class Subscription:
    """Handle for one registered callback."""

    def __init__(self, channel: EventChannel, event: str, callback: EventCallback) -> None:
        self._channel = channel
        self.event = event
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._channel._remove(self)


class EventChannel:
    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        # Strong refs so scheduled callback tasks are not garbage collected mid-flight.
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, event: str, callback: EventCallback) -> Subscription:
        sub = Subscription(self, event, callback)
        self._subscriptions.setdefault(event, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.event, [])
        if sub in subs:
            subs.remove(sub)

    def listener_count(self, event: str) -> int:
        return len(self._subscriptions.get(event, []))

    def emit(self, event: str, payload: Any = None) -> list[asyncio.Task[Any]]:
        """
        Deliver payload to every subscriber of event.

        Plain callbacks run inline, coroutine results are scheduled on the running loop.
        Returns the scheduled tasks (mostly useful for tests that want to await them).
        """
        scheduled: list[asyncio.Task[Any]] = []
        for sub in list(self._subscriptions.get(event, [])):
            try:
                result = sub.callback(payload)
            except Exception:
                logger.exception("Event callback failed event=%s", event)
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
                scheduled.append(task)
        return scheduled

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Event callback task failed", exc_info=exc)
