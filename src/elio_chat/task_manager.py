"""Lifecycle tracking for the client's background asyncio tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Track named background tasks (one per slot) plus fire-and-forget tasks.

    The UI runs each send under the ``"send"`` slot and suggestion fetches
    under ``"suggestions"``; shutting down cancels whatever is still running.
    """

    def __init__(self) -> None:
        self._named: dict[str, asyncio.Task[Any]] = {}
        self._anonymous: set[asyncio.Task[Any]] = set()

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and track the resulting task."""
        task = asyncio.get_running_loop().create_task(coro)
        self.add(task, name)
        return task

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        """Register a task.

        A named task takes over its slot; a previous occupant that is still
        running stays tracked so ``cancel_all`` can reach it.
        """
        task.add_done_callback(self._log_exception)
        if name is not None:
            previous = self._named.get(name)
            if previous is not None and not previous.done():
                self._track_anonymous(previous)
            self._named[name] = task
            task.add_done_callback(lambda done, slot=name: self._release(slot, done))
            return
        self._track_anonymous(task)

    def _track_anonymous(self, task: asyncio.Task[Any]) -> None:
        self._anonymous.add(task)
        task.add_done_callback(self._anonymous.discard)

    def _release(self, name: str, task: asyncio.Task[Any]) -> None:
        if self._named.get(name) is task:
            del self._named[name]

    def _log_exception(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "task.exception",
                extra={
                    "event": "task.exception",
                    "task": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )

    async def cancel(self, name: str) -> None:
        """Cancel a named task and wait for it to unwind."""
        task = self._named.pop(name, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for all of them."""
        pending = [
            task
            for task in (*self._named.values(), *self._anonymous)
            if not task.done()
        ]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._named.clear()
        self._anonymous.clear()
