# infrastructure/event_bus/memory_event_bus.py
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from domain.ports.event_bus_port import EventBusPort

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


@dataclass(slots=True)
class _RecordedEvent:
    ts: float
    signal_name: str
    payload: Any


class MemoryEventBus(EventBusPort):
    """
    Process-wide publish/subscribe channel.

    ``publish`` calls every handler registered for the event at the moment of
    the call, synchronously and in registration order. A failing handler is
    logged and skipped; the rest still run. Events are not replayed to
    handlers that subscribe later. Coroutine handlers are scheduled on the
    running loop.
    """

    def __init__(self, component_id: str = "event_bus_memory", max_history: int = 1000) -> None:
        self.component_id = component_id
        self._subs: Dict[str, List[Handler]] = defaultdict(list)
        self._max_history = max_history
        self._history: List[_RecordedEvent] = []
        self._pending_tasks: Set[asyncio.Task] = set()
        self._handler_errors = 0
        logger.info("[%s] constructed (max_history=%s)", self.component_id, self._max_history)

    def subscribe(self, signal_name: str, handler: Handler) -> None:
        self._subs[signal_name].append(handler)
        logger.debug(
            '[%s] SUBSCRIBED to "%s". Total subscribers for this event: %d.',
            self.component_id,
            signal_name,
            len(self._subs[signal_name]),
        )

    on = subscribe

    def once(self, signal_name: str, handler: Handler) -> Handler:
        """Subscribe ``handler`` for the next emission only. Returns the wrapper actually subscribed."""
        def _once_wrapper(payload: Any) -> Any:
            self.unsubscribe(signal_name, _once_wrapper)
            return handler(payload)

        self.subscribe(signal_name, _once_wrapper)
        return _once_wrapper

    def unsubscribe(self, signal_name: str, handler: Handler) -> None:
        try:
            self._subs[signal_name].remove(handler)
            logger.debug("[%s] unsubscribed %s -> %s", self.component_id, signal_name, handler)
        except (KeyError, ValueError):
            pass

    def publish(self, signal_name: str, payload: Any | None = None) -> None:
        self._record(signal_name, payload)
        handlers = tuple(self._subs.get(signal_name, ()))

        logger.debug(
            '[%s] PUBLISHING "%s". Found %d subscriber(s).',
            self.component_id,
            signal_name,
            len(handlers),
        )
        if not handlers:
            return

        for i, handler in enumerate(handlers):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    self._schedule(signal_name, result)
            except Exception as exc:
                self._handler_errors += 1
                logger.exception(
                    "[%s] Error in handler #%d (%s) for event %s: %s",
                    self.component_id, i + 1, getattr(handler, '__qualname__', str(handler)), signal_name, exc,
                )

    emit = publish

    def _schedule(self, signal_name: str, awaitable: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop: run the coroutine handler to completion here
            try:
                asyncio.run(awaitable)
            except Exception as exc:
                self._handler_errors += 1
                logger.exception("[%s] Error in async handler for event %s: %s", self.component_id, signal_name, exc)
            return

        task = loop.create_task(awaitable, name=f"{self.component_id}:{signal_name}")
        self._pending_tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(signal_name, t))

    def _on_task_done(self, signal_name: str, task: asyncio.Task) -> None:
        self._pending_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._handler_errors += 1
            logger.error(
                "[%s] Error in async handler for event %s: %s", self.component_id, signal_name, exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for coroutine handlers scheduled so far."""
        if self._pending_tasks:
            await asyncio.wait(set(self._pending_tasks), timeout=timeout)

    def subscriber_count(self, signal_name: str) -> int:
        return len(self._subs.get(signal_name, ()))

    def _record(self, signal_name: str, payload: Any) -> None:
        self._history.append(_RecordedEvent(time.time(), signal_name, payload))
        if len(self._history) > self._max_history:
            self._history.pop(0)

    def history(self, signal_name: Optional[str] = None) -> List[_RecordedEvent]:
        if signal_name is None:
            return list(self._history)
        return [event for event in self._history if event.signal_name == signal_name]

    def get_stats(self) -> Dict[str, Any]:
        return {
            'subscribers': {k: len(v) for k, v in self._subs.items()},
            'history_size': len(self._history),
            'handler_errors': self._handler_errors,
            'pending_async_handlers': len(self._pending_tasks),
        }
