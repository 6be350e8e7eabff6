"""Change notification — fire-and-forget broadcast after each mutation.

After a provider commits an insert, update, or delete it calls
``ChangeNotifier.notify()`` with the identifier it changed. Every observer
registered on that identifier, or on any prefix of it, hears about it.

Two kinds of observer:

- Callbacks (``register()``) run on the notifier's own worker thread.
- Async subscribers (``subscribe()``) receive changes through a bounded
  ``asyncio.Queue`` on the event loop they subscribed from.

Thread safety:
    - ``Change`` is a frozen dataclass (immutable, safe to share)
    - The observer registry is guarded by a Lock that is released before
      any delivery is scheduled, so slow observers never block writers
    - Observer exceptions are logged and dropped
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
import uuid
from collections.abc import AsyncIterator, Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from typing import TypeAlias

from conduit.uri import ResourceUri, as_uri

logger = logging.getLogger("conduit.notify")

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Change:
    """A single committed mutation."""

    uri: ResourceUri
    operation: str
    timestamp: float = field(default_factory=time.time)
    change_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


Observer: TypeAlias = Callable[[Change], object]

# Set while a worker thread is running an observer callback
_worker = threading.local()


@dataclass(frozen=True, slots=True)
class _Registration:
    uri: ResourceUri
    callback: Observer
    descendants: bool

    def wants(self, changed: ResourceUri) -> bool:
        if self.descendants:
            return self.uri.is_prefix_of(changed)
        return self.uri == changed


@dataclass(slots=True, eq=False)
class _Subscription:
    uri: ResourceUri
    descendants: bool
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue[Change | None]

    def wants(self, changed: ResourceUri) -> bool:
        if self.descendants:
            return self.uri.is_prefix_of(changed)
        return self.uri == changed


def _offer(queue: asyncio.Queue[Change | None], item: Change | None) -> None:
    if item is None and queue.full():
        # The end-of-stream marker must always fit
        queue.get_nowait()
    try:
        queue.put_nowait(item)
    except asyncio.QueueFull:
        # Drop for slow consumers rather than blocking
        logger.debug("Dropped change for slow subscriber")


class ChangeNotifier:
    """Broadcast channel for committed changes, keyed by identifier.

    Usage::

        notifier = ChangeNotifier()
        notifier.register("com.example.todolist/tasks", lambda change: print(change.uri))
        notifier.notify("com.example.todolist/tasks/7", "insert")

        async for change in notifier.subscribe("com.example.todolist/tasks"):
            refresh(change.uri)
    """

    __slots__ = ("_closed", "_executor", "_lock", "_max_workers", "_pending", "_registrations", "_subscriptions")

    def __init__(self, *, max_workers: int = 1) -> None:
        self._registrations: list[_Registration] = []
        self._subscriptions: set[_Subscription] = set()
        self._lock = threading.Lock()
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future[None]] = set()
        self._closed = False

    # -- Registration --

    def register(
        self,
        uri: ResourceUri | str,
        callback: Observer,
        *,
        descendants: bool = True,
    ) -> None:
        """Call *callback* for changes at *uri* (and beneath it, by default)."""
        registration = _Registration(uri=as_uri(uri), callback=callback, descendants=descendants)
        with self._lock:
            self._registrations.append(registration)

    def unregister(self, callback: Observer) -> bool:
        """Remove every registration of *callback*. Returns whether any existed."""
        with self._lock:
            before = len(self._registrations)
            self._registrations = [r for r in self._registrations if r.callback is not callback]
            return len(self._registrations) != before

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._registrations) + len(self._subscriptions)

    async def subscribe(
        self,
        uri: ResourceUri | str,
        *,
        descendants: bool = True,
        maxsize: int = 256,
    ) -> AsyncIterator[Change]:
        """Yield changes at *uri* as they are committed.

        The subscription is removed when the iterator exits or the
        notifier is closed.
        """
        sub = _Subscription(
            uri=as_uri(uri),
            descendants=descendants,
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(maxsize=maxsize),
        )
        with self._lock:
            self._subscriptions.add(sub)
        try:
            while True:
                change = await sub.queue.get()
                if change is None:
                    break
                yield change
        finally:
            with self._lock:
                self._subscriptions.discard(sub)

    # -- Delivery --

    def notify(self, uri: ResourceUri | str, operation: str = UPDATE) -> Change:
        """Schedule delivery of a change at *uri* and return immediately."""
        change = Change(uri=as_uri(uri), operation=operation)
        with self._lock:
            if self._closed:
                return change
            callbacks = [r.callback for r in self._registrations if r.wants(change.uri)]
            subscriptions = [s for s in self._subscriptions if s.wants(change.uri)]

        for sub in subscriptions:
            try:
                sub.loop.call_soon_threadsafe(_offer, sub.queue, change)
            except RuntimeError:
                # Subscriber's loop already closed
                logger.debug("Skipped change for closed event loop: %s", change.uri)

        for callback in callbacks:
            self._submit(callback, change)
        return change

    def _submit(self, callback: Observer, change: Change) -> None:
        with self._lock:
            if self._closed:
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="conduit-notify",
                )
            future = self._executor.submit(self._deliver, callback, change)
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _deliver(callback: Observer, change: Change) -> None:
        _worker.delivering = True
        try:
            callback(change)
        except Exception:
            logger.exception("Observer %r failed for %s %s", callback, change.operation, change.uri)
        finally:
            _worker.delivering = False

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for scheduled callback deliveries. Returns False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Stop delivering changes.

        Ends every async subscription, drops callback registrations, and
        shuts the worker thread down after queued deliveries finish. Called
        from an observer, it returns without waiting for the worker it runs on.
        """
        with self._lock:
            self._closed = True
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
            self._registrations.clear()
            executor, self._executor = self._executor, None
        for sub in subscriptions:
            with contextlib.suppress(RuntimeError):
                sub.loop.call_soon_threadsafe(_offer, sub.queue, None)
        if executor is not None:
            executor.shutdown(wait=not getattr(_worker, "delivering", False))
