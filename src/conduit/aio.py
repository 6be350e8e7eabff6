"""Async facade over a resolver or provider, using anyio.

Every call runs the synchronous operation in a worker thread via
``anyio.to_thread`` so event-loop code never blocks on SQLite. Changes
are consumed with ``watch()``, an async iterator over the shared
notifier.

Usage::

    aresolver = AsyncResolver(resolver)
    uri = await aresolver.insert("com.example.android.todolist/tasks", {...})
    async for change in aresolver.watch("com.example.android.todolist/tasks"):
        ...
"""

from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any, Protocol

from anyio import to_thread

from conduit.notify import Change, ChangeNotifier
from conduit.uri import ResourceUri


class _Target(Protocol):
    notifier: ChangeNotifier

    def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri: ...
    def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int: ...
    def query(self, uri: ResourceUri | str, *args: Any, **kwargs: Any) -> list[Any]: ...
    def update(self, uri: ResourceUri | str, values: Mapping[str, Any], *args: Any) -> int: ...
    def delete(self, uri: ResourceUri | str, *args: Any) -> int: ...
    def get_type(self, uri: ResourceUri | str) -> str: ...


def _run_sync(func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking call in anyio worker thread."""
    return to_thread.run_sync(func, *args)


class AsyncResolver:
    """Awaitable wrapper around a ``Resolver`` or ``ContentProvider``."""

    __slots__ = ("_target",)

    def __init__(self, target: _Target) -> None:
        self._target = target

    async def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri:
        return await _run_sync(self._target.insert, uri, values)

    async def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int:
        return await _run_sync(self._target.bulk_insert, uri, rows)

    async def query(
        self,
        uri: ResourceUri | str,
        projection: Sequence[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
        sort_order: str | None = None,
        *,
        as_type: type | None = None,
    ) -> list[Any]:
        return await _run_sync(
            lambda: self._target.query(
                uri, projection, selection, selection_args, sort_order, as_type=as_type
            )
        )

    async def update(
        self,
        uri: ResourceUri | str,
        values: Mapping[str, Any],
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return await _run_sync(self._target.update, uri, values, selection, selection_args)

    async def delete(
        self,
        uri: ResourceUri | str,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return await _run_sync(self._target.delete, uri, selection, selection_args)

    async def get_type(self, uri: ResourceUri | str) -> str:
        return await _run_sync(self._target.get_type, uri)

    def watch(self, uri: ResourceUri | str, *, descendants: bool = True) -> AsyncIterator[Change]:
        """Async iterator of changes at *uri*. Requires an asyncio event loop."""
        return self._target.notifier.subscribe(uri, descendants=descendants)
