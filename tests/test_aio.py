"""Tests for conduit.aio — awaitable access through worker threads."""

import asyncio

import pytest

from conduit.aio import AsyncResolver
from conduit.config import ProviderConfig
from conduit.contract import TASK_CONTRACT, Task
from conduit.errors import UnrecognizedIdentifier
from conduit.notify import INSERT, Change
from conduit.provider import SQLiteProvider
from conduit.resolver import Resolver

from conftest import TASKS_URI

AUTH = TASK_CONTRACT.authority


@pytest.fixture
def resolver(tmp_path):
    resolver = Resolver()
    config = ProviderConfig(database_url=f"sqlite:///{tmp_path / 'tasks.db'}")
    resolver.add_provider(SQLiteProvider(TASK_CONTRACT, config, notifier=resolver.notifier))
    yield resolver
    resolver.close()


class TestAsyncResolver:
    @pytest.mark.asyncio
    async def test_crud(self, resolver: Resolver) -> None:
        aresolver = AsyncResolver(resolver)
        uri = await aresolver.insert(TASKS_URI, {"description": "async", "priority": 2})
        assert uri.parse_id() == 1

        tasks = await aresolver.query(uri, as_type=Task)
        assert tasks == [Task(_id=1, description="async", priority=2)]

        assert await aresolver.update(uri, {"priority": 3}) == 1
        assert await aresolver.get_type(uri) == f"vnd.android.cursor.item/vnd.{AUTH}.tasks"
        assert await aresolver.delete(TASKS_URI) == 1

    @pytest.mark.asyncio
    async def test_bulk_insert(self, resolver: Resolver) -> None:
        aresolver = AsyncResolver(resolver)
        rows = [{"description": "a", "priority": 1}, {"description": "b", "priority": 2}]
        assert await aresolver.bulk_insert(TASKS_URI, rows) == 2
        assert len(await aresolver.query(TASKS_URI, selection="priority > ?", selection_args=[1])) == 1

    @pytest.mark.asyncio
    async def test_errors_propagate(self, resolver: Resolver) -> None:
        aresolver = AsyncResolver(resolver)
        with pytest.raises(UnrecognizedIdentifier):
            await aresolver.insert(f"{AUTH}/tasks/1", {"description": "a", "priority": 1})

    @pytest.mark.asyncio
    async def test_wraps_provider_directly(self, tmp_path) -> None:
        config = ProviderConfig(database_url=f"sqlite:///{tmp_path / 'p.db'}")
        with SQLiteProvider(TASK_CONTRACT, config) as provider:
            aprovider = AsyncResolver(provider)
            await aprovider.insert(TASKS_URI, {"description": "a", "priority": 1})
            assert len(await aprovider.query(TASKS_URI)) == 1

    @pytest.mark.asyncio
    async def test_watch(self, resolver: Resolver) -> None:
        aresolver = AsyncResolver(resolver)
        received: list[Change] = []

        async def collector():
            async for change in aresolver.watch(TASKS_URI):
                received.append(change)
                break

        task = asyncio.create_task(collector())
        # Give the subscriber time to register
        await asyncio.sleep(0.01)

        await aresolver.insert(TASKS_URI, {"description": "watched", "priority": 1})

        await asyncio.wait_for(task, timeout=2.0)
        assert [c.operation for c in received] == [INSERT]
