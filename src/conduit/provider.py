"""Content providers — lifecycle plus the CRUD surface.

``ContentProvider`` declares every operation a provider can serve and
owns the one-time setup. Operations a subclass does not override raise
``NotImplementedOperation``; every operation raises ``ProviderNotReady``
until ``initialize()`` has succeeded.

``SQLiteProvider`` is the complete implementation: it opens a
``SQLiteStore``, creates the contract's tables, builds the routing table,
and dispatches through a ``Dispatcher``.

Usage::

    with SQLiteProvider(TASK_CONTRACT, ProviderConfig(database_url="sqlite:///tasks.db")) as provider:
        uri = provider.insert(TASK_CONTRACT.content_uri("tasks"), {"description": "x", "priority": 1})
        provider.query(uri)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

from conduit.config import ProviderConfig
from conduit.contract import TASK_CONTRACT, Contract
from conduit.data.schema import create_schema
from conduit.data.store import BackingStore, SQLiteStore
from conduit.dispatch import Dispatcher
from conduit.errors import NotImplementedOperation, ProviderNotReady
from conduit.notify import ChangeNotifier
from conduit.routing.matcher import build_uri_matcher
from conduit.uri import ResourceUri

logger = logging.getLogger("conduit.provider")


class ContentProvider:
    """Base provider: lifecycle, readiness checks, declared operations."""

    def __init__(self, contract: Contract, *, notifier: ChangeNotifier | None = None) -> None:
        self.contract = contract
        self._owns_notifier = notifier is None
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self._lifecycle_lock = threading.Lock()
        self._ready = False
        self._closed = False

    @property
    def authority(self) -> str:
        return self.contract.authority

    @property
    def ready(self) -> bool:
        return self._ready

    # -- Lifecycle --

    def initialize(self) -> bool:
        """Run ``on_create()`` once.

        Repeated calls after success are no-ops. If ``on_create()`` raises,
        the provider stays uninitialized, the error propagates, and every
        operation keeps raising ``ProviderNotReady``.
        """
        if self._ready:
            return True
        with self._lifecycle_lock:
            if self._ready:
                return True
            if self._closed:
                msg = f"Provider {self.authority} has been shut down"
                raise ProviderNotReady(msg)
            self.on_create()
            self._ready = True
        logger.info("Provider %s ready", self.authority)
        return True

    def on_create(self) -> None:
        """Acquire whatever the provider needs. Override in subclasses."""

    def shutdown(self) -> None:
        """Release resources. A shut-down provider cannot be initialized again."""
        with self._lifecycle_lock:
            self._closed = True
            if self._ready:
                self._ready = False
                self.on_shutdown()
        if self._owns_notifier:
            self.notifier.close()
        logger.debug("Provider %s shut down", self.authority)

    def on_shutdown(self) -> None:
        """Release what ``on_create()`` acquired. Override in subclasses."""

    def __enter__(self) -> ContentProvider:
        self.initialize()
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()

    def _ensure_ready(self) -> None:
        if not self._ready:
            self._not_ready()

    def _not_ready(self) -> NoReturn:
        msg = f"Provider {self.authority} is not initialized"
        raise ProviderNotReady(msg)

    # -- Declared operations --

    def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri:
        self._ensure_ready()
        raise NotImplementedOperation("insert")

    def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int:
        self._ensure_ready()
        raise NotImplementedOperation("bulk_insert")

    def query(
        self,
        uri: ResourceUri | str,
        projection: Sequence[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
        sort_order: str | None = None,
        *,
        as_type: type | None = None,
    ) -> list[Any]:
        self._ensure_ready()
        raise NotImplementedOperation("query")

    def update(
        self,
        uri: ResourceUri | str,
        values: Mapping[str, Any],
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        self._ensure_ready()
        raise NotImplementedOperation("update")

    def delete(
        self,
        uri: ResourceUri | str,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        self._ensure_ready()
        raise NotImplementedOperation("delete")

    def get_type(self, uri: ResourceUri | str) -> str:
        self._ensure_ready()
        raise NotImplementedOperation("get_type")


class SQLiteProvider(ContentProvider):
    """Provider backed by a SQLite store.

    Pass *store* to run against an already-built ``BackingStore``; the
    provider then neither opens nor closes it.
    """

    def __init__(
        self,
        contract: Contract = TASK_CONTRACT,
        config: ProviderConfig | None = None,
        *,
        store: BackingStore | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.config = config or ProviderConfig()
        super().__init__(
            contract,
            notifier=notifier or ChangeNotifier(max_workers=self.config.notify_workers),
        )
        self._owns_notifier = notifier is None
        self._external_store = store
        self._store: BackingStore | None = None
        self._dispatcher: Dispatcher | None = None

    def on_create(self) -> None:
        store = self._external_store
        opened: SQLiteStore | None = None
        if store is None:
            opened = SQLiteStore(self.config.database_url, echo=self.config.echo)
            store = opened
        try:
            if opened is not None:
                opened.connect()
                if self.config.create_schema:
                    create_schema(opened, self.contract)
            matcher = build_uri_matcher(self.contract)
        except BaseException:
            if opened is not None:
                opened.close()
            raise
        self._store = store
        self._dispatcher = Dispatcher(self.contract, matcher, store, self.notifier)

    def on_shutdown(self) -> None:
        if self._store is not None and self._external_store is None:
            self._store.close()
        self._store = None
        self._dispatcher = None

    @property
    def store(self) -> BackingStore:
        store = self._store
        if store is None or not self._ready:
            self._not_ready()
        return store

    def _dispatch(self) -> Dispatcher:
        # Read once: shutdown() may clear it from another thread
        dispatcher = self._dispatcher
        if dispatcher is None or not self._ready:
            self._not_ready()
        return dispatcher

    def classify(self, uri: ResourceUri | str) -> int:
        return self._dispatch().classify(uri)

    def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri:
        return self._dispatch().insert(uri, values)

    def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int:
        return self._dispatch().bulk_insert(uri, rows)

    def query(
        self,
        uri: ResourceUri | str,
        projection: Sequence[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
        sort_order: str | None = None,
        *,
        as_type: type | None = None,
    ) -> list[Any]:
        return self._dispatch().query(
            uri, projection, selection, selection_args, sort_order, as_type=as_type
        )

    def update(
        self,
        uri: ResourceUri | str,
        values: Mapping[str, Any],
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self._dispatch().update(uri, values, selection, selection_args)

    def delete(
        self,
        uri: ResourceUri | str,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self._dispatch().delete(uri, selection, selection_args)

    def get_type(self, uri: ResourceUri | str) -> str:
        return self._dispatch().get_type(uri)
