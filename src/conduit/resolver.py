"""Resolver — one entry point for every registered provider.

Callers hand the resolver an identifier; it picks the provider registered
for the identifier's authority and forwards the call. All providers
registered here share the resolver's ``ChangeNotifier``, so observers can
be registered once, independent of which provider serves a collection.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any

from conduit.errors import ConfigurationError, UnrecognizedIdentifier
from conduit.notify import ChangeNotifier, Observer
from conduit.provider import ContentProvider
from conduit.uri import ResourceUri, as_uri


class Resolver:
    """Authority-keyed registry of providers.

    Usage::

        resolver = Resolver()
        resolver.add_provider(SQLiteProvider(TASK_CONTRACT, notifier=resolver.notifier))
        resolver.register_observer("com.example.android.todolist/tasks", on_change)
        uri = resolver.insert("com.example.android.todolist/tasks", {...})
    """

    __slots__ = ("_lock", "_providers", "notifier")

    def __init__(self, notifier: ChangeNotifier | None = None) -> None:
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self._providers: dict[str, ContentProvider] = {}
        self._lock = threading.Lock()

    def add_provider(self, provider: ContentProvider, *, initialize: bool = True) -> None:
        """Register *provider* under its authority, initializing it first by default."""
        if provider.notifier is not self.notifier:
            msg = f"Provider {provider.authority} must share the resolver's notifier"
            raise ConfigurationError(msg)
        with self._lock:
            if provider.authority in self._providers:
                msg = f"Authority {provider.authority!r} already has a provider"
                raise ConfigurationError(msg)
            self._providers[provider.authority] = provider
        if initialize:
            provider.initialize()

    def provider_for(self, uri: ResourceUri | str) -> ContentProvider:
        """Return the provider for *uri*'s authority.

        Raises ``UnrecognizedIdentifier`` for malformed identifiers and
        unknown authorities.
        """
        try:
            parsed = as_uri(uri)
        except ValueError:
            raise UnrecognizedIdentifier(uri) from None
        with self._lock:
            provider = self._providers.get(parsed.authority)
        if provider is None:
            raise UnrecognizedIdentifier(uri, "Unknown authority")
        return provider

    @property
    def authorities(self) -> list[str]:
        with self._lock:
            return sorted(self._providers)

    # -- Observers --

    def register_observer(
        self, uri: ResourceUri | str, observer: Observer, *, descendants: bool = True
    ) -> None:
        self.notifier.register(uri, observer, descendants=descendants)

    def unregister_observer(self, observer: Observer) -> bool:
        return self.notifier.unregister(observer)

    # -- Operations --

    def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri:
        return self.provider_for(uri).insert(uri, values)

    def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int:
        return self.provider_for(uri).bulk_insert(uri, rows)

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
        return self.provider_for(uri).query(
            uri, projection, selection, selection_args, sort_order, as_type=as_type
        )

    def update(
        self,
        uri: ResourceUri | str,
        values: Mapping[str, Any],
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self.provider_for(uri).update(uri, values, selection, selection_args)

    def delete(
        self,
        uri: ResourceUri | str,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self.provider_for(uri).delete(uri, selection, selection_args)

    def get_type(self, uri: ResourceUri | str) -> str:
        return self.provider_for(uri).get_type(uri)

    def close(self) -> None:
        """Shut down every provider and the shared notifier."""
        with self._lock:
            providers = list(self._providers.values())
            self._providers.clear()
        for provider in providers:
            provider.shutdown()
        self.notifier.close()
