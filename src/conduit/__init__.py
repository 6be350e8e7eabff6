"""Conduit — identifier-routed CRUD dispatch over a relational store.

Callers address data with identifiers like ``authority/tasks`` (a
collection) or ``authority/tasks/7`` (one item). Conduit classifies the
identifier, runs the matching store operation, and tells observers what
changed.

Basic usage::

    from conduit import SQLiteProvider, ProviderConfig
    from conduit.contract import TASK_CONTRACT

    with SQLiteProvider(TASK_CONTRACT, ProviderConfig(database_url="sqlite:///tasks.db")) as provider:
        provider.notifier.register(TASK_CONTRACT.content_uri("tasks"), print)
        uri = provider.insert(TASK_CONTRACT.content_uri("tasks"),
                              {"description": "Buy milk", "priority": 1})
        provider.query(uri)

Async access (runs each call in a worker thread via anyio)::

    from conduit.aio import AsyncResolver
    rows = await AsyncResolver(provider).query("com.example.android.todolist/tasks")
"""

__version__ = "0.1.0"
__all__ = [
    "NO_MATCH",
    "Change",
    "ChangeNotifier",
    "Collection",
    "Column",
    "ConduitError",
    "ConfigurationError",
    "ContentProvider",
    "Contract",
    "Dispatcher",
    "MatchCode",
    "NotImplementedOperation",
    "ProviderConfig",
    "ProviderNotReady",
    "ResourceUri",
    "Resolver",
    "SQLiteProvider",
    "UnrecognizedIdentifier",
    "UriMatcher",
    "WriteFailed",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import conduit`` fast while providing a clean top-level API.
    """
    if name in ("ContentProvider", "SQLiteProvider"):
        from conduit import provider as _provider

        return getattr(_provider, name)

    if name == "ProviderConfig":
        from conduit.config import ProviderConfig

        return ProviderConfig

    if name == "Resolver":
        from conduit.resolver import Resolver

        return Resolver

    if name == "Dispatcher":
        from conduit.dispatch import Dispatcher

        return Dispatcher

    if name in ("Change", "ChangeNotifier"):
        from conduit import notify as _notify

        return getattr(_notify, name)

    if name in ("Collection", "Column", "Contract"):
        from conduit import contract as _contract

        return getattr(_contract, name)

    if name in ("NO_MATCH", "MatchCode", "UriMatcher"):
        from conduit.routing import matcher as _matcher

        return getattr(_matcher, name)

    if name == "ResourceUri":
        from conduit.uri import ResourceUri

        return ResourceUri

    if name in (
        "ConduitError",
        "ConfigurationError",
        "NotImplementedOperation",
        "ProviderNotReady",
        "UnrecognizedIdentifier",
        "WriteFailed",
    ):
        from conduit import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
