"""Identifier dispatch — classify, execute against the store, notify.

Every operation has the same shape:

1. Classify the identifier with the routing table.
2. Branch on the match code. ``ITEM`` additionally pins the operation to
   the single row named by the trailing key.
3. Run the store call.
4. After a successful mutation, notify observers of the identifier the
   caller supplied.

The dispatcher does not log, retry, or roll back: failures are raised at
the point they are detected and the store owns transactional integrity.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from conduit.data._mapping import map_rows
from conduit.errors import UnrecognizedIdentifier, WriteFailed
from conduit.notify import DELETE, INSERT, UPDATE
from conduit.routing.matcher import MatchCode
from conduit.uri import ResourceUri

if TYPE_CHECKING:
    from conduit.contract import Collection, Contract
    from conduit.data.store import BackingStore
    from conduit.notify import ChangeNotifier
    from conduit.routing.matcher import UriMatcher


class Dispatcher:
    """Routes identifiers to store operations.

    The routing table is built once and handed in; the dispatcher never
    mutates it.

    Usage::

        dispatcher = Dispatcher(contract, build_uri_matcher(contract), store, notifier)
        new_uri = dispatcher.insert("com.example.todolist/tasks", {"description": "x", "priority": 1})
    """

    __slots__ = ("_contract", "_matcher", "_notifier", "_store")

    def __init__(
        self,
        contract: Contract,
        matcher: UriMatcher,
        store: BackingStore,
        notifier: ChangeNotifier,
    ) -> None:
        self._contract = contract
        self._matcher = matcher
        self._store = store
        self._notifier = notifier

    @property
    def matcher(self) -> UriMatcher:
        return self._matcher

    def classify(self, uri: ResourceUri | str) -> int:
        return self._matcher.classify(uri)

    def _resolve(self, uri: ResourceUri | str) -> tuple[ResourceUri, int, Collection]:
        """Parse and classify *uri*, raising ``UnrecognizedIdentifier`` on no match."""
        route = self._matcher.match_route(uri)
        if route is None or route.name is None:
            raise UnrecognizedIdentifier(uri)
        try:
            collection = self._contract.collection(route.name)
        except KeyError:
            raise UnrecognizedIdentifier(uri, "No collection for uri") from None
        parsed = uri if isinstance(uri, ResourceUri) else ResourceUri.parse(uri)
        return parsed, route.code, collection

    def _row_filter(
        self,
        uri: ResourceUri,
        code: int,
        collection: Collection,
        selection: str | None,
        selection_args: Sequence[Any],
    ) -> tuple[str | None, tuple[Any, ...]]:
        """Combine the caller's selection with the item key, if any."""
        if code != MatchCode.ITEM:
            return selection, tuple(selection_args)
        where = f'"{collection.key_column}" = ?'
        if selection:
            where = f"{where} AND ({selection})"
        return where, (uri.parse_id(), *selection_args)

    # -- Create --

    def insert(self, uri: ResourceUri | str, values: Mapping[str, Any]) -> ResourceUri:
        """Insert a row into the collection at *uri* and return the new item's identifier.

        Raises ``UnrecognizedIdentifier`` unless *uri* names a collection;
        raises ``WriteFailed`` if the store reports no generated key.
        """
        parsed, code, collection = self._resolve(uri)
        if code != MatchCode.COLLECTION:
            raise UnrecognizedIdentifier(uri, "Cannot insert into an item")

        key = self._store.insert(collection.table, dict(values))
        if key <= 0:
            raise WriteFailed(uri)

        new_uri = self._contract.content_uri(collection.path).with_appended_id(key)
        self._notifier.notify(parsed, INSERT)
        return new_uri

    def bulk_insert(self, uri: ResourceUri | str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert *rows* atomically into the collection at *uri*.

        Returns the number of rows written. One notification is sent for
        the whole batch.
        """
        parsed, code, collection = self._resolve(uri)
        if code != MatchCode.COLLECTION:
            raise UnrecognizedIdentifier(uri, "Cannot insert into an item")
        if not rows:
            return 0

        count = self._store.bulk_insert(collection.table, [dict(r) for r in rows])
        if count <= 0:
            raise WriteFailed(uri, "Failed to bulk insert rows into")

        self._notifier.notify(parsed, INSERT)
        return count

    # -- Read --

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
        """Return the rows at *uri*.

        A collection identifier returns every row matching *selection*;
        an item identifier returns at most the one row it names. Pass
        *as_type* to map rows onto a dataclass.
        """
        parsed, code, collection = self._resolve(uri)
        where, args = self._row_filter(parsed, code, collection, selection, selection_args)
        rows = self._store.query(collection.table, projection, where, args, sort_order)
        if as_type is not None:
            return map_rows(as_type, rows)
        return rows

    # -- Update / delete --

    def update(
        self,
        uri: ResourceUri | str,
        values: Mapping[str, Any],
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        """Update the rows at *uri* and return how many changed."""
        parsed, code, collection = self._resolve(uri)
        where, args = self._row_filter(parsed, code, collection, selection, selection_args)
        count = self._store.update(collection.table, dict(values), where, args)
        if count > 0:
            self._notifier.notify(parsed, UPDATE)
        return count

    def delete(
        self,
        uri: ResourceUri | str,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        """Delete the rows at *uri* and return how many were removed."""
        parsed, code, collection = self._resolve(uri)
        where, args = self._row_filter(parsed, code, collection, selection, selection_args)
        count = self._store.delete(collection.table, where, args)
        if count > 0:
            self._notifier.notify(parsed, DELETE)
        return count

    # -- Type --

    def get_type(self, uri: ResourceUri | str) -> str:
        """Return the MIME type of the data at *uri*."""
        _, code, collection = self._resolve(uri)
        if code == MatchCode.ITEM:
            return self._contract.item_type(collection.path)
        return self._contract.dir_type(collection.path)
