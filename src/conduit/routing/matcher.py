"""Compiled identifier matcher with trie-based classification.

Patterns are registered during startup and compiled into an immutable
lookup structure before the first dispatch. Once compiled, the matcher
is read-only and safe for unsynchronized concurrent reads.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from conduit.errors import ConfigurationError
from conduit.routing.params import WILDCARDS, is_wildcard
from conduit.routing.route import PatternSegment, UriRoute
from conduit.uri import ResourceUri

if TYPE_CHECKING:
    from conduit.contract import Contract

NO_MATCH = -1


class MatchCode(enum.IntEnum):
    """Match codes for the two identifier shapes.

    Directories use round hundreds; items in a directory use the next
    integer up.
    """

    COLLECTION = 100
    ITEM = 101


def parse_pattern(pattern: str) -> list[PatternSegment]:
    """Parse a pattern string into segments.

    Examples::

        "tasks"        -> [PatternSegment("tasks")]
        "tasks/#"      -> [PatternSegment("tasks"), PatternSegment("#", wildcard="#")]
        "lists/*/tasks" -> [..., PatternSegment("*", wildcard="*"), ...]

    Raises ``ConfigurationError`` for segments that mix a wildcard with
    literal text (``task#``) or use route-style placeholders (``{id}``).
    """
    segments: list[PatternSegment] = []
    for part in pattern.strip("/").split("/"):
        if not part:
            continue
        if is_wildcard(part):
            segments.append(PatternSegment(value=part, wildcard=part))
            continue
        if any(ch in part for ch in "#*{}"):
            msg = (
                f"Invalid pattern segment {part!r} in {pattern!r}. "
                "Use '#' for a numeric segment or '*' for any text, on its own."
            )
            raise ConfigurationError(msg)
        segments.append(PatternSegment(value=part))
    return segments


class _TrieNode:
    """A node in the pattern trie. Mutable during compilation only."""

    __slots__ = ("children", "route", "wildcard_children")

    def __init__(self) -> None:
        # Literal segment children: "tasks" -> node
        self.children: dict[str, _TrieNode] = {}
        # Wildcard children, tried in WILDCARDS order ("#" before "*")
        self.wildcard_children: dict[str, _WildcardEdge] = {}
        # Route terminating at this node
        self.route: UriRoute | None = None


@dataclass(slots=True)
class _WildcardEdge:
    """A wildcard edge in the trie."""

    regex: re.Pattern[str]
    node: _TrieNode


class UriMatcher:
    """Compiled identifier matcher.

    Usage::

        matcher = UriMatcher()
        matcher.add("com.example.todolist", "tasks", MatchCode.COLLECTION)
        matcher.add("com.example.todolist", "tasks/#", MatchCode.ITEM)
        matcher.compile()
        matcher.classify("com.example.todolist/tasks/42")  # -> 101
    """

    __slots__ = ("_compiled", "_roots")

    def __init__(self) -> None:
        self._roots: dict[str, _TrieNode] = {}
        self._compiled = False

    @property
    def compiled(self) -> bool:
        return self._compiled

    def add(self, authority: str, pattern: str, code: int, *, name: str | None = None) -> None:
        """Register *pattern* under *authority*. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add patterns after compilation."
            raise RuntimeError(msg)
        if code < 0:
            msg = f"Match codes must be non-negative, got {code} for {authority}/{pattern}"
            raise ConfigurationError(msg)

        node = self._roots.setdefault(authority, _TrieNode())
        for seg in parse_pattern(pattern):
            if seg.wildcard is not None:
                edge = node.wildcard_children.get(seg.wildcard)
                if edge is None:
                    edge = _WildcardEdge(regex=WILDCARDS[seg.wildcard], node=_TrieNode())
                    node.wildcard_children[seg.wildcard] = edge
                node = edge.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if node.route is not None and node.route.code != code:
            msg = (
                f"Pattern {authority}/{pattern} is already registered "
                f"with code {node.route.code}"
            )
            raise ConfigurationError(msg)
        node.route = UriRoute(authority=authority, pattern=pattern.strip("/"), code=code, name=name)

    def compile(self) -> None:
        """Freeze the matcher. No more patterns can be added."""
        self._compiled = True

    @property
    def routes(self) -> list[UriRoute]:
        """Return all registered routes, authority by authority."""
        result: list[UriRoute] = []
        for root in self._roots.values():
            self._collect_routes(root, result)
        return result

    def _collect_routes(self, node: _TrieNode, result: list[UriRoute]) -> None:
        if node.route is not None:
            result.append(node.route)
        for child in node.children.values():
            self._collect_routes(child, result)
        for wildcard in WILDCARDS:
            edge = node.wildcard_children.get(wildcard)
            if edge is not None:
                self._collect_routes(edge.node, result)

    def match_route(self, uri: ResourceUri | str) -> UriRoute | None:
        """Return the route *uri* matches, or ``None``.

        Total over all inputs: identifiers that fail to parse simply
        match nothing.
        """
        if isinstance(uri, str):
            try:
                uri = ResourceUri.parse(uri)
            except ValueError:
                return None
        elif not isinstance(uri, ResourceUri):
            return None
        root = self._roots.get(uri.authority)
        if root is None:
            return None
        node = self._match_node(root, uri.segments, 0)
        return node.route if node is not None else None

    def classify(self, uri: ResourceUri | str) -> int:
        """Return the match code for *uri*, or ``NO_MATCH``."""
        route = self.match_route(uri)
        return route.code if route is not None else NO_MATCH

    def _match_node(
        self,
        node: _TrieNode,
        parts: tuple[str, ...],
        index: int,
    ) -> _TrieNode | None:
        """Recursively match path parts against the trie."""
        # All parts consumed — this node wins only if a route ends here
        if index == len(parts):
            return node if node.route is not None else None

        part = parts[index]

        # 1. Literal child first (exact match)
        child = node.children.get(part)
        if child is not None:
            result = self._match_node(child, parts, index + 1)
            if result is not None:
                return result

        # 2. Wildcards, numeric before text
        for wildcard in WILDCARDS:
            edge = node.wildcard_children.get(wildcard)
            if edge is not None and edge.regex.fullmatch(part):
                result = self._match_node(edge.node, parts, index + 1)
                if result is not None:
                    return result

        return None


def build_uri_matcher(contract: Contract) -> UriMatcher:
    """Build and compile the routing table for *contract*.

    Each collection contributes two entries: the bare collection path maps
    to ``COLLECTION`` and the path followed by one numeric segment maps to
    ``ITEM``.
    """
    matcher = UriMatcher()
    for collection in contract.collections:
        matcher.add(contract.authority, collection.path, MatchCode.COLLECTION, name=collection.path)
        matcher.add(contract.authority, f"{collection.path}/#", MatchCode.ITEM, name=collection.path)
    matcher.compile()
    return matcher
