"""Routing — compiled identifier matcher with O(path-depth) classification.

Patterns are registered during provider startup and compiled into an
immutable lookup structure before the first dispatch.
"""

from conduit.routing.matcher import NO_MATCH, MatchCode, UriMatcher, build_uri_matcher, parse_pattern
from conduit.routing.route import PatternSegment, UriRoute

__all__ = [
    "NO_MATCH",
    "MatchCode",
    "PatternSegment",
    "UriMatcher",
    "UriRoute",
    "build_uri_matcher",
    "parse_pattern",
]
