"""Wildcard segments for identifier patterns.

``#`` matches one segment of ASCII digits (an item key), ``*`` matches one
segment of any text.
"""

import re

WILDCARDS: dict[str, re.Pattern[str]] = {
    "#": re.compile(r"[0-9]+"),
    "*": re.compile(r"[^/]+"),
}


def is_wildcard(segment: str) -> bool:
    return segment in WILDCARDS
