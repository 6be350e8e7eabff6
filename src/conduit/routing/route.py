"""UriRoute and PatternSegment frozen dataclasses."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PatternSegment:
    """A parsed segment of an identifier pattern.

    Literal:   ``tasks``  (wildcard=None)
    Numeric:   ``#``      (wildcard="#")
    Text:      ``*``      (wildcard="*")
    """

    value: str
    wildcard: str | None = None

    @property
    def is_wildcard(self) -> bool:
        return self.wildcard is not None


@dataclass(frozen=True, slots=True)
class UriRoute:
    """A frozen routing entry: ``(authority, pattern) -> code``."""

    authority: str
    pattern: str
    code: int
    name: str | None = None
