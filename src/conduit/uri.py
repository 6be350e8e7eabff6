"""Resource identifiers.

An identifier names either a collection or a single item in it::

    com.example.todolist/tasks        # collection
    com.example.todolist/tasks/7      # item with key 7
    content://com.example.todolist/tasks/7

``ResourceUri`` is a frozen value; parsing never guesses at shapes it does
not understand.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SCHEME = "content"


@dataclass(frozen=True, slots=True)
class ResourceUri:
    """A parsed resource identifier.

    ``segments`` holds the path below the authority, already split on ``/``
    with empty parts dropped. Whether the last segment is an item key is
    decided by the matcher, not here. The scheme is cosmetic: two identifiers
    that differ only in scheme compare equal.
    """

    authority: str
    segments: tuple[str, ...] = ()
    scheme: str | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, text: str) -> ResourceUri:
        """Parse ``[content://]authority/path...`` into a ``ResourceUri``.

        Raises ``ValueError`` if *text* has no authority or uses a scheme
        other than ``content``.
        """
        scheme = None
        rest = text.strip()
        if "://" in rest:
            scheme, _, rest = rest.partition("://")
            if scheme != SCHEME:
                msg = f"Unsupported identifier scheme {scheme!r} in {text!r}"
                raise ValueError(msg)
        parts = [p for p in rest.split("/") if p]
        if not parts:
            msg = f"Identifier has no authority: {text!r}"
            raise ValueError(msg)
        return cls(authority=parts[0], segments=tuple(parts[1:]), scheme=scheme)

    @property
    def path(self) -> str:
        return "/".join(self.segments)

    @property
    def last_segment(self) -> str | None:
        return self.segments[-1] if self.segments else None

    def parse_id(self) -> int:
        """Return the trailing numeric key, or ``-1`` when there is none."""
        last = self.last_segment
        if last is None or not (last.isascii() and last.isdigit()):
            return -1
        return int(last)

    def with_appended_id(self, key: int) -> ResourceUri:
        """Return a new identifier with *key* appended as the last segment."""
        return ResourceUri(
            authority=self.authority,
            segments=(*self.segments, str(key)),
            scheme=self.scheme,
        )

    def with_segments(self, *segments: str) -> ResourceUri:
        return ResourceUri(authority=self.authority, segments=segments, scheme=self.scheme)

    def is_prefix_of(self, other: ResourceUri) -> bool:
        """True if *other* equals this identifier or lies beneath it.

        Comparison is segment-wise: ``a/tasks`` is a prefix of ``a/tasks/3``
        but not of ``a/tasks_archive``. The scheme is ignored.
        """
        if self.authority != other.authority:
            return False
        n = len(self.segments)
        return other.segments[:n] == self.segments

    def __str__(self) -> str:
        head = f"{self.scheme}://{self.authority}" if self.scheme else self.authority
        if not self.segments:
            return head
        return f"{head}/{self.path}"


def as_uri(value: ResourceUri | str) -> ResourceUri:
    """Coerce a string or ``ResourceUri`` to a ``ResourceUri``."""
    if isinstance(value, ResourceUri):
        return value
    return ResourceUri.parse(value)
