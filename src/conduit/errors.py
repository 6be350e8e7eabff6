"""Conduit exception hierarchy.

Shared across the matcher, dispatcher, provider, and resolver so every
module raises and catches the same types.
"""


class ConduitError(Exception):
    """Base for all conduit-specific errors."""


class ConfigurationError(ConduitError):
    """Raised when a contract or provider configuration is invalid.

    Typically raised while building the routing table at startup.
    """


class UnrecognizedIdentifier(ConduitError, ValueError):  # noqa: N818
    """The identifier matches no routing entry, or a shape invalid for the operation.

    Creating against an item identifier (``authority/tasks/3``) lands here:
    item keys are assigned by the store, never chosen by the caller.
    """

    def __init__(self, uri: object, detail: str = "") -> None:
        self.uri = uri
        self.detail = detail or "Unknown uri"
        super().__init__(f"{self.detail}: {uri}")


class WriteFailed(ConduitError):  # noqa: N818
    """The store accepted the call but reported that no row was written."""

    def __init__(self, uri: object, detail: str = "") -> None:
        self.uri = uri
        self.detail = detail or "Failed to insert row into"
        super().__init__(f"{self.detail} {uri}")


class NotImplementedOperation(ConduitError, NotImplementedError):  # noqa: N818
    """A declared provider operation has no implementation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}() is not implemented by this provider")


class ProviderNotReady(ConduitError):  # noqa: N818
    """A dispatch was attempted before ``initialize()`` succeeded."""
