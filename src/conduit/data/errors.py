"""Data layer error hierarchy."""

from conduit.errors import ConduitError


class DataError(ConduitError):
    """Base for all conduit.data errors."""


class QueryError(DataError):
    """Raised when a SQL statement fails or is built from unsafe input."""
