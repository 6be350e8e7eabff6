"""Provider configuration.

ProviderConfig is a frozen dataclass — immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Provider configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ProviderConfig(database_url="sqlite:///tasks.db", echo=True)
    """

    # Backing store
    database_url: str = "sqlite:///tasks.db"
    echo: bool = False  # Print every SQL statement with timing to stderr

    # Schema
    create_schema: bool = True

    # Change notification
    notify_workers: int = 1  # Threads delivering callback observers
