"""Factory for creating event store instances."""

from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.adapters.store.in_memory import InMemoryEventStore
from security_gateway.adapters.store.sql import SqlEventStore
from security_gateway.core.config import StoreSettings
from security_gateway.core.errors import ValidationAppError


def create_event_store(store_settings: StoreSettings) -> AbstractEventStore:
    """Instantiate the event store selected by configuration.

    Args:
        store_settings: Resolved ``STORE_*`` settings.

    Returns:
        AbstractEventStore: Configured, not yet initialized store.

    Raises:
        ValidationAppError: If the backend is unknown or its requirements are not met.
    """
    backend = store_settings.backend.lower()

    if backend == "memory":
        return InMemoryEventStore()

    if backend == "sql":
        if not store_settings.database_url:
            raise ValidationAppError(
                code="store_missing_database_url",
                message="SQL event store requires STORE_DATABASE_URL environment variable",
            )
        return SqlEventStore(
            store_settings.database_url,
            echo=store_settings.echo,
            create_tables=store_settings.create_tables,
        )

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown event store backend: '{backend}'. Supported backends: memory, sql",
    )
