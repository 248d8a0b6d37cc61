"""Storage infrastructure implementations."""

from src.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    close_pool,
    get_catalog_store,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    "SQLiteCatalogStore",
    "get_catalog_store",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
