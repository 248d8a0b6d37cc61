"""Database migrations module."""

from src.infrastructure.storage.sqlite.migrations.migrator import (
    MigrationInfo,
    MigrationResult,
    create_backup,
    discover_migrations,
    initialize_database,
    restore_backup,
    run_migrations,
    verify_schema,
)

__all__ = [
    "MigrationInfo",
    "MigrationResult",
    "create_backup",
    "discover_migrations",
    "initialize_database",
    "restore_backup",
    "run_migrations",
    "verify_schema",
]
