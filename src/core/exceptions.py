"""
Domain exceptions for the catalog import engine.

Provides specific exception types for different error scenarios.
Fatal errors abort an import run; row errors are counted and skipped.
"""

from typing import Any


class CatalogImportError(Exception):
    """Base exception for all catalog errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for operator-facing reports."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(CatalogImportError):
    """Base exception for storage operations."""

    pass


class MaterialNotFoundError(StorageError):
    """Material record not found in storage."""

    def __init__(self, material_id: str):
        super().__init__(
            f"Material not found: {material_id}",
            code="MATERIAL_NOT_FOUND",
            details={"material_id": material_id},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Import Exceptions (fatal)
class MalformedInputError(CatalogImportError):
    """Input could not be parsed into any price-list rows."""

    def __init__(self, reason: str, filename: str | None = None):
        super().__init__(
            f"Malformed price list{f' {filename!r}' if filename else ''}: {reason}",
            code="MALFORMED_INPUT",
            details={"filename": filename, "reason": reason},
        )


class MissingCanonicalUnitsError(CatalogImportError):
    """Canonical units of measure are absent from the taxonomy."""

    def __init__(self, missing: list[str], reason: str | None = None):
        super().__init__(
            f"Canonical units missing: {', '.join(missing)}"
            + (f" - {reason}" if reason else ""),
            code="UOM_MISSING",
            details={"missing": missing, "reason": reason},
        )


class TaxonomyCreationError(CatalogImportError):
    """Batch creation of categories or suppliers failed.

    Entries created before the failure are kept and listed in
    ``details["created"]``.
    """

    def __init__(self, kind: str, names: list[str], error: str, created: dict[str, list[str]]):
        super().__init__(
            f"Failed to create {kind} entries {names}: {error}",
            code="TAXONOMY_CREATION_FAILED",
            details={"kind": kind, "names": names, "error": error, "created": created},
        )


# Row Exceptions (non-fatal)
class RowValidationError(CatalogImportError):
    """A single import row cannot be applied."""

    def __init__(self, row_number: int | None, field: str, message: str):
        super().__init__(
            f"Row {row_number}: {field} {message}",
            code="ROW_INVALID",
            details={"row_number": row_number, "field": field, "message": message},
        )


class ConfigurationError(CatalogImportError):
    """Configuration error."""

    pass
