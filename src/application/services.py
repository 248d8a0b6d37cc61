"""
Service factory functions for dependency injection.

This module wires infrastructure implementations to core services.
Use cases should import from here.
"""

from typing import TYPE_CHECKING

from src.config import get_settings
from src.core.services import ConflictDetector, RowNormalizer

if TYPE_CHECKING:
    from src.core.interfaces import ICatalogStore


# Singleton service instances
_row_normalizer: RowNormalizer | None = None
_conflict_detector: ConflictDetector | None = None


def get_row_normalizer() -> RowNormalizer:
    """Get or create the RowNormalizer configured from ImportSettings."""
    global _row_normalizer
    if _row_normalizer is None:
        settings = get_settings().catalog_import
        _row_normalizer = RowNormalizer(
            title_case_names=settings.title_case_names,
            encoding=settings.csv_encoding,
        )
    return _row_normalizer


def get_conflict_detector() -> ConflictDetector:
    """Get or create the ConflictDetector."""
    global _conflict_detector
    if _conflict_detector is None:
        _conflict_detector = ConflictDetector()
    return _conflict_detector


async def get_catalog_store() -> "ICatalogStore":
    """
    Get the catalog store.

    Lazy import of infrastructure to keep core free of storage imports.
    """
    from src.infrastructure.storage.sqlite import get_catalog_store as _get_store

    return await _get_store()


def reset_services() -> None:
    """
    Reset all singleton service instances.

    Useful for testing or when configuration changes.
    """
    global _row_normalizer
    global _conflict_detector

    _row_normalizer = None
    _conflict_detector = None


__all__ = [
    # Factory functions
    "get_row_normalizer",
    "get_conflict_detector",
    "get_catalog_store",
    # Reset
    "reset_services",
]
