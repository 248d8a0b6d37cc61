"""
Abstract interface for materials catalog storage.

Defines the narrow contract the import engine needs: list and write
materials, list and batch-create taxonomy entries.
"""

from abc import ABC, abstractmethod
from typing import Any

from src.core.entities.material import MaterialRecord, TaxonomyEntry, TaxonomyKind


class ICatalogStore(ABC):
    """
    Abstract interface for the materials catalog.

    Every method either succeeds or raises.
    """

    @abstractmethod
    async def list_all(self) -> list[MaterialRecord]:
        """List every material that is not soft-deleted."""

    @abstractmethod
    async def insert(self, record: MaterialRecord) -> str:
        """Insert a material and return its new ID."""

    @abstractmethod
    async def update(self, material_id: str, patch: dict[str, Any]) -> None:
        """Apply a partial update to a material."""

    @abstractmethod
    async def list_taxonomy(self, kind: TaxonomyKind) -> list[TaxonomyEntry]:
        """List entries of one taxonomy kind."""

    @abstractmethod
    async def create_taxonomy(
        self, kind: TaxonomyKind, names: list[str]
    ) -> list[TaxonomyEntry]:
        """Create entries of one taxonomy kind in a single batch."""

    @abstractmethod
    async def clear_other_defaults(self, name: str, keep_id: str) -> int:
        """Reset ``is_default`` on every material named ``name`` except ``keep_id``.

        Name comparison is exact. Returns the number of records changed.
        """
