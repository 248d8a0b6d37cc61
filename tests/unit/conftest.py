"""Shared fixtures for unit tests: an in-memory catalog store."""

from typing import Any

import pytest

from src.core.entities import MaterialRecord, TaxonomyEntry, TaxonomyKind
from src.core.exceptions import DatabaseError, MaterialNotFoundError
from src.core.interfaces import ICatalogStore


class FakeCatalogStore(ICatalogStore):
    """
    Dict-backed ICatalogStore.

    Reads return copies, like a real database would. Failures can be
    injected per material name, material ID or taxonomy kind.
    """

    def __init__(self) -> None:
        self.materials: dict[str, MaterialRecord] = {}
        self.taxonomy: dict[TaxonomyKind, list[TaxonomyEntry]] = {k: [] for k in TaxonomyKind}
        self.fail_insert_names: set[str] = set()
        self.fail_update_ids: set[str] = set()
        self.fail_create_kinds: set[TaxonomyKind] = set()
        self.fail_clear_defaults = False
        self.inserted_ids: list[str] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.create_calls: list[tuple[TaxonomyKind, list[str]]] = []
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    # ─── Seeding helpers ──────────────────────────────────────

    def add_entry(self, kind: TaxonomyKind, name: str) -> str:
        entry = TaxonomyEntry(id=self._next_id(kind.value), name=name)
        self.taxonomy[kind].append(entry)
        return entry.id

    def add_units(self) -> dict[str, str]:
        return {name: self.add_entry(TaxonomyKind.UOM, name) for name in ("gr", "ml", "unit")}

    def add_material(self, record: MaterialRecord) -> str:
        material_id = record.id or self._next_id("mat")
        self.materials[material_id] = record.model_copy(update={"id": material_id})
        return material_id

    def by_name(self, name: str) -> list[MaterialRecord]:
        return [m for m in self.materials.values() if m.name == name]

    # ─── ICatalogStore ────────────────────────────────────────

    async def list_all(self) -> list[MaterialRecord]:
        return [m.model_copy() for m in self.materials.values() if m.deleted_at is None]

    async def insert(self, record: MaterialRecord) -> str:
        if record.name in self.fail_insert_names:
            raise DatabaseError("insert material", "injected failure")
        material_id = self.add_material(record.model_copy(update={"id": None}))
        self.inserted_ids.append(material_id)
        return material_id

    async def update(self, material_id: str, patch: dict[str, Any]) -> None:
        if material_id in self.fail_update_ids:
            raise DatabaseError("update material", "injected failure")
        if material_id not in self.materials:
            raise MaterialNotFoundError(material_id)
        self.updates.append((material_id, dict(patch)))
        self.materials[material_id] = self.materials[material_id].model_copy(update=patch)

    async def list_taxonomy(self, kind: TaxonomyKind) -> list[TaxonomyEntry]:
        return list(self.taxonomy[kind])

    async def create_taxonomy(self, kind: TaxonomyKind, names: list[str]) -> list[TaxonomyEntry]:
        self.create_calls.append((kind, list(names)))
        if kind in self.fail_create_kinds:
            raise DatabaseError(f"create {kind.value}", "injected failure")
        for name in names:
            self.add_entry(kind, name)
        return list(self.taxonomy[kind][-len(names):]) if names else []

    async def clear_other_defaults(self, name: str, keep_id: str) -> int:
        if self.fail_clear_defaults:
            raise DatabaseError("clear defaults", "injected failure")
        cleared = 0
        for material_id, record in self.materials.items():
            if record.name == name and material_id != keep_id and record.is_default:
                self.materials[material_id] = record.model_copy(update={"is_default": False})
                cleared += 1
        return cleared


@pytest.fixture
def fake_store() -> FakeCatalogStore:
    """Empty in-memory store with the three canonical units."""
    store = FakeCatalogStore()
    store.add_units()
    return store


@pytest.fixture
def bare_store() -> FakeCatalogStore:
    """In-memory store with an empty UOM table."""
    return FakeCatalogStore()
