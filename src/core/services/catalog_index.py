"""
Catalog indexing and current-record selection.

Existing materials are grouped by identity key (name + brand). For each
incoming row, ``select_current`` picks the single record the row is
compared against. Conflict detection and execution both call it.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from src.core.entities.material import MaterialRecord


def identity_key(name: str | None, brand: str | None) -> str:
    """Case-insensitive ``name|brand`` key."""
    return f"{(name or '').strip().lower()}|{(brand or '').strip().lower()}"


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _rank(record: MaterialRecord) -> tuple[datetime, str]:
    return (_as_aware(record.recency), record.id or "")


def _most_recent(records: Iterable[MaterialRecord]) -> MaterialRecord | None:
    return max(records, key=_rank, default=None)


def select_current(
    candidates: list[MaterialRecord],
    supplier_id: str | None,
    category_id: str | None,
) -> MaterialRecord | None:
    """
    Pick the reference record among candidates sharing an identity key.

    Precedence, first non-empty tier wins:
    1. same supplier as the row's resolved supplier
    2. same category as the row's resolved category
    3. most recently updated (falling back to creation time)

    Within a tier the most recent record wins, ties broken by ID, so the
    result does not depend on candidate order.
    """
    if not candidates:
        return None

    if supplier_id is not None:
        by_supplier = _most_recent(c for c in candidates if c.supplier_id == supplier_id)
        if by_supplier is not None:
            return by_supplier

    if category_id is not None:
        by_category = _most_recent(c for c in candidates if c.category_id == category_id)
        if by_category is not None:
            return by_category

    return _most_recent(candidates)


class CatalogIndex:
    """Identity key -> candidate records, built once per import run."""

    def __init__(self) -> None:
        self._by_key: dict[str, list[MaterialRecord]] = {}

    @classmethod
    def build(cls, records: Iterable[MaterialRecord]) -> "CatalogIndex":
        index = cls()
        for record in records:
            if record.is_deleted:
                continue
            index.add(record)
        return index

    def add(self, record: MaterialRecord) -> None:
        self._by_key.setdefault(identity_key(record.name, record.brand), []).append(record)

    def candidates(self, key: str) -> list[MaterialRecord]:
        return self._by_key.get(key, [])

    def records(self) -> Iterable[MaterialRecord]:
        for group in self._by_key.values():
            yield from group

    def apply_patch(self, record: MaterialRecord, patch: dict[str, Any]) -> None:
        """Reflect a successful update in the indexed record."""
        old_key = identity_key(record.name, record.brand)
        for field_name, value in patch.items():
            setattr(record, field_name, value)
        new_key = identity_key(record.name, record.brand)
        if new_key != old_key:
            self._by_key[old_key].remove(record)
            self.add(record)

    def clear_defaults(self, name: str, keep_id: str) -> None:
        """Mirror ``ICatalogStore.clear_other_defaults`` on the indexed records."""
        for record in self.records():
            if record.name == name and record.id != keep_id:
                record.is_default = False
