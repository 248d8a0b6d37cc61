"""
SQLite implementation of the materials catalog storage.

Handles materials and the category/supplier/uom lookup tables.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from src.config import get_logger
from src.core.entities.material import MaterialRecord, TaxonomyEntry, TaxonomyKind
from src.core.exceptions import DatabaseError, MaterialNotFoundError
from src.core.interfaces.catalog_store import ICatalogStore
from src.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)

TAXONOMY_TABLES: dict[TaxonomyKind, str] = {
    TaxonomyKind.CATEGORY: "categories",
    TaxonomyKind.SUPPLIER: "suppliers",
    TaxonomyKind.UOM: "uom",
}

MATERIAL_COLUMNS = (
    "id",
    "name",
    "brand",
    "category_id",
    "supplier_id",
    "uom_id",
    "packaging_size",
    "package_price",
    "unit_cost",
    "vat_rate_percent",
    "notes",
    "is_food_drink",
    "is_default",
    "created_at",
    "last_update",
    "deleted_at",
)

_BOOL_COLUMNS = {"is_food_drink", "is_default"}
_DATETIME_COLUMNS = {"created_at", "last_update", "deleted_at"}


def _generate_id() -> str:
    """Generate a new UUID text ID."""
    return str(uuid.uuid4())


def _to_db(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column in _BOOL_COLUMNS:
        return 1 if value else 0
    if column in _DATETIME_COLUMNS and isinstance(value, datetime):
        return value.isoformat()
    return value


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


class SQLiteCatalogStore(ICatalogStore):
    """SQLite implementation of catalog storage."""

    async def list_all(self) -> list[MaterialRecord]:
        """List every material that is not soft-deleted."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materials WHERE deleted_at IS NULL ORDER BY name, created_at"
            )
            rows = await cursor.fetchall()
            return [self._row_to_material(row) for row in rows]

    async def get(self, material_id: str) -> MaterialRecord | None:
        """Get a material by ID, soft-deleted ones included."""
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM materials WHERE id = ?", (material_id,))
            row = await cursor.fetchone()
            return self._row_to_material(row) if row is not None else None

    async def insert(self, record: MaterialRecord) -> str:
        """Insert a material and return its ID."""
        material_id = record.id or _generate_id()
        values = record.model_dump()
        values["id"] = material_id
        placeholders = ", ".join("?" for _ in MATERIAL_COLUMNS)
        try:
            async with get_transaction() as conn:
                await conn.execute(
                    f"INSERT INTO materials ({', '.join(MATERIAL_COLUMNS)}) VALUES ({placeholders})",
                    tuple(_to_db(c, values.get(c)) for c in MATERIAL_COLUMNS),
                )
        except aiosqlite.Error as e:
            raise DatabaseError("insert material", str(e)) from e

        logger.info("material_created", material_id=material_id, name=record.name)
        return material_id

    async def update(self, material_id: str, patch: dict[str, Any]) -> None:
        """Apply a partial update to a material."""
        columns = [c for c in patch if c in MATERIAL_COLUMNS and c != "id"]
        unknown = set(patch) - set(columns) - {"id"}
        if unknown:
            raise DatabaseError("update material", f"unknown columns {sorted(unknown)}")
        if not columns:
            return

        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = [_to_db(c, patch[c]) for c in columns]
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    f"UPDATE materials SET {assignments} WHERE id = ?",
                    (*params, material_id),
                )
                if cursor.rowcount == 0:
                    raise MaterialNotFoundError(material_id)
        except aiosqlite.Error as e:
            raise DatabaseError("update material", str(e)) from e

        logger.info("material_updated", material_id=material_id, fields=columns)

    async def clear_other_defaults(self, name: str, keep_id: str) -> int:
        """Reset is_default on every other material with exactly this name."""
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    """
                    UPDATE materials SET is_default = 0
                    WHERE name = ? AND id != ? AND is_default = 1
                    """,
                    (name, keep_id),
                )
                return cursor.rowcount
        except aiosqlite.Error as e:
            raise DatabaseError("clear defaults", str(e)) from e

    async def soft_delete(self, material_id: str) -> bool:
        """Mark a material as deleted. Returns False if it does not exist."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "UPDATE materials SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (datetime.now(UTC).isoformat(), material_id),
            )
            return cursor.rowcount > 0

    async def list_taxonomy(self, kind: TaxonomyKind) -> list[TaxonomyEntry]:
        """List entries of one taxonomy kind ordered by name."""
        table = TAXONOMY_TABLES[kind]
        async with get_connection() as conn:
            cursor = await conn.execute(f"SELECT id, name FROM {table} ORDER BY name")
            rows = await cursor.fetchall()
            return [TaxonomyEntry(id=row["id"], name=row["name"]) for row in rows]

    async def create_taxonomy(
        self, kind: TaxonomyKind, names: list[str]
    ) -> list[TaxonomyEntry]:
        """Create entries of one taxonomy kind in a single transaction."""
        table = TAXONOMY_TABLES[kind]
        entries = [TaxonomyEntry(id=_generate_id(), name=name) for name in names]
        if not entries:
            return []
        try:
            async with get_transaction() as conn:
                await conn.executemany(
                    f"INSERT INTO {table} (id, name) VALUES (?, ?)",
                    [(e.id, e.name) for e in entries],
                )
        except aiosqlite.Error as e:
            raise DatabaseError(f"create {kind.value}", str(e)) from e

        logger.info("taxonomy_entries_created", kind=kind.value, names=names)
        return entries

    def _row_to_material(self, row: aiosqlite.Row) -> MaterialRecord:
        """Convert database row to MaterialRecord entity."""
        return MaterialRecord(
            id=row["id"],
            name=row["name"],
            brand=row["brand"],
            category_id=row["category_id"],
            supplier_id=row["supplier_id"],
            uom_id=row["uom_id"],
            packaging_size=row["packaging_size"],
            package_price=row["package_price"],
            unit_cost=row["unit_cost"],
            vat_rate_percent=row["vat_rate_percent"],
            notes=row["notes"],
            is_food_drink=bool(row["is_food_drink"]),
            is_default=bool(row["is_default"]),
            created_at=_parse_datetime(row["created_at"]) or datetime.now(UTC),
            last_update=_parse_datetime(row["last_update"]),
            deleted_at=_parse_datetime(row["deleted_at"]),
        )
