"""
Merge & upsert executor.

Applies normalized price-list rows to the catalog one at a time, in
input order. Each row is inserted, updated, or skipped; a failing row
never aborts the run.
"""

import math
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from src.config import get_logger
from src.core.entities.catalog_import import (
    ClearTaxonomy,
    CreateTaxonomy,
    ExistingTaxonomy,
    ImportRow,
    ImportStats,
    ResolutionOverride,
    SkipReason,
    TaxonomyChoice,
)
from src.core.entities.material import MaterialRecord
from src.core.exceptions import RowValidationError
from src.core.interfaces.catalog_store import ICatalogStore
from src.core.interfaces.operator import ProgressSink
from src.core.services.catalog_index import CatalogIndex, identity_key, select_current
from src.core.services.taxonomy_resolver import Taxonomy
from src.core.services.unit_normalizer import (
    CanonicalUnits,
    derive_unit_cost,
    normalize_unit,
    packaging_size,
)

logger = get_logger(__name__)

# Fields written on insert/update, split by comparison rule
EXACT_FIELDS = (
    "category_id",
    "supplier_id",
    "uom_id",
    "notes",
    "brand",
    "is_food_drink",
    "is_default",
)
NUMERIC_FIELDS = ("packaging_size", "package_price", "unit_cost", "vat_rate_percent")


def round_money(value: float | None, decimals: int = 0) -> float | None:
    """Round half-up to ``decimals`` places."""
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def same_number(a: float | None, b: float | None, eps: float = 1e-9) -> bool:
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return abs(a - b) <= eps


def progress_percent(processed: int, total: int) -> int:
    if total <= 0:
        return 100
    return math.floor(100 * processed / total + 0.5)


def _apply_choice(choice: TaxonomyChoice | None, resolved: str | None) -> str | None:
    if choice is None:
        return resolved
    if isinstance(choice, ExistingTaxonomy):
        return choice.id
    if isinstance(choice, ClearTaxonomy):
        return None
    if isinstance(choice, CreateTaxonomy):
        raise ValueError(f"Taxonomy entry {choice.name!r} must be created before execution")
    raise TypeError(f"Unknown taxonomy choice: {choice!r}")


class ImportExecutor:
    """
    Sequential upsert of ImportRows into the catalog.

    Args:
        store: Catalog storage.
        units: Canonical unit -> UOM ID map for this run.
        exclusive_default: Keep a single default record per material name.
        numeric_epsilon: Tolerance used when diffing numeric fields.
        money_decimals: Rounding applied to package prices.
    """

    def __init__(
        self,
        store: ICatalogStore,
        units: CanonicalUnits,
        *,
        exclusive_default: bool,
        numeric_epsilon: float = 1e-9,
        money_decimals: int = 0,
    ) -> None:
        self._store = store
        self._units = units
        self._exclusive_default = exclusive_default
        self._eps = numeric_epsilon
        self._money_decimals = money_decimals

    async def execute(
        self,
        rows: list[ImportRow],
        index: CatalogIndex,
        taxonomy: Taxonomy,
        overrides: dict[str, ResolutionOverride] | None = None,
        progress: ProgressSink | None = None,
    ) -> ImportStats:
        """Process every row in order and return the counters."""
        overrides = overrides or {}
        stats = ImportStats()
        total = len(rows)

        for position, row in enumerate(rows, start=1):
            await self._process_row(row, index, taxonomy, overrides, stats)
            if progress is not None:
                progress(progress_percent(position, total))

        logger.info(
            "import_executed",
            rows=total,
            inserted=stats.inserted,
            updated=stats.updated,
            skipped=stats.skipped,
            unchanged=stats.unchanged,
            invalid=stats.invalid,
            failed=stats.failed,
        )
        return stats

    async def _process_row(
        self,
        row: ImportRow,
        index: CatalogIndex,
        taxonomy: Taxonomy,
        overrides: dict[str, ResolutionOverride],
        stats: ImportStats,
    ) -> None:
        try:
            proposed = self.build_record(row, taxonomy, overrides)
        except RowValidationError as e:
            logger.info("import_row_invalid", row_number=row.row_number, reason=e.message)
            stats.record_skip(SkipReason.INVALID)
            return

        key = identity_key(proposed.name, proposed.brand)
        current = select_current(index.candidates(key), proposed.supplier_id, proposed.category_id)

        if current is None:
            written_id = await self._insert(proposed, index, stats)
        else:
            if row.is_default is None:
                # No default column: an existing record keeps its flag
                proposed.is_default = current.is_default
            written_id = await self._update(current, proposed, index, stats)

        if written_id and proposed.is_default and self._exclusive_default:
            await self._enforce_single_default(proposed.name, written_id, index)

    # ─── Record construction ──────────────────────────────────

    def build_record(
        self,
        row: ImportRow,
        taxonomy: Taxonomy,
        overrides: dict[str, ResolutionOverride] | None = None,
    ) -> MaterialRecord:
        """
        Turn a row into the record it proposes.

        Raises:
            RowValidationError: On missing required fields or unresolvable
                category/supplier/unit.
        """
        for field_name, value in (
            ("name", row.name),
            ("supplier", row.supplier_name),
            ("category", row.category_name),
        ):
            if not value or not value.strip():
                raise RowValidationError(row.row_number, field_name, "is required")

        conversion = normalize_unit(row.uom_token or "unit")
        uom_id = self._units.id_for(conversion.unit)
        if uom_id is None:
            raise RowValidationError(row.row_number, "uom", f"{conversion.unit.value} not mapped")

        category_id = taxonomy.categories.id_for(row.category_name)
        supplier_id = taxonomy.suppliers.id_for(row.supplier_name)

        override = (overrides or {}).get(identity_key(row.name, row.brand))
        if override is not None:
            category_id = _apply_choice(override.category, category_id)
            supplier_id = _apply_choice(override.supplier, supplier_id)

        if not category_id:
            raise RowValidationError(row.row_number, "category", f"{row.category_name!r} not resolvable")
        if not supplier_id:
            raise RowValidationError(row.row_number, "supplier", f"{row.supplier_name!r} not resolvable")

        size = packaging_size(row.package_qty, conversion)
        price = round_money(row.package_price, self._money_decimals)
        unit_cost = row.unit_cost if row.unit_cost is not None else derive_unit_cost(price, size)
        vat = row.vat_rate_percent
        if vat is not None:
            vat = max(0.0, min(100.0, vat))

        return MaterialRecord(
            name=row.name.strip(),
            brand=row.brand or None,
            category_id=category_id,
            supplier_id=supplier_id,
            uom_id=uom_id,
            packaging_size=size,
            package_price=price,
            unit_cost=unit_cost,
            vat_rate_percent=vat,
            notes=row.notes or None,
            is_food_drink=True if row.is_food_drink is None else row.is_food_drink,
            is_default=True if row.is_default is None else row.is_default,
        )

    def changed_fields(self, current: MaterialRecord, proposed: MaterialRecord) -> list[str]:
        """Names of mutable fields that differ between two records."""
        changed = [f for f in EXACT_FIELDS if getattr(current, f) != getattr(proposed, f)]
        changed += [
            f
            for f in NUMERIC_FIELDS
            if not same_number(getattr(current, f), getattr(proposed, f), self._eps)
        ]
        return changed

    # ─── Writes ───────────────────────────────────────────────

    async def _insert(
        self, proposed: MaterialRecord, index: CatalogIndex, stats: ImportStats
    ) -> str | None:
        now = datetime.now(UTC)
        record = proposed.model_copy(update={"created_at": now, "last_update": now})
        try:
            new_id = await self._store.insert(record)
        except Exception as e:
            logger.warning("material_insert_failed", name=proposed.name, error=str(e))
            stats.record_skip(SkipReason.FAILED)
            return None

        record.id = new_id
        index.add(record)
        stats.inserted += 1
        return new_id

    async def _update(
        self,
        current: MaterialRecord,
        proposed: MaterialRecord,
        index: CatalogIndex,
        stats: ImportStats,
    ) -> str | None:
        changed = self.changed_fields(current, proposed)
        if not changed:
            stats.record_skip(SkipReason.UNCHANGED)
            return None

        patch: dict[str, Any] = {"name": proposed.name}
        patch.update({f: getattr(proposed, f) for f in EXACT_FIELDS + NUMERIC_FIELDS})
        patch["last_update"] = datetime.now(UTC)

        try:
            await self._store.update(current.id, patch)
        except Exception as e:
            logger.warning("material_update_failed", material_id=current.id, error=str(e))
            stats.record_skip(SkipReason.FAILED)
            return None

        index.apply_patch(current, patch)
        stats.updated += 1
        logger.debug("material_updated_from_import", material_id=current.id, changed=changed)
        return current.id

    async def _enforce_single_default(self, name: str, keep_id: str, index: CatalogIndex) -> None:
        try:
            cleared = await self._store.clear_other_defaults(name, keep_id)
        except Exception as e:
            logger.error("default_exclusivity_failed", name=name, keep_id=keep_id, error=str(e))
            return
        index.clear_defaults(name, keep_id)
        if cleared:
            logger.debug("defaults_cleared", name=name, keep_id=keep_id, count=cleared)
