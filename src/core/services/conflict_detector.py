"""
Conflict detection and resolution strategy selection.

Compares every incoming row against the current record of its identity
key and reports category/supplier mismatches, plus incoming taxonomy
names that do not exist yet.
"""

from dataclasses import dataclass, field

from src.config import get_logger
from src.core.entities.catalog_import import (
    ConflictItem,
    ImportRow,
    ImportStrategy,
    NewValues,
)
from src.core.services.catalog_index import CatalogIndex, identity_key, select_current
from src.core.services.taxonomy_resolver import Taxonomy

logger = get_logger(__name__)


@dataclass
class ConflictReport:
    """Result of scanning a price list against the catalog."""

    conflicts: list[ConflictItem] = field(default_factory=list)
    new_values: NewValues = field(default_factory=NewValues)

    @property
    def has_issues(self) -> bool:
        return bool(self.conflicts) or not self.new_values.is_empty


def _lower(value: str | None) -> str | None:
    text = (value or "").strip().lower()
    return text or None


def _unique_lower(values: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        lowered = _lower(value)
        if lowered:
            seen.setdefault(lowered, None)
    return list(seen)


class ConflictDetector:
    """
    Detects ownership conflicts between a price list and the catalog.

    Pure service: works on an already built CatalogIndex and Taxonomy.
    """

    def detect(
        self,
        rows: list[ImportRow],
        index: CatalogIndex,
        taxonomy: Taxonomy,
    ) -> ConflictReport:
        conflicts: dict[str, ConflictItem] = {}

        for row in rows:
            key = identity_key(row.name, row.brand)
            candidates = index.candidates(key)
            if not candidates or key in conflicts:
                continue

            csv_cat = _lower(row.category_name)
            csv_sup = _lower(row.supplier_name)
            csv_cat_id = taxonomy.categories.id_for(csv_cat)
            csv_sup_id = taxonomy.suppliers.id_for(csv_sup)

            # Some record already carries exactly this pair
            if any(
                c.category_id == csv_cat_id and c.supplier_id == csv_sup_id for c in candidates
            ):
                continue

            current = select_current(candidates, csv_sup_id, csv_cat_id)
            if current is None:
                continue

            current_cat = _lower(taxonomy.categories.name_for(current.category_id))
            current_sup = _lower(taxonomy.suppliers.name_for(current.supplier_id))

            category_changed = bool(csv_cat and current_cat and csv_cat != current_cat)
            supplier_changed = bool(csv_sup and current_sup and csv_sup != current_sup)

            if category_changed or supplier_changed:
                conflicts[key] = ConflictItem(
                    key=key,
                    name=row.name,
                    brand=row.brand,
                    current_category_id=current.category_id,
                    current_supplier_id=current.supplier_id,
                    csv_category_name=row.category_name or None,
                    csv_supplier_name=row.supplier_name or None,
                    category_changed=category_changed,
                    supplier_changed=supplier_changed,
                )

        new_values = NewValues(
            categories=[
                n
                for n in _unique_lower([r.category_name for r in rows])
                if not taxonomy.categories.contains(n)
            ],
            suppliers=[
                n
                for n in _unique_lower([r.supplier_name for r in rows])
                if not taxonomy.suppliers.contains(n)
            ],
        )

        report = ConflictReport(conflicts=list(conflicts.values()), new_values=new_values)
        logger.info(
            "conflicts_detected",
            rows=len(rows),
            conflicts=len(report.conflicts),
            new_categories=len(new_values.categories),
            new_suppliers=len(new_values.suppliers),
        )
        return report


def choose_strategy(report: ConflictReport, ask_confirm: bool) -> ImportStrategy:
    """Direct when nothing needs resolving, else automatic or interactive."""
    if not report.has_issues:
        return ImportStrategy.DIRECT
    if not ask_confirm:
        return ImportStrategy.AUTOMATIC
    return ImportStrategy.INTERACTIVE
