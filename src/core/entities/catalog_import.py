"""
Entities that live for the duration of one price-list import run.

Rows, conflicts, operator decisions and the final counters.
"""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel


class ImportRow(BaseModel):
    """One normalized line of a supplier price list."""

    row_number: int | None = None
    name: str = ""
    brand: str | None = None
    supplier_name: str = ""
    category_name: str = ""
    uom_token: str = ""
    package_qty: float | None = None
    package_price: float | None = None
    unit_cost: float | None = None
    vat_rate_percent: float | None = None
    notes: str | None = None
    is_food_drink: bool | None = None
    is_default: bool | None = None


class ConflictItem(BaseModel):
    """Mismatch between a material's current taxonomy and an incoming row."""

    key: str
    name: str
    brand: str | None = None
    current_category_id: str | None = None
    current_supplier_id: str | None = None
    csv_category_name: str | None = None
    csv_supplier_name: str | None = None
    category_changed: bool = False
    supplier_changed: bool = False


class NewValues(BaseModel):
    """Incoming taxonomy names (lower-cased) that do not exist yet."""

    categories: list[str] = []
    suppliers: list[str] = []

    @property
    def is_empty(self) -> bool:
        return not self.categories and not self.suppliers


# ─── Taxonomy choices ─────────────────────────────────────────


@dataclass(frozen=True)
class ExistingTaxonomy:
    """Use an existing category/supplier."""

    id: str


@dataclass(frozen=True)
class CreateTaxonomy:
    """Create a category/supplier with this name before execution."""

    name: str


@dataclass(frozen=True)
class ClearTaxonomy:
    """Clear the field."""


TaxonomyChoice = ExistingTaxonomy | CreateTaxonomy | ClearTaxonomy


@dataclass(frozen=True)
class ResolutionOverride:
    """
    Per identity key taxonomy decision.

    ``None`` leaves the name-based resolution in place for that field.
    """

    category: TaxonomyChoice | None = None
    supplier: TaxonomyChoice | None = None


@dataclass
class ResolutionDecision:
    """Operator (or policy) answer to a conflict report."""

    overrides: dict[str, ResolutionOverride] = field(default_factory=dict)
    new_category_map: dict[str, TaxonomyChoice] = field(default_factory=dict)
    """Incoming lower-cased category name -> replacement choice."""
    new_supplier_map: dict[str, TaxonomyChoice] = field(default_factory=dict)
    """Incoming lower-cased supplier name -> replacement choice."""


# ─── Run results ──────────────────────────────────────────────


class ImportStrategy(str, Enum):
    """How conflicts and new values are resolved before execution."""

    DIRECT = "direct"
    AUTOMATIC = "automatic"
    INTERACTIVE = "interactive"


class ImportStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SkipReason(str, Enum):
    """Why a row did not produce a write."""

    UNCHANGED = "unchanged"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass
class ImportStats:
    """Counters of one run. ``skipped`` is the sum of the breakdown."""

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    unchanged: int = 0
    invalid: int = 0
    failed: int = 0

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped += 1
        if reason is SkipReason.UNCHANGED:
            self.unchanged += 1
        elif reason is SkipReason.INVALID:
            self.invalid += 1
        else:
            self.failed += 1

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.skipped


@dataclass
class ImportOutcome:
    """Everything the caller gets back from an import run."""

    strategy: ImportStrategy
    status: ImportStatus
    stats: ImportStats = field(default_factory=ImportStats)
    conflicts: list[ConflictItem] = field(default_factory=list)
    new_values: NewValues = field(default_factory=NewValues)
    created_categories: list[str] = field(default_factory=list)
    created_suppliers: list[str] = field(default_factory=list)
