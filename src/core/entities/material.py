"""
Material domain entities for the materials catalog.

Represents a purchasable material (ingredient, consumable) together with
the taxonomy entries it is filed under.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class TaxonomyKind(str, Enum):
    """Kinds of lookup tables a material refers to."""

    CATEGORY = "category"
    SUPPLIER = "supplier"
    UOM = "uom"


class CanonicalUnit(str, Enum):
    """Canonical units all package quantities are converted into."""

    MASS = "gr"
    VOLUME = "ml"
    COUNT = "unit"


class TaxonomyEntry(BaseModel):
    """A category, supplier or unit of measure."""

    id: str
    name: str


class MaterialRecord(BaseModel):
    """
    A material in the catalog.

    ``packaging_size`` is expressed in canonical units (grams, millilitres
    or pieces) and ``unit_cost`` is the package price divided by it.
    """

    id: str | None = None
    name: str
    brand: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    uom_id: str | None = None
    packaging_size: float | None = None
    package_price: float | None = None
    unit_cost: float | None = None
    vat_rate_percent: float | None = None
    notes: str | None = None
    is_food_drink: bool = True
    is_default: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_update: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def recency(self) -> datetime:
        """Timestamp used to rank records: last update, else creation."""
        return self.last_update or self.created_at
