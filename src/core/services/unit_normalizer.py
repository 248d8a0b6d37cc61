"""
Unit of measure normalization.

Maps free-text unit tokens (English and Italian) to one of three
canonical units plus a multiplicative factor, and resolves the canonical
units against the UOM lookup table of the catalog.
"""

from dataclasses import dataclass

from src.config import get_logger
from src.core.entities.material import CanonicalUnit, TaxonomyKind
from src.core.exceptions import MissingCanonicalUnitsError
from src.core.interfaces.catalog_store import ICatalogStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class UnitConversion:
    """Canonical unit and the factor that converts a raw quantity into it."""

    unit: CanonicalUnit
    factor: float


_ALIAS_GROUPS: list[tuple[CanonicalUnit, float, tuple[str, ...]]] = [
    (CanonicalUnit.COUNT, 1, ("unit", "pz", "pcs", "pc", "piece", "pieces", "each", "ea", "u")),
    (CanonicalUnit.MASS, 1, ("g", "gr", "gram", "grams", "grammo", "grammi")),
    (
        CanonicalUnit.MASS,
        1000,
        ("kg", "kgs", "kilogram", "kilograms", "chilogrammo", "chilogrammi"),
    ),
    (CanonicalUnit.VOLUME, 1, ("ml", "milliliter", "milliliters", "millilitro", "millilitri")),
    (CanonicalUnit.VOLUME, 10, ("cl", "centiliter", "centiliters", "centilitro", "centilitri")),
    (CanonicalUnit.VOLUME, 100, ("dl", "deciliter", "deciliters", "decilitro", "decilitri")),
    (CanonicalUnit.VOLUME, 1000, ("l", "lt", "ltr", "liter", "liters", "litro", "litri")),
]

UNIT_ALIASES: dict[str, UnitConversion] = {
    alias: UnitConversion(unit=unit, factor=factor)
    for unit, factor, aliases in _ALIAS_GROUPS
    for alias in aliases
}

DEFAULT_CONVERSION = UnitConversion(unit=CanonicalUnit.COUNT, factor=1)


def normalize_unit(token: str | None) -> UnitConversion:
    """
    Resolve a unit token.

    Unknown or empty tokens fall back to ``(count, 1)`` so that an
    ambiguous unit never blocks an otherwise valid row.
    """
    key = (token or "").strip().lower()
    return UNIT_ALIASES.get(key, DEFAULT_CONVERSION)


def packaging_size(package_qty: float | None, conversion: UnitConversion) -> float | None:
    """Package quantity expressed in canonical units."""
    if package_qty is None:
        return None
    return package_qty * conversion.factor


def derive_unit_cost(package_price: float | None, size: float | None) -> float | None:
    """Cost of one canonical unit, or None when it cannot be computed."""
    if package_price is None or size is None or size <= 0:
        return None
    return package_price / size


class CanonicalUnits:
    """
    Canonical unit -> UOM entry ID map for one run.

    The first UOM entry normalizing to a canonical unit wins.
    """

    def __init__(self, ids: dict[CanonicalUnit, str]) -> None:
        self._ids = ids

    def id_for(self, unit: CanonicalUnit) -> str | None:
        return self._ids.get(unit)

    @property
    def missing(self) -> list[CanonicalUnit]:
        return [u for u in CanonicalUnit if u not in self._ids]

    @classmethod
    async def ensure(
        cls,
        store: ICatalogStore,
        create_missing: bool = True,
    ) -> "CanonicalUnits":
        """
        Load the UOM table and make sure all canonical units exist.

        Raises:
            MissingCanonicalUnitsError: If some canonical unit is absent and
                cannot be created.
        """
        entries = await store.list_taxonomy(TaxonomyKind.UOM)
        ids: dict[CanonicalUnit, str] = {}
        for entry in entries:
            unit = normalize_unit(entry.name).unit
            ids.setdefault(unit, entry.id)

        units = cls(ids)
        missing = units.missing
        if not missing:
            return units

        names = [u.value for u in missing]
        if not create_missing:
            raise MissingCanonicalUnitsError(names, reason="creation disabled")

        try:
            created = await store.create_taxonomy(TaxonomyKind.UOM, names)
        except Exception as e:
            logger.error("canonical_units_creation_failed", missing=names, error=str(e))
            raise MissingCanonicalUnitsError(names, reason=str(e)) from e

        for entry in created:
            ids.setdefault(normalize_unit(entry.name).unit, entry.id)

        units = cls(ids)
        if units.missing:
            raise MissingCanonicalUnitsError([u.value for u in units.missing])

        logger.info("canonical_units_created", names=names)
        return units
