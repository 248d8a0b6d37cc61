"""Tests for unit of measure normalization."""

import pytest

from src.core.entities import CanonicalUnit, TaxonomyKind
from src.core.exceptions import MissingCanonicalUnitsError
from src.core.services.unit_normalizer import (
    CanonicalUnits,
    UnitConversion,
    derive_unit_cost,
    normalize_unit,
    packaging_size,
)


class TestNormalizeUnit:
    """Token -> (canonical unit, factor)."""

    @pytest.mark.parametrize(
        ("token", "unit", "factor"),
        [
            ("kg", CanonicalUnit.MASS, 1000),
            ("KG", CanonicalUnit.MASS, 1000),
            ("g", CanonicalUnit.MASS, 1),
            ("grammi", CanonicalUnit.MASS, 1),
            ("l", CanonicalUnit.VOLUME, 1000),
            ("litri", CanonicalUnit.VOLUME, 1000),
            ("cl", CanonicalUnit.VOLUME, 10),
            ("dl", CanonicalUnit.VOLUME, 100),
            ("ml", CanonicalUnit.VOLUME, 1),
            ("pz", CanonicalUnit.COUNT, 1),
            (" pcs ", CanonicalUnit.COUNT, 1),
        ],
    )
    def test_known_tokens(self, token, unit, factor):
        assert normalize_unit(token) == UnitConversion(unit=unit, factor=factor)

    @pytest.mark.parametrize("token", ["", None, "crate", "box of 6"])
    def test_unknown_tokens_fall_back_to_count(self, token):
        assert normalize_unit(token) == UnitConversion(unit=CanonicalUnit.COUNT, factor=1)


class TestDerivedValues:
    def test_packaging_size_applies_factor(self):
        assert packaging_size(5, normalize_unit("kg")) == 5000
        assert packaging_size(75, normalize_unit("cl")) == 750

    def test_packaging_size_without_quantity(self):
        assert packaging_size(None, normalize_unit("kg")) is None

    def test_unit_cost(self):
        assert derive_unit_cost(12, 5000) == pytest.approx(0.0024)

    @pytest.mark.parametrize(("price", "size"), [(None, 10), (10, None), (10, 0), (10, -1)])
    def test_unit_cost_undefined(self, price, size):
        assert derive_unit_cost(price, size) is None


@pytest.mark.asyncio
class TestCanonicalUnits:
    """Resolving canonical units against the UOM table."""

    async def test_existing_units_are_mapped(self, fake_store):
        units = await CanonicalUnits.ensure(fake_store)

        ids = {e.name: e.id for e in fake_store.taxonomy[TaxonomyKind.UOM]}
        assert units.id_for(CanonicalUnit.MASS) == ids["gr"]
        assert units.id_for(CanonicalUnit.VOLUME) == ids["ml"]
        assert units.id_for(CanonicalUnit.COUNT) == ids["unit"]
        assert fake_store.create_calls == []

    async def test_aliases_in_uom_table_are_recognized(self, bare_store):
        bare_store.add_entry(TaxonomyKind.UOM, "Grammi")
        bare_store.add_entry(TaxonomyKind.UOM, "Litro")
        bare_store.add_entry(TaxonomyKind.UOM, "pz")

        units = await CanonicalUnits.ensure(bare_store)

        assert units.missing == []
        assert bare_store.create_calls == []

    async def test_missing_units_are_created(self, bare_store):
        bare_store.add_entry(TaxonomyKind.UOM, "gr")

        units = await CanonicalUnits.ensure(bare_store)

        assert units.missing == []
        assert bare_store.create_calls == [(TaxonomyKind.UOM, ["ml", "unit"])]

    async def test_missing_units_without_creation_is_fatal(self, bare_store):
        with pytest.raises(MissingCanonicalUnitsError) as exc_info:
            await CanonicalUnits.ensure(bare_store, create_missing=False)

        assert exc_info.value.code == "UOM_MISSING"
        assert bare_store.create_calls == []

    async def test_creation_failure_is_fatal(self, bare_store):
        bare_store.fail_create_kinds.add(TaxonomyKind.UOM)

        with pytest.raises(MissingCanonicalUnitsError):
            await CanonicalUnits.ensure(bare_store)
