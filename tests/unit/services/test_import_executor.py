"""Tests for the merge & upsert executor."""

from datetime import UTC, datetime

import pytest

from src.core.entities import (
    ClearTaxonomy,
    CreateTaxonomy,
    ExistingTaxonomy,
    ImportRow,
    MaterialRecord,
    ResolutionOverride,
    TaxonomyKind,
)
from src.core.services.catalog_index import CatalogIndex
from src.core.services.import_executor import (
    ImportExecutor,
    progress_percent,
    round_money,
    same_number,
)
from src.core.services.taxonomy_resolver import Taxonomy
from src.core.services.unit_normalizer import CanonicalUnits

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def _make_row(name: str = "Tomato", **overrides) -> ImportRow:
    data = {
        "name": name,
        "supplier_name": "A",
        "category_name": "Veg",
        "uom_token": "kg",
        "package_qty": 5,
        "package_price": 12,
    }
    data.update(overrides)
    return ImportRow(**data)


@pytest.fixture
def seeded_store(fake_store):
    fake_store.add_entry(TaxonomyKind.CATEGORY, "Veg")
    fake_store.add_entry(TaxonomyKind.CATEGORY, "Dairy")
    fake_store.add_entry(TaxonomyKind.SUPPLIER, "A")
    fake_store.add_entry(TaxonomyKind.SUPPLIER, "B")
    return fake_store


def _entry_id(store, kind: TaxonomyKind, name: str) -> str:
    return next(e.id for e in store.taxonomy[kind] if e.name == name)


async def _run(store, rows, overrides=None, progress=None, exclusive_default=True, **kwargs):
    units = await CanonicalUnits.ensure(store)
    taxonomy = await Taxonomy.load(store)
    index = CatalogIndex.build(await store.list_all())
    executor = ImportExecutor(store, units, exclusive_default=exclusive_default, **kwargs)
    return await executor.execute(rows, index, taxonomy, overrides=overrides, progress=progress)


def _existing_tomato(store, **overrides) -> MaterialRecord:
    data = {
        "name": "Tomato",
        "category_id": _entry_id(store, TaxonomyKind.CATEGORY, "Veg"),
        "supplier_id": _entry_id(store, TaxonomyKind.SUPPLIER, "A"),
        "uom_id": _entry_id(store, TaxonomyKind.UOM, "gr"),
        "packaging_size": 5000,
        "package_price": 12,
        "unit_cost": 12 / 5000,
        "created_at": BASE_TIME,
    }
    data.update(overrides)
    return MaterialRecord(**data)


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "decimals", "expected"),
        [(12.5, 0, 13), (12.4, 0, 12), (2.345, 2, 2.35), (None, 0, None)],
    )
    def test_round_money_half_up(self, value, decimals, expected):
        assert round_money(value, decimals) == expected

    def test_same_number(self):
        assert same_number(None, None)
        assert not same_number(None, 0)
        assert same_number(0.1 + 0.2, 0.3)
        assert not same_number(1.0, 1.001)

    def test_progress_percent(self):
        assert [progress_percent(i, 3) for i in (1, 2, 3)] == [33, 67, 100]
        assert progress_percent(0, 0) == 100


@pytest.mark.asyncio
class TestImportExecutor:
    """Row-by-row upsert semantics."""

    async def test_insert_new_material(self, seeded_store):
        stats = await _run(seeded_store, [_make_row(package_price=12.4, vat_rate_percent=10)])

        assert (stats.inserted, stats.updated, stats.skipped) == (1, 0, 0)
        record = seeded_store.by_name("Tomato")[0]
        assert record.packaging_size == 5000
        assert record.package_price == 12
        assert record.unit_cost == pytest.approx(12 / 5000)
        assert record.uom_id == _entry_id(seeded_store, TaxonomyKind.UOM, "gr")
        assert record.vat_rate_percent == 10
        assert record.is_default is True
        assert record.is_food_drink is True
        assert record.last_update is not None

    async def test_explicit_unit_cost_and_vat_clamp(self, seeded_store):
        await _run(seeded_store, [_make_row(unit_cost=0.5, vat_rate_percent=150)])

        record = seeded_store.by_name("Tomato")[0]
        assert record.unit_cost == 0.5
        assert record.vat_rate_percent == 100

    async def test_money_decimals(self, seeded_store):
        await _run(seeded_store, [_make_row(package_price=12.345)], money_decimals=2)

        assert seeded_store.by_name("Tomato")[0].package_price == 12.35

    async def test_second_run_is_idempotent(self, seeded_store):
        rows = [
            _make_row(package_price=12.4),
            _make_row("Milk", category_name="Dairy", uom_token="l", package_qty=1, package_price=1.2),
            _make_row("Eggs", supplier_name="B", uom_token="pz", package_qty=6, package_price=3),
        ]

        first = await _run(seeded_store, rows)
        second = await _run(seeded_store, rows)

        assert first.inserted == 3
        assert (second.inserted, second.updated) == (0, 0)
        assert second.skipped == second.unchanged == 3

    async def test_update_changed_price(self, seeded_store):
        material_id = seeded_store.add_material(_existing_tomato(seeded_store))

        stats = await _run(seeded_store, [_make_row(package_price=15)])

        assert stats.updated == 1
        assert seeded_store.materials[material_id].package_price == 15
        patched_id, patch = seeded_store.updates[0]
        assert patched_id == material_id
        assert patch["package_price"] == 15
        assert patch["unit_cost"] == pytest.approx(15 / 5000)
        assert "last_update" in patch

    async def test_tiny_float_drift_is_unchanged(self, seeded_store):
        seeded_store.add_material(_existing_tomato(seeded_store, unit_cost=12 / 5000 + 1e-12))

        stats = await _run(seeded_store, [_make_row()])

        assert stats.unchanged == 1
        assert seeded_store.updates == []

    async def test_repeated_key_in_one_file_converges(self, seeded_store):
        stats = await _run(seeded_store, [_make_row(), _make_row(), _make_row(package_price=14)])

        assert (stats.inserted, stats.updated, stats.unchanged) == (1, 1, 1)
        assert len(seeded_store.by_name("Tomato")) == 1

    async def test_partial_failure_isolated_to_one_row(self, seeded_store):
        seeded_store.fail_insert_names.add("Row 3")
        rows = [_make_row(f"Row {i}") for i in range(1, 6)]

        stats = await _run(seeded_store, rows)

        assert stats.inserted == 4
        assert stats.skipped == stats.failed == 1
        assert sorted(m.name for m in seeded_store.materials.values()) == [
            "Row 1",
            "Row 2",
            "Row 4",
            "Row 5",
        ]

    async def test_update_failure_is_skipped(self, seeded_store):
        material_id = seeded_store.add_material(_existing_tomato(seeded_store))
        seeded_store.fail_update_ids.add(material_id)

        stats = await _run(seeded_store, [_make_row(package_price=20)])

        assert (stats.updated, stats.failed) == (0, 1)
        assert seeded_store.materials[material_id].package_price == 12

    async def test_invalid_rows_are_skipped(self, seeded_store):
        rows = [
            _make_row(supplier_name=""),
            _make_row("Basil", category_name="Herbs"),
            _make_row("Sage"),
        ]

        stats = await _run(seeded_store, rows)

        assert (stats.inserted, stats.invalid, stats.skipped) == (1, 2, 2)
        assert stats.processed == 3

    async def test_progress_reported_after_every_row(self, seeded_store):
        seen: list[int] = []

        await _run(seeded_store, [_make_row("A1"), _make_row("A2"), _make_row("A3")], progress=seen.append)

        assert seen == [33, 67, 100]

    async def test_default_exclusivity_against_catalog(self, seeded_store):
        old_id = seeded_store.add_material(_existing_tomato(seeded_store, brand="Mutti"))

        await _run(seeded_store, [_make_row(brand="Cirio")])

        defaults = [m for m in seeded_store.by_name("Tomato") if m.is_default]
        assert len(defaults) == 1
        assert defaults[0].brand == "Cirio"
        assert seeded_store.materials[old_id].is_default is False

    async def test_default_exclusivity_within_file(self, seeded_store):
        rows = [_make_row(brand="Mutti"), _make_row(brand="Cirio"), _make_row(brand="Pomi")]

        await _run(seeded_store, rows)

        defaults = [m.brand for m in seeded_store.by_name("Tomato") if m.is_default]
        assert defaults == ["Pomi"]

    async def test_non_exclusive_policy_keeps_all_defaults(self, seeded_store):
        rows = [_make_row(brand="Mutti"), _make_row(brand="Cirio")]

        await _run(seeded_store, rows, exclusive_default=False)

        assert all(m.is_default for m in seeded_store.by_name("Tomato"))

    async def test_non_default_row_leaves_other_defaults(self, seeded_store):
        seeded_store.add_material(_existing_tomato(seeded_store, brand="Mutti"))

        await _run(seeded_store, [_make_row(brand="Cirio", is_default=False)])

        assert [m.brand for m in seeded_store.by_name("Tomato") if m.is_default] == ["Mutti"]

    async def test_default_clearing_failure_does_not_abort(self, seeded_store):
        seeded_store.fail_clear_defaults = True

        stats = await _run(seeded_store, [_make_row(brand="Mutti"), _make_row(brand="Cirio")])

        assert stats.inserted == 2

    async def test_two_brands_without_default_column_rerun_writes_nothing(self, seeded_store):
        rows = [_make_row(brand="Mutti"), _make_row(brand="Cirio")]

        first = await _run(seeded_store, rows)
        second = await _run(seeded_store, rows)

        assert first.inserted == 2
        assert (second.inserted, second.updated) == (0, 0)
        assert second.unchanged == 2
        assert seeded_store.updates == []
        assert [m.brand for m in seeded_store.by_name("Tomato") if m.is_default] == ["Cirio"]

    async def test_update_without_default_column_keeps_flag(self, seeded_store):
        old_id = seeded_store.add_material(_existing_tomato(seeded_store, is_default=False))

        stats = await _run(seeded_store, [_make_row(package_price=20)])

        assert stats.updated == 1
        assert seeded_store.updates[0][1]["is_default"] is False
        assert seeded_store.materials[old_id].is_default is False

    async def test_override_existing_category(self, seeded_store):
        dairy = _entry_id(seeded_store, TaxonomyKind.CATEGORY, "Dairy")

        await _run(
            seeded_store,
            [_make_row()],
            overrides={"tomato|": ResolutionOverride(category=ExistingTaxonomy(dairy))},
        )

        assert seeded_store.by_name("Tomato")[0].category_id == dairy

    async def test_clear_override_makes_row_invalid(self, seeded_store):
        stats = await _run(
            seeded_store,
            [_make_row()],
            overrides={"tomato|": ResolutionOverride(supplier=ClearTaxonomy())},
        )

        assert stats.invalid == 1
        assert seeded_store.materials == {}

    async def test_tomato_keep_current_category_is_unchanged(self, seeded_store):
        seeded_store.add_material(_existing_tomato(seeded_store))
        veg = _entry_id(seeded_store, TaxonomyKind.CATEGORY, "Veg")

        stats = await _run(
            seeded_store,
            [_make_row(category_name="Fruit")],
            overrides={"tomato|": ResolutionOverride(category=ExistingTaxonomy(veg))},
        )

        assert (stats.inserted, stats.updated, stats.skipped) == (0, 0, 1)

    async def test_unmaterialized_create_choice_is_rejected(self, seeded_store):
        units = await CanonicalUnits.ensure(seeded_store)
        taxonomy = await Taxonomy.load(seeded_store)
        executor = ImportExecutor(seeded_store, units, exclusive_default=True)

        with pytest.raises(ValueError):
            executor.build_record(
                _make_row(),
                taxonomy,
                {"tomato|": ResolutionOverride(category=CreateTaxonomy("Fruit"))},
            )
