"""Tests for conflict detection and strategy selection."""

from datetime import UTC, datetime, timedelta

import pytest

from src.core.entities import ImportRow, ImportStrategy, MaterialRecord, NewValues, TaxonomyEntry
from src.core.services.catalog_index import CatalogIndex
from src.core.services.conflict_detector import ConflictDetector, ConflictReport, choose_strategy
from src.core.services.taxonomy_resolver import Taxonomy, TaxonomyIndex

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
def taxonomy() -> Taxonomy:
    return Taxonomy(
        categories=TaxonomyIndex(
            [TaxonomyEntry(id="cat-veg", name="Veg"), TaxonomyEntry(id="cat-dairy", name="Dairy")]
        ),
        suppliers=TaxonomyIndex(
            [TaxonomyEntry(id="sup-a", name="A"), TaxonomyEntry(id="sup-b", name="B")]
        ),
    )


def _make_row(name: str = "Tomato", supplier: str = "A", category: str = "Veg", **kw) -> ImportRow:
    return ImportRow(name=name, supplier_name=supplier, category_name=category, **kw)


def _make_record(material_id: str, **overrides) -> MaterialRecord:
    data = {
        "id": material_id,
        "name": "Tomato",
        "category_id": "cat-veg",
        "supplier_id": "sup-a",
        "created_at": BASE_TIME,
    }
    data.update(overrides)
    return MaterialRecord(**data)


class TestConflictDetector:
    """Category/supplier ownership conflicts."""

    def test_matching_row_has_no_conflict(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])

        report = ConflictDetector().detect([_make_row()], index, taxonomy)

        assert report.conflicts == []
        assert not report.has_issues

    def test_case_differences_are_not_conflicts(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])

        report = ConflictDetector().detect([_make_row(supplier="a", category="VEG")], index, taxonomy)

        assert report.conflicts == []

    def test_new_material_has_no_conflict(self, taxonomy):
        report = ConflictDetector().detect(
            [_make_row(name="Basil")], CatalogIndex.build([_make_record("1")]), taxonomy
        )

        assert report.conflicts == []

    def test_category_change_against_supplier_match(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])

        report = ConflictDetector().detect([_make_row(category="Dairy")], index, taxonomy)

        assert len(report.conflicts) == 1
        item = report.conflicts[0]
        assert item.key == "tomato|"
        assert item.category_changed is True
        assert item.supplier_changed is False
        assert item.current_category_id == "cat-veg"
        assert item.csv_category_name == "Dairy"

    def test_supplier_change(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])

        report = ConflictDetector().detect([_make_row(supplier="B")], index, taxonomy)

        item = report.conflicts[0]
        assert item.supplier_changed is True
        assert item.category_changed is False
        assert item.current_supplier_id == "sup-a"

    def test_existing_pair_among_candidates_is_not_a_conflict(self, taxonomy):
        index = CatalogIndex.build(
            [
                _make_record("1", supplier_id="sup-a", category_id="cat-veg"),
                _make_record("2", supplier_id="sup-b", category_id="cat-dairy"),
            ]
        )

        report = ConflictDetector().detect([_make_row(supplier="B", category="Dairy")], index, taxonomy)

        assert report.conflicts == []

    def test_current_without_category_is_not_a_conflict(self, taxonomy):
        index = CatalogIndex.build([_make_record("1", category_id=None)])

        report = ConflictDetector().detect([_make_row(category="Dairy")], index, taxonomy)

        assert report.conflicts == []

    def test_conflicts_are_reported_once_per_key(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])
        rows = [_make_row(category="Dairy"), _make_row(supplier="B")]

        report = ConflictDetector().detect(rows, index, taxonomy)

        assert len(report.conflicts) == 1
        assert report.conflicts[0].category_changed is True

    def test_reference_record_follows_selection_precedence(self, taxonomy):
        index = CatalogIndex.build(
            [
                _make_record("1", supplier_id="sup-a", category_id="cat-veg"),
                _make_record(
                    "2",
                    supplier_id="sup-b",
                    category_id="cat-dairy",
                    last_update=BASE_TIME + timedelta(days=5),
                ),
            ]
        )

        # Supplier A matches record 1 even though record 2 is newer
        report = ConflictDetector().detect([_make_row(category="Dairy")], index, taxonomy)

        assert report.conflicts[0].current_supplier_id == "sup-a"
        assert report.conflicts[0].current_category_id == "cat-veg"

    def test_tomato_scenario(self, taxonomy):
        index = CatalogIndex.build([_make_record("1")])

        report = ConflictDetector().detect([_make_row(category="Fruit")], index, taxonomy)

        assert len(report.conflicts) == 1
        assert report.conflicts[0].category_changed is True
        assert report.conflicts[0].supplier_changed is False
        assert report.new_values.categories == ["fruit"]
        assert report.new_values.suppliers == []


class TestNewValues:
    def test_unknown_names_are_lowercased_and_deduplicated(self, taxonomy):
        rows = [
            _make_row(name="Milk", category="Fresh", supplier="Farm Co"),
            _make_row(name="Cream", category="FRESH", supplier="farm co"),
            _make_row(name="Butter", category="Dairy", supplier="A"),
        ]

        report = ConflictDetector().detect(rows, CatalogIndex.build([]), taxonomy)

        assert report.new_values == NewValues(categories=["fresh"], suppliers=["farm co"])
        assert report.has_issues


class TestChooseStrategy:
    def test_direct_when_nothing_to_resolve(self):
        assert choose_strategy(ConflictReport(), ask_confirm=True) is ImportStrategy.DIRECT

    def test_automatic_when_confirmation_disabled(self):
        report = ConflictReport(new_values=NewValues(categories=["fresh"]))
        assert choose_strategy(report, ask_confirm=False) is ImportStrategy.AUTOMATIC

    def test_interactive_when_confirmation_enabled(self):
        report = ConflictReport(new_values=NewValues(suppliers=["farm co"]))
        assert choose_strategy(report, ask_confirm=True) is ImportStrategy.INTERACTIVE
