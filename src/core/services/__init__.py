"""
Core business logic services.

Layer-pure services that depend only on:
- src/core/entities/*
- src/core/interfaces/*
- src/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from src.core.services.catalog_index import CatalogIndex, identity_key, select_current
from src.core.services.conflict_detector import ConflictDetector, ConflictReport, choose_strategy
from src.core.services.import_executor import ImportExecutor
from src.core.services.row_normalizer import RowNormalizer
from src.core.services.taxonomy_resolver import (
    Taxonomy,
    TaxonomyIndex,
    TaxonomyResolver,
    accept_incoming,
    incoming_choice,
)
from src.core.services.unit_normalizer import CanonicalUnits, UnitConversion, normalize_unit

__all__ = [
    # Row / unit normalization
    "RowNormalizer",
    "normalize_unit",
    "UnitConversion",
    "CanonicalUnits",
    # Matching
    "CatalogIndex",
    "identity_key",
    "select_current",
    # Conflicts
    "ConflictDetector",
    "ConflictReport",
    "choose_strategy",
    # Taxonomy
    "Taxonomy",
    "TaxonomyIndex",
    "TaxonomyResolver",
    "accept_incoming",
    "incoming_choice",
    # Execution
    "ImportExecutor",
]
