"""Core domain entities."""

from src.core.entities.catalog_import import (
    ClearTaxonomy,
    ConflictItem,
    CreateTaxonomy,
    ExistingTaxonomy,
    ImportOutcome,
    ImportRow,
    ImportStats,
    ImportStatus,
    ImportStrategy,
    NewValues,
    ResolutionDecision,
    ResolutionOverride,
    SkipReason,
    TaxonomyChoice,
)
from src.core.entities.material import (
    CanonicalUnit,
    MaterialRecord,
    TaxonomyEntry,
    TaxonomyKind,
)

__all__ = [
    # Material entities
    "MaterialRecord",
    "TaxonomyEntry",
    "TaxonomyKind",
    "CanonicalUnit",
    # Import run entities
    "ImportRow",
    "ConflictItem",
    "NewValues",
    "ExistingTaxonomy",
    "CreateTaxonomy",
    "ClearTaxonomy",
    "TaxonomyChoice",
    "ResolutionOverride",
    "ResolutionDecision",
    "ImportStats",
    "ImportStatus",
    "ImportStrategy",
    "ImportOutcome",
    "SkipReason",
]
