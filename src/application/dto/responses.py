"""Response DTOs for the import use case.

Serializable summaries of an ImportOutcome.
"""

from pydantic import BaseModel, Field

from src.core.entities import ConflictItem, ImportOutcome


class ImportStatsResponse(BaseModel):
    """Row counters of one run."""

    inserted: int = Field(default=0, description="Rows that created a material")
    updated: int = Field(default=0, description="Rows that updated a material")
    skipped: int = Field(default=0, description="Rows without a write")
    unchanged: int = Field(default=0, description="Skipped: identical to the catalog")
    invalid: int = Field(default=0, description="Skipped: failed validation")
    failed: int = Field(default=0, description="Skipped: store write failed")


class ImportMaterialsResponse(BaseModel):
    """Result of an import run."""

    strategy: str = Field(..., description="direct, automatic or interactive")
    status: str = Field(..., description="completed or cancelled")
    stats: ImportStatsResponse = Field(default_factory=ImportStatsResponse)
    conflicts: list[ConflictItem] = Field(default_factory=list)
    new_categories: list[str] = Field(default_factory=list)
    new_suppliers: list[str] = Field(default_factory=list)
    created_categories: list[str] = Field(default_factory=list)
    created_suppliers: list[str] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: ImportOutcome) -> "ImportMaterialsResponse":
        s = outcome.stats
        return cls(
            strategy=outcome.strategy.value,
            status=outcome.status.value,
            stats=ImportStatsResponse(
                inserted=s.inserted,
                updated=s.updated,
                skipped=s.skipped,
                unchanged=s.unchanged,
                invalid=s.invalid,
                failed=s.failed,
            ),
            conflicts=outcome.conflicts,
            new_categories=outcome.new_values.categories,
            new_suppliers=outcome.new_values.suppliers,
            created_categories=outcome.created_categories,
            created_suppliers=outcome.created_suppliers,
        )
