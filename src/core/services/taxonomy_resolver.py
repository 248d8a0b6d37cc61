"""
Category and supplier resolution.

Name lookups against the taxonomy tables, batch creation of new entries,
and turning operator decisions that say "create <name>" into real IDs
before any row is written.
"""

from dataclasses import dataclass, field

from src.config import get_logger
from src.core.entities.catalog_import import (
    ClearTaxonomy,
    ConflictItem,
    CreateTaxonomy,
    ExistingTaxonomy,
    ResolutionDecision,
    ResolutionOverride,
    TaxonomyChoice,
)
from src.core.entities.material import TaxonomyEntry, TaxonomyKind
from src.core.exceptions import TaxonomyCreationError
from src.core.interfaces.catalog_store import ICatalogStore
from src.core.services.row_normalizer import title_case

logger = get_logger(__name__)


class TaxonomyIndex:
    """Case-insensitive name <-> ID lookup for one taxonomy kind."""

    def __init__(self, entries: list[TaxonomyEntry] | None = None) -> None:
        self._entries: list[TaxonomyEntry] = []
        self._id_by_lower: dict[str, str] = {}
        self._name_by_id: dict[str, str] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: TaxonomyEntry) -> None:
        self._entries.append(entry)
        self._id_by_lower.setdefault(entry.name.strip().lower(), entry.id)
        self._name_by_id[entry.id] = entry.name

    def id_for(self, name: str | None) -> str | None:
        if not name or not name.strip():
            return None
        return self._id_by_lower.get(name.strip().lower())

    def name_for(self, entry_id: str | None) -> str | None:
        if entry_id is None:
            return None
        return self._name_by_id.get(entry_id)

    def contains(self, name: str) -> bool:
        return self.id_for(name) is not None

    def remap(self, name: str, entry_id: str) -> None:
        """Point an incoming name at an existing entry for this run."""
        self._id_by_lower[name.strip().lower()] = entry_id

    @property
    def entries(self) -> list[TaxonomyEntry]:
        return list(self._entries)


@dataclass
class Taxonomy:
    """Category and supplier lookups used by one import run."""

    categories: TaxonomyIndex = field(default_factory=TaxonomyIndex)
    suppliers: TaxonomyIndex = field(default_factory=TaxonomyIndex)

    @classmethod
    async def load(cls, store: ICatalogStore) -> "Taxonomy":
        return cls(
            categories=TaxonomyIndex(await store.list_taxonomy(TaxonomyKind.CATEGORY)),
            suppliers=TaxonomyIndex(await store.list_taxonomy(TaxonomyKind.SUPPLIER)),
        )


@dataclass
class CreatedTaxonomy:
    categories: list[TaxonomyEntry] = field(default_factory=list)
    suppliers: list[TaxonomyEntry] = field(default_factory=list)


def _unique_titles(names: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        title = title_case(name)
        if title and title.lower() not in seen:
            seen.add(title.lower())
            out.append(title)
    return out


class TaxonomyResolver:
    """Creates taxonomy entries and resolves operator choices to IDs."""

    def __init__(self, store: ICatalogStore) -> None:
        self._store = store

    async def create_missing(
        self,
        categories: list[str],
        suppliers: list[str],
    ) -> CreatedTaxonomy:
        """
        Create categories, then suppliers, in one batch each.

        Raises:
            TaxonomyCreationError: On any store failure. Entries created
                before the failure are not rolled back.
        """
        created = CreatedTaxonomy()
        for kind, names, bucket in (
            (TaxonomyKind.CATEGORY, _unique_titles(categories), created.categories),
            (TaxonomyKind.SUPPLIER, _unique_titles(suppliers), created.suppliers),
        ):
            if not names:
                continue
            try:
                bucket.extend(await self._store.create_taxonomy(kind, names))
            except Exception as e:
                done = {
                    "categories": [c.name for c in created.categories],
                    "suppliers": [s.name for s in created.suppliers],
                }
                logger.error(
                    "taxonomy_creation_failed",
                    kind=kind.value,
                    names=names,
                    created=done,
                    error=str(e),
                )
                raise TaxonomyCreationError(kind.value, names, str(e), done) from e
            logger.info("taxonomy_created", kind=kind.value, names=names)
        return created

    async def materialize(
        self,
        decision: ResolutionDecision,
        taxonomy: Taxonomy,
    ) -> tuple[dict[str, ResolutionOverride], CreatedTaxonomy]:
        """
        Create every entry the decision asks for and substitute real IDs.

        New-value remaps are applied to ``taxonomy`` in place. The returned
        overrides contain only ExistingTaxonomy / ClearTaxonomy choices.
        """
        create_cats: list[str] = []
        create_sups: list[str] = []
        for override in decision.overrides.values():
            if isinstance(override.category, CreateTaxonomy):
                create_cats.append(override.category.name)
            if isinstance(override.supplier, CreateTaxonomy):
                create_sups.append(override.supplier.name)
        for name, choice in decision.new_category_map.items():
            if isinstance(choice, CreateTaxonomy):
                create_cats.append(choice.name or name)
        for name, choice in decision.new_supplier_map.items():
            if isinstance(choice, CreateTaxonomy):
                create_sups.append(choice.name or name)

        # Only names that do not exist yet are created
        created = await self.create_missing(
            [n for n in create_cats if not taxonomy.categories.contains(n)],
            [n for n in create_sups if not taxonomy.suppliers.contains(n)],
        )
        for entry in created.categories:
            taxonomy.categories.add(entry)
        for entry in created.suppliers:
            taxonomy.suppliers.add(entry)

        for name, choice in decision.new_category_map.items():
            if isinstance(choice, ExistingTaxonomy):
                taxonomy.categories.remap(name, choice.id)
        for name, choice in decision.new_supplier_map.items():
            if isinstance(choice, ExistingTaxonomy):
                taxonomy.suppliers.remap(name, choice.id)

        resolved = {
            key: ResolutionOverride(
                category=_concrete(override.category, taxonomy.categories),
                supplier=_concrete(override.supplier, taxonomy.suppliers),
            )
            for key, override in decision.overrides.items()
        }
        return resolved, created


def _concrete(choice: TaxonomyChoice | None, index: TaxonomyIndex) -> TaxonomyChoice | None:
    if isinstance(choice, CreateTaxonomy):
        entry_id = index.id_for(choice.name)
        return ExistingTaxonomy(entry_id) if entry_id is not None else ClearTaxonomy()
    return choice


def incoming_choice(name: str | None, index: TaxonomyIndex) -> TaxonomyChoice | None:
    if not name:
        return None
    entry_id = index.id_for(name)
    if entry_id is not None:
        return ExistingTaxonomy(entry_id)
    return CreateTaxonomy(title_case(name))


def accept_incoming(
    conflicts: list[ConflictItem],
    new_categories: list[str],
    new_suppliers: list[str],
    taxonomy: Taxonomy,
) -> ResolutionDecision:
    """
    Decision that takes every incoming value ("add all").

    Changed fields switch to the incoming name, reusing an existing entry
    when one matches and creating it otherwise; every new value is created.
    """
    overrides: dict[str, ResolutionOverride] = {}
    for item in conflicts:
        overrides[item.key] = ResolutionOverride(
            category=(
                incoming_choice(item.csv_category_name, taxonomy.categories)
                if item.category_changed
                else None
            ),
            supplier=(
                incoming_choice(item.csv_supplier_name, taxonomy.suppliers)
                if item.supplier_changed
                else None
            ),
        )
    return ResolutionDecision(
        overrides=overrides,
        new_category_map={n: CreateTaxonomy(title_case(n)) for n in new_categories},
        new_supplier_map={n: CreateTaxonomy(title_case(n)) for n in new_suppliers},
    )
