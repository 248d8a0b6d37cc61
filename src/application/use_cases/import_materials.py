"""
Use case: Import a supplier price list into the materials catalog.

Parses the file, ensures canonical units, detects conflicts and new
taxonomy values, resolves them according to the chosen strategy and
runs the upsert.
"""

from src.application.dto.requests import ImportMaterialsRequest
from src.config import ImportSettings, get_logger, get_settings
from src.core.entities import (
    ImportOutcome,
    ImportStatus,
    ImportStrategy,
    ResolutionOverride,
)
from src.core.exceptions import ConfigurationError
from src.core.interfaces import ICatalogStore, IOperatorChannel, ProgressSink, ResolutionRequest
from src.core.services import (
    CanonicalUnits,
    CatalogIndex,
    ConflictDetector,
    ImportExecutor,
    RowNormalizer,
    Taxonomy,
    TaxonomyResolver,
    choose_strategy,
)

logger = get_logger(__name__)


class ImportMaterialsUseCase:
    """
    Orchestrates one price-list import run.

    Fatal errors (malformed input, missing canonical units, taxonomy
    creation failure) propagate to the caller; per-row problems are
    counted in the returned stats.
    """

    def __init__(
        self,
        store: ICatalogStore | None = None,
        channel: IOperatorChannel | None = None,
        normalizer: RowNormalizer | None = None,
        detector: ConflictDetector | None = None,
        settings: ImportSettings | None = None,
    ):
        self._store = store
        self._channel = channel
        self._normalizer = normalizer
        self._detector = detector
        self._settings = settings

    async def _get_store(self) -> ICatalogStore:
        """Lazy-load the catalog store."""
        if self._store is not None:
            return self._store

        from src.application.services import get_catalog_store

        self._store = await get_catalog_store()
        return self._store

    def _get_normalizer(self) -> RowNormalizer:
        if self._normalizer is None:
            from src.application.services import get_row_normalizer

            self._normalizer = get_row_normalizer()
        return self._normalizer

    def _get_detector(self) -> ConflictDetector:
        if self._detector is None:
            from src.application.services import get_conflict_detector

            self._detector = get_conflict_detector()
        return self._detector

    def _get_settings(self) -> ImportSettings:
        if self._settings is None:
            self._settings = get_settings().catalog_import
        return self._settings

    def _require_channel(self, strategy: ImportStrategy) -> IOperatorChannel:
        if self._channel is None:
            raise ConfigurationError(
                f"An operator channel is required for {strategy.value} imports",
                code="OPERATOR_CHANNEL_MISSING",
            )
        return self._channel

    async def execute(
        self,
        request: ImportMaterialsRequest,
        progress: ProgressSink | None = None,
    ) -> ImportOutcome:
        """Execute the import use case."""
        settings = self._get_settings()
        ask_confirm = settings.ask_confirm if request.ask_confirm is None else request.ask_confirm
        exclusive_default = (
            settings.exclusive_default
            if request.exclusive_default is None
            else request.exclusive_default
        )

        logger.info("import_started", filename=request.filename, ask_confirm=ask_confirm)

        rows = self._get_normalizer().parse_bytes(request.content, request.filename)
        store = await self._get_store()

        units = await CanonicalUnits.ensure(store, create_missing=settings.create_missing_units)
        taxonomy = await Taxonomy.load(store)
        index = CatalogIndex.build(await store.list_all())

        report = self._get_detector().detect(rows, index, taxonomy)
        strategy = choose_strategy(report, ask_confirm)
        outcome = ImportOutcome(
            strategy=strategy,
            status=ImportStatus.COMPLETED,
            conflicts=report.conflicts,
            new_values=report.new_values,
        )

        resolver = TaxonomyResolver(store)
        overrides: dict[str, ResolutionOverride] = {}

        if strategy is ImportStrategy.DIRECT:
            if ask_confirm:
                channel = self._require_channel(strategy)
                if not await channel.confirm(f"Import {len(rows)} rows into the catalog?"):
                    return self._cancelled(outcome, request)

        elif strategy is ImportStrategy.AUTOMATIC:
            created = await resolver.create_missing(
                report.new_values.categories,
                report.new_values.suppliers,
            )
            outcome.created_categories = [e.name for e in created.categories]
            outcome.created_suppliers = [e.name for e in created.suppliers]
            taxonomy = await Taxonomy.load(store)

        else:
            channel = self._require_channel(strategy)
            decision = await channel.resolve(
                ResolutionRequest(
                    conflicts=report.conflicts,
                    new_values=report.new_values,
                    categories=taxonomy.categories.entries,
                    suppliers=taxonomy.suppliers.entries,
                )
            )
            if decision is None:
                return self._cancelled(outcome, request)

            overrides, created = await resolver.materialize(decision, taxonomy)
            outcome.created_categories = [e.name for e in created.categories]
            outcome.created_suppliers = [e.name for e in created.suppliers]

        executor = ImportExecutor(
            store,
            units,
            exclusive_default=exclusive_default,
            numeric_epsilon=settings.numeric_epsilon,
            money_decimals=settings.money_decimals,
        )
        outcome.stats = await executor.execute(
            rows, index, taxonomy, overrides=overrides, progress=progress
        )

        logger.info(
            "import_finished",
            filename=request.filename,
            strategy=strategy.value,
            inserted=outcome.stats.inserted,
            updated=outcome.stats.updated,
            skipped=outcome.stats.skipped,
        )
        return outcome

    def _cancelled(self, outcome: ImportOutcome, request: ImportMaterialsRequest) -> ImportOutcome:
        outcome.status = ImportStatus.CANCELLED
        logger.info("import_cancelled", filename=request.filename, strategy=outcome.strategy.value)
        return outcome
