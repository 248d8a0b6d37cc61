"""
Terminal operator channel.

Asks yes/no questions and walks the operator through conflicts and new
taxonomy values with short single-letter prompts.
"""

import asyncio
from collections.abc import Callable

from src.config import get_logger
from src.core.entities import (
    ClearTaxonomy,
    ConflictItem,
    CreateTaxonomy,
    ExistingTaxonomy,
    ResolutionDecision,
    ResolutionOverride,
    TaxonomyChoice,
    TaxonomyEntry,
)
from src.core.interfaces import IOperatorChannel, ResolutionRequest
from src.core.services import Taxonomy, TaxonomyIndex, accept_incoming, incoming_choice
from src.core.services.row_normalizer import title_case

logger = get_logger(__name__)

_YES = {"y", "yes", "s", "si"}


class ConsoleOperatorChannel(IOperatorChannel):
    """
    IOperatorChannel backed by stdin/stdout.

    Args:
        input_fn: Line reader, ``input`` by default.
        output_fn: Line writer, ``print`` by default.
        assume_yes: Answer every confirmation with yes.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
        assume_yes: bool = False,
    ):
        self._input = input_fn
        self._output = output_fn
        self._assume_yes = assume_yes

    async def _ask(self, prompt: str) -> str:
        answer = await asyncio.to_thread(self._input, prompt)
        return answer.strip().lower()

    async def confirm(self, message: str) -> bool:
        if self._assume_yes:
            return True
        return await self._ask(f"{message} [y/N] ") in _YES

    async def resolve(self, request: ResolutionRequest) -> ResolutionDecision | None:
        taxonomy = Taxonomy(
            categories=TaxonomyIndex(request.categories),
            suppliers=TaxonomyIndex(request.suppliers),
        )
        self._print_summary(request, taxonomy)

        while True:
            answer = await self._ask("[a]dd all incoming values, [r]eview one by one, [c]ancel: ")
            if answer in ("c", "cancel"):
                logger.info("operator_cancelled_import")
                return None
            if answer in ("a", "add"):
                return accept_incoming(
                    request.conflicts,
                    request.new_values.categories,
                    request.new_values.suppliers,
                    taxonomy,
                )
            if answer in ("r", "review"):
                return await self._review(request, taxonomy)

    # ─── Review ───────────────────────────────────────────────

    async def _review(self, request: ResolutionRequest, taxonomy: Taxonomy) -> ResolutionDecision:
        decision = ResolutionDecision()

        for item in request.conflicts:
            self._output(f"\n{item.name}" + (f" ({item.brand})" if item.brand else ""))
            category = None
            supplier = None
            if item.category_changed:
                category = await self._choose_field(
                    "category",
                    item.current_category_id,
                    item.csv_category_name,
                    taxonomy.categories,
                    request.categories,
                )
            if item.supplier_changed:
                supplier = await self._choose_field(
                    "supplier",
                    item.current_supplier_id,
                    item.csv_supplier_name,
                    taxonomy.suppliers,
                    request.suppliers,
                )
            decision.overrides[item.key] = ResolutionOverride(category=category, supplier=supplier)

        for name in request.new_values.categories:
            choice = await self._choose_new_value("category", name, request.categories)
            if choice is not None:
                decision.new_category_map[name] = choice
        for name in request.new_values.suppliers:
            choice = await self._choose_new_value("supplier", name, request.suppliers)
            if choice is not None:
                decision.new_supplier_map[name] = choice

        return decision

    async def _choose_field(
        self,
        label: str,
        current_id: str | None,
        incoming: str | None,
        index: TaxonomyIndex,
        entries: list[TaxonomyEntry],
    ) -> TaxonomyChoice | None:
        current = index.name_for(current_id) or "-"
        self._output(f"  {label}: current {current!r}, incoming {incoming!r}")
        while True:
            answer = await self._ask("  [k]eep current, [i]ncoming, [e]xisting, [x] clear: ")
            if answer == "k":
                return ExistingTaxonomy(current_id) if current_id else ClearTaxonomy()
            if answer == "i":
                return incoming_choice(incoming, index)
            if answer == "x":
                return ClearTaxonomy()
            if answer == "e":
                picked = await self._pick_entry(entries)
                if picked is not None:
                    return picked

    async def _choose_new_value(
        self,
        label: str,
        name: str,
        entries: list[TaxonomyEntry],
    ) -> TaxonomyChoice | None:
        while True:
            answer = await self._ask(
                f"New {label} {name!r}: [c]reate, map to [e]xisting, [s]kip rows: "
            )
            if answer == "c":
                return CreateTaxonomy(title_case(name))
            if answer == "s":
                return None
            if answer == "e":
                picked = await self._pick_entry(entries)
                if picked is not None:
                    return picked

    async def _pick_entry(self, entries: list[TaxonomyEntry]) -> ExistingTaxonomy | None:
        if not entries:
            self._output("  no existing entries")
            return None
        for number, entry in enumerate(entries, start=1):
            self._output(f"    {number}. {entry.name}")
        answer = await self._ask("  number: ")
        if answer.isdigit() and 1 <= int(answer) <= len(entries):
            return ExistingTaxonomy(entries[int(answer) - 1].id)
        return None

    def _print_summary(self, request: ResolutionRequest, taxonomy: Taxonomy) -> None:
        self._output(f"{len(request.conflicts)} conflict(s) found")
        for item in request.conflicts:
            self._output("  " + _describe(item, taxonomy))
        if request.new_values.categories:
            self._output("New categories: " + ", ".join(request.new_values.categories))
        if request.new_values.suppliers:
            self._output("New suppliers: " + ", ".join(request.new_values.suppliers))


def _describe(item: ConflictItem, taxonomy: Taxonomy) -> str:
    parts = []
    if item.category_changed:
        current = taxonomy.categories.name_for(item.current_category_id)
        parts.append(f"category {current} -> {item.csv_category_name}")
    if item.supplier_changed:
        current = taxonomy.suppliers.name_for(item.current_supplier_id)
        parts.append(f"supplier {current} -> {item.csv_supplier_name}")
    return f"{item.name}: " + "; ".join(parts)
