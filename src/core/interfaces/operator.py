"""
Operator-facing ports of the import engine.

The operator channel asks for confirmation and conflict resolution;
the progress sink receives a 0-100 percentage after every row.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from src.core.entities.catalog_import import ConflictItem, NewValues, ResolutionDecision
from src.core.entities.material import TaxonomyEntry

ProgressSink = Callable[[int], None]


@dataclass
class ResolutionRequest:
    """What the operator is shown before an interactive import."""

    conflicts: list[ConflictItem]
    new_values: NewValues
    categories: list[TaxonomyEntry] = field(default_factory=list)
    suppliers: list[TaxonomyEntry] = field(default_factory=list)


class IOperatorChannel(ABC):
    """Interface to the human driving an import."""

    @abstractmethod
    async def confirm(self, message: str) -> bool:
        """Ask a yes/no question. False cancels the run."""

    @abstractmethod
    async def resolve(self, request: ResolutionRequest) -> ResolutionDecision | None:
        """
        Present conflicts and new values and collect a decision.

        Returns None when the operator cancels.
        """
