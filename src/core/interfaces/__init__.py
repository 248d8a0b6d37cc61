"""Core interfaces (ports) for dependency injection."""

from src.core.interfaces.catalog_store import ICatalogStore
from src.core.interfaces.operator import IOperatorChannel, ProgressSink, ResolutionRequest

__all__ = [
    # Storage interfaces
    "ICatalogStore",
    # Operator interfaces
    "IOperatorChannel",
    "ProgressSink",
    "ResolutionRequest",
]
