"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs
2. Implementing the import use case that coordinates core services
3. Providing factory functions for dependency injection
"""

from src.application.dto import (
    ImportMaterialsRequest,
    ImportMaterialsResponse,
    ImportStatsResponse,
)
from src.application.services import (
    get_catalog_store,
    get_conflict_detector,
    get_row_normalizer,
    reset_services,
)
from src.application.use_cases import ImportMaterialsUseCase

__all__ = [
    # DTOs
    "ImportMaterialsRequest",
    "ImportMaterialsResponse",
    "ImportStatsResponse",
    # Factories
    "get_catalog_store",
    "get_conflict_detector",
    "get_row_normalizer",
    "reset_services",
    # Use cases
    "ImportMaterialsUseCase",
]
