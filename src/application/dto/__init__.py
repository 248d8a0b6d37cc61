"""Data transfer objects for the application layer."""

from src.application.dto.requests import ImportMaterialsRequest
from src.application.dto.responses import ImportMaterialsResponse, ImportStatsResponse

__all__ = [
    "ImportMaterialsRequest",
    "ImportMaterialsResponse",
    "ImportStatsResponse",
]
