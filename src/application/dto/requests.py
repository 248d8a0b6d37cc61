"""Request DTOs for the import use case.

Pydantic v2 models validated before a run starts.
"""

from pydantic import BaseModel, Field


class ImportMaterialsRequest(BaseModel):
    """A supplier price list to merge into the catalog.

    Options left as None fall back to ``ImportSettings``.
    """

    content: bytes = Field(..., description="Raw CSV or XLSX file content")
    filename: str | None = Field(
        default=None,
        description="Original filename, used to pick the reader",
        examples=["prices.csv", "listino.xlsx"],
    )
    ask_confirm: bool | None = Field(
        default=None,
        description="Ask the operator before writing; False resolves automatically",
    )
    exclusive_default: bool | None = Field(
        default=None,
        description="Keep a single default record per material name",
    )
