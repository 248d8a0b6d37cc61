"""Application use cases."""

from src.application.use_cases.import_materials import ImportMaterialsUseCase

__all__ = ["ImportMaterialsUseCase"]
