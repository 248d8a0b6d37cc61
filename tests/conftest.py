"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest

from src.application.services import reset_services
from src.config import reset_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch) -> Generator[None, None, None]:
    """Point storage at a temporary directory and reset singletons."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    reset_services()
    yield
    reset_settings()
    reset_services()


@pytest.fixture
def sample_csv() -> bytes:
    """A small price list with aliased headers."""
    return (
        "Ingredient,Brand,Supplier,Category,UOM,Packaging Size,Package Cost,VAT\n"
        "tomato,,acme foods,veg,kg,5,12.4,10\n"
        "olive oil,oleo,acme foods,pantry,l,1,9,22\n"
        "eggs,,farm co,dairy,pz,6,3,4\n"
    ).encode()
