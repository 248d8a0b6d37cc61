"""
Price-list row normalization.

Parses CSV/XLSX supplier price lists (or any iterable of mappings) into
ImportRow values. Headers are matched case/whitespace-insensitively
against an alias table; values are coerced to text, numbers and booleans.
"""

import csv
import io
import re
import zipfile
from collections.abc import Iterable, Mapping
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from src.config import get_logger
from src.core.entities.catalog_import import ImportRow
from src.core.exceptions import MalformedInputError

logger = get_logger(__name__)


# ─── Header aliases ───────────────────────────────────────────

HEADER_ALIASES: dict[str, str] = {
    "name": "name",
    "ingredient": "name",
    "ingrediente": "name",
    "material": "name",
    "nome": "name",
    "category": "category",
    "categoria": "category",
    "brand": "brand",
    "marca": "brand",
    "supplier": "supplier",
    "fornitore": "supplier",
    "uom": "uom",
    "unit": "uom",
    "unit of measure": "uom",
    "um": "uom",
    "packaging size": "package_qty",
    "packaging_size": "package_qty",
    "package size": "package_qty",
    "package qty": "package_qty",
    "package_qty": "package_qty",
    "package cost": "package_price",
    "package_cost": "package_price",
    "package price": "package_price",
    "package_price": "package_price",
    "prezzo": "package_price",
    "unit cost": "unit_cost",
    "unit_cost": "unit_cost",
    "vat rate (%)": "vat_rate_percent",
    "vat rate": "vat_rate_percent",
    "vat_rate_percent": "vat_rate_percent",
    "vat": "vat_rate_percent",
    "iva": "vat_rate_percent",
    "notes": "notes",
    "note": "notes",
    "fooddrink": "is_food_drink",
    "food/drink": "is_food_drink",
    "food / drink": "is_food_drink",
    "food": "is_food_drink",
    "alimentare": "is_food_drink",
    "is_food_drink": "is_food_drink",
    "default": "is_default",
    "is default": "is_default",
    "predefinito": "is_default",
    "is_default": "is_default",
}

_TRUE_TOKENS = {"1", "true", "yes", "y", "si", "s", "vero", "ok", "✓", "x"}
_FALSE_TOKENS = {"0", "false", "no", "n", "falso"}

_WORD_START = re.compile(r"\b([^\W\d_]+)")


def normalize_header(header: Any) -> str:
    """'\\ufeffPackage   Cost ' -> 'package cost'."""
    text = str(header or "").lstrip("﻿").lower()
    return re.sub(r"\s+", " ", text).strip()


def canonical_field(header: Any) -> str:
    """Map a raw header to its canonical field; unknown headers pass through."""
    key = normalize_header(header)
    return HEADER_ALIASES.get(key, key)


def title_case(value: str) -> str:
    """'  extra VIRGIN oil ' -> 'Extra Virgin Oil'."""
    text = value.strip().lower()
    return _WORD_START.sub(lambda m: m.group(1)[0].upper() + m.group(1)[1:], text)


def parse_number(raw: Any) -> float | None:
    """
    Coerce a cell to a float.

    Whitespace and thousands commas are removed; anything non-numeric
    becomes None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    text = re.sub(r"\s+", "", str(raw)).replace(",", "")
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def parse_bool(raw: Any) -> bool | None:
    """Coerce a yes/no cell (English and Italian tokens)."""
    if isinstance(raw, bool):
        return raw
    text = str(raw if raw is not None else "").strip().lower()
    if not text:
        return None
    if text in _TRUE_TOKENS:
        return True
    if text in _FALSE_TOKENS:
        return False
    return None


def _text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip()


class RowNormalizer:
    """
    Turns tabular input into ImportRow values.

    Rows lacking all of name, category and supplier are dropped.
    """

    def __init__(self, title_case_names: bool = True, encoding: str = "utf-8-sig") -> None:
        self._title_case = title_case_names
        self._encoding = encoding

    # ─── Entry points ─────────────────────────────────────────

    def parse_bytes(self, data: bytes, filename: str | None = None) -> list[ImportRow]:
        """
        Parse a CSV or XLSX file.

        Raises:
            MalformedInputError: If the file cannot be read as a table or
                contains no usable rows.
        """
        if filename and filename.lower().endswith((".xlsx", ".xlsm")):
            records = self._read_excel(data, filename)
        else:
            records = self._read_csv(data, filename)
        return self.normalize_records(records, filename=filename)

    def normalize_records(
        self,
        records: Iterable[Mapping[str, Any]],
        filename: str | None = None,
    ) -> list[ImportRow]:
        """Normalize already-tabular records keyed by raw header names."""
        rows: list[ImportRow] = []
        dropped = 0
        for index, record in enumerate(records, start=1):
            fields = {canonical_field(k): v for k, v in record.items() if k is not None}
            row = self._to_row(fields, index)
            if not (row.name or row.category_name or row.supplier_name):
                dropped += 1
                continue
            rows.append(row)

        if not rows:
            raise MalformedInputError("no usable rows", filename=filename)

        logger.info("price_list_normalized", rows=len(rows), dropped=dropped, filename=filename)
        return rows

    # ─── Readers ──────────────────────────────────────────────

    def _read_csv(self, data: bytes, filename: str | None) -> list[dict[str, Any]]:
        try:
            text = data.decode(self._encoding)
        except UnicodeDecodeError as e:
            raise MalformedInputError(f"not valid {self._encoding} text", filename) from e

        try:
            dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
        except csv.Error:
            dialect = csv.excel

        try:
            reader = csv.DictReader(io.StringIO(text), dialect=dialect)
            return [r for r in reader if any(_text(v) for v in r.values() if not isinstance(v, list))]
        except csv.Error as e:
            raise MalformedInputError(str(e), filename) from e

    def _read_excel(self, data: bytes, filename: str | None) -> list[dict[str, Any]]:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise MalformedInputError(f"not a readable workbook ({e})", filename) from e

        try:
            ws = wb.active
            rows_iter = ws.iter_rows(values_only=True)
            header_values = next(rows_iter, None)
            if not header_values:
                return []
            headers = [str(h).strip() if h is not None else "" for h in header_values]

            records: list[dict[str, Any]] = []
            for values in rows_iter:
                if not values or all(v is None or _text(v) == "" for v in values):
                    continue
                records.append(
                    {h: values[i] if i < len(values) else None for i, h in enumerate(headers) if h}
                )
            return records
        finally:
            wb.close()

    # ─── Coercion ─────────────────────────────────────────────

    def _name(self, raw: Any) -> str:
        text = _text(raw)
        return title_case(text) if self._title_case and text else text

    def _to_row(self, fields: dict[str, Any], index: int) -> ImportRow:
        brand = self._name(fields.get("brand"))
        notes = _text(fields.get("notes"))
        return ImportRow(
            row_number=index,
            name=self._name(fields.get("name")),
            brand=brand or None,
            category_name=self._name(fields.get("category")),
            supplier_name=self._name(fields.get("supplier")),
            uom_token=_text(fields.get("uom")),
            package_qty=parse_number(fields.get("package_qty")),
            package_price=parse_number(fields.get("package_price")),
            unit_cost=parse_number(fields.get("unit_cost")),
            vat_rate_percent=parse_number(fields.get("vat_rate_percent")),
            notes=notes or None,
            is_food_drink=parse_bool(fields.get("is_food_drink")),
            is_default=parse_bool(fields.get("is_default")),
        )
