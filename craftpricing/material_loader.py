"""Utilities for loading catalog materials from CSV files."""
from __future__ import annotations

import csv
import io
import math
from typing import Iterable, List

from .catalog import DEFAULT_UNIT, infer_category


class MaterialCsvError(Exception):
    """Raised when a materials CSV file cannot be parsed."""


REQUIRED_COLUMNS = {"name", "price"}


def _normalize_file(file_obj: Iterable[bytes] | Iterable[str]) -> io.StringIO:
    """Return a text stream for the uploaded file."""
    if hasattr(file_obj, "read"):
        content = file_obj.read()
    else:
        content = b"".join(file_obj)  # type: ignore[arg-type]

    if isinstance(content, bytes):
        text = content.decode("utf-8-sig")
    else:
        text = content

    return io.StringIO(text)


def load_materials_from_csv(file_obj: Iterable[bytes] | Iterable[str]) -> List[dict[str, object]]:
    """Parse catalog materials from a CSV upload.

    The CSV file must include ``name`` and ``price`` headers. ``id``,
    ``unit``, ``category`` and ``image`` are optional; a missing category is
    inferred from the id prefix.
    """

    text_stream = _normalize_file(file_obj)
    reader = csv.DictReader(text_stream)

    if reader.fieldnames is None or not REQUIRED_COLUMNS.issubset({name.strip() for name in reader.fieldnames}):
        raise MaterialCsvError("CSV is missing required columns: name, price")

    materials: list[dict[str, object]] = []
    for line_number, row in enumerate(reader, start=2):
        row = {key.strip(): (value or "").strip() for key, value in row.items() if key is not None}

        name = row.get("name", "")
        if not name:
            raise MaterialCsvError(f"Row {line_number}: name is required")

        try:
            price = float(row.get("price", ""))
        except ValueError as exc:
            raise MaterialCsvError(f"Row {line_number}: price must be a number") from exc
        if not math.isfinite(price) or price < 0:
            raise MaterialCsvError(f"Row {line_number}: price must be a non-negative number")

        materials.append(
            {
                "name": name,
                "price": price,
                "unit": row.get("unit") or DEFAULT_UNIT,
                "category": row.get("category") or infer_category(row.get("id")),
                "image": row.get("image") or None,
            }
        )

    if not materials:
        raise MaterialCsvError("CSV contains no material rows")

    return materials


__all__ = ["MaterialCsvError", "load_materials_from_csv"]
