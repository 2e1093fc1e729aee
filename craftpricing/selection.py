"""Operations on the list of materials picked for a product.

Selections are plain lists of :class:`MaterialLine`; every function returns
a new list and leaves its argument untouched.
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, Mapping

from .catalog import DEFAULT_CATEGORY, DEFAULT_UNIT, infer_category
from .domain_models import MaterialLine
from .pricing_engine import compute_materials_unit_cost, to_number


class SelectionError(ValueError):
    """Raised when submitted material lines cannot form a selection."""


def _line_quantity(raw: object) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return 1.0
    if isinstance(raw, bool):
        raise SelectionError("Material quantity must be a number.")
    try:
        quantity = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise SelectionError("Material quantity must be a number.") from exc
    if not math.isfinite(quantity):
        raise SelectionError("Material quantity must be a finite number.")
    return quantity


def material_line_from_record(record: Mapping[str, object]) -> MaterialLine:
    """Build a line from a stored or submitted ``materials[]`` entry.

    A missing quantity means 1. An explicit zero or negative quantity is kept
    so callers can drop the line; a negative price raises :class:`SelectionError`.
    """

    material_id = str(record.get("id") or record.get("_id") or "")
    unit_price = to_number(record.get("price"))
    if unit_price < 0:
        raise SelectionError(f"Material {material_id or '(no id)'} has a negative price.")
    return MaterialLine(
        id=material_id,
        name=str(record.get("name") or ""),
        unit_price=unit_price,
        quantity=_line_quantity(record.get("quantity")),
        unit=str(record.get("unit") or DEFAULT_UNIT),
        category=str(record.get("category") or infer_category(material_id)),
        image=record.get("image") or None,  # type: ignore[arg-type]
    )


def material_lines_from_records(records: Iterable[Mapping[str, object]]) -> list[MaterialLine]:
    """Build a selection from submitted lines.

    Every line needs an id and ids must not repeat. Lines whose quantity is
    zero or below are dropped.
    """

    lines: list[MaterialLine] = []
    seen: set[str] = set()
    for record in records:
        material = material_line_from_record(record)
        if not material.id:
            raise SelectionError("Every material needs an id.")
        if material.id in seen:
            raise SelectionError(f"Material {material.id} is listed more than once.")
        seen.add(material.id)
        if material.quantity > 0:
            lines.append(material)
    return lines


def toggle_material(selection: list[MaterialLine], material: MaterialLine) -> list[MaterialLine]:
    """Drop ``material`` if it is selected, otherwise add it with quantity 1."""

    if any(line.id == material.id for line in selection):
        return [line for line in selection if line.id != material.id]
    return [*selection, replace(material, quantity=1)]


def remove_material(selection: list[MaterialLine], material_id: str) -> list[MaterialLine]:
    return [line for line in selection if line.id != material_id]


def set_quantity(
    selection: list[MaterialLine], material_id: str, quantity: object
) -> list[MaterialLine]:
    """Change a line's quantity; zero, negative or blank removes the line."""

    new_quantity = to_number(quantity)
    if new_quantity <= 0:
        return remove_material(selection, material_id)
    return [
        replace(line, quantity=new_quantity) if line.id == material_id else line
        for line in selection
    ]


def selection_subtotal(selection: Iterable[MaterialLine]) -> float:
    return compute_materials_unit_cost(selection)


def filter_materials(materials: Iterable[MaterialLine], term: str | None) -> list[MaterialLine]:
    """Case-insensitive name search; a blank term keeps everything."""

    if not term:
        return list(materials)
    needle = term.lower()
    return [material for material in materials if needle in material.name.lower()]


def group_by_category(materials: Iterable[MaterialLine]) -> dict[str, list[MaterialLine]]:
    grouped: dict[str, list[MaterialLine]] = {}
    for material in materials:
        grouped.setdefault(material.category or DEFAULT_CATEGORY, []).append(material)
    return grouped


__all__ = [
    "SelectionError",
    "material_line_from_record",
    "material_lines_from_records",
    "toggle_material",
    "remove_material",
    "set_quantity",
    "selection_subtotal",
    "filter_materials",
    "group_by_category",
]
