"""Staging store for hand-offs between pages.

Any mutable mapping works as the store; the views pass ``request.session``.
Values are kept JSON-friendly so session serializers accept them.
"""
from __future__ import annotations

from typing import List, MutableMapping

from .domain_models import MaterialLine
from .selection import material_line_from_record

EDIT_KEY = "productToEdit"


def selection_key(product_type_id: str) -> str:
    return f"materials_{product_type_id}"


def stage_materials(
    store: MutableMapping[str, object], product_type_id: str, materials: List[MaterialLine]
) -> None:
    """Remember the selection for a product type; empty selections are not written."""
    if materials:
        store[selection_key(product_type_id)] = [line.to_record() for line in materials]


def get_staged_materials(
    store: MutableMapping[str, object], product_type_id: str
) -> list[MaterialLine]:
    """Return the staged selection, or an empty list if nothing was staged."""
    raw = store.get(selection_key(product_type_id)) or []
    return [material_line_from_record(item) for item in raw]  # type: ignore[union-attr]


def clear_staged_materials(store: MutableMapping[str, object], product_type_id: str) -> None:
    store.pop(selection_key(product_type_id), None)


def stage_product_for_edit(store: MutableMapping[str, object], record: dict) -> None:
    """Queue a saved product record to be opened in the calculator."""
    store[EDIT_KEY] = record


def pop_product_for_edit(store: MutableMapping[str, object]) -> dict | None:
    """Return the queued record and remove it, so it is only opened once."""
    return store.pop(EDIT_KEY, None)  # type: ignore[return-value]
