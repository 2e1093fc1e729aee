"""Persistence of catalog materials."""
from __future__ import annotations

import logging
from typing import Iterable, Mapping

from django.core.exceptions import ValidationError
from django.db import transaction

from ..models import Material
from .validation import describe_validation_error, require_number

logger = logging.getLogger(__name__)


class MaterialNotFound(Exception):
    """Raised when no catalog material has the requested id."""


class MaterialValidationError(Exception):
    """Raised when a material record is malformed."""


EDITABLE_FIELDS = ("name", "price", "unit", "category", "image")


def material_to_record(material: Material) -> dict[str, object]:
    return {
        "id": material.pk,
        "name": material.name,
        "price": material.price,
        "unit": material.unit,
        "category": material.category,
        "image": material.image,
        "createdAt": material.created_at.isoformat(),
    }


def _apply(material: Material, record: Mapping[str, object]) -> Material:
    if not isinstance(record, Mapping):
        raise MaterialValidationError("Material record must be an object.")

    for field_name in EDITABLE_FIELDS:
        if field_name not in record:
            continue
        value = record[field_name]
        if field_name == "price":
            if value is None or value == "":
                raise MaterialValidationError("Please provide a price")
            value = require_number(value, "price", MaterialValidationError)
        elif field_name == "image":
            value = str(value) if value else None
        elif value is None:
            continue
        else:
            value = str(value).strip()
        setattr(material, field_name, value)

    if not material.name:
        raise MaterialValidationError("Please provide a name for the material")
    if material.price is None:
        raise MaterialValidationError("Please provide a price")

    try:
        material.full_clean()
    except ValidationError as exc:
        raise MaterialValidationError(describe_validation_error(exc)) from exc
    material.save()
    return material


def _get(material_id: object) -> Material:
    try:
        return Material.objects.get(pk=material_id)
    except (Material.DoesNotExist, ValueError, TypeError) as exc:
        raise MaterialNotFound("Material not found") from exc


def list_materials() -> list[dict[str, object]]:
    return [material_to_record(material) for material in Material.objects.all()]


def create_material(record: Mapping[str, object]) -> dict[str, object]:
    material = _apply(Material(), record)
    logger.info("Created material %s (%s)", material.pk, material.name)
    return material_to_record(material)


def create_materials(records: Iterable[Mapping[str, object]]) -> list[dict[str, object]]:
    """Create several materials; nothing is stored if any record is invalid."""
    with transaction.atomic():
        return [create_material(record) for record in records]


def update_material(material_id: object, record: Mapping[str, object]) -> dict[str, object]:
    """Update the fields present in ``record``; others keep their values."""
    material = _apply(_get(material_id), record)
    logger.info("Updated material %s (%s)", material.pk, material.name)
    return material_to_record(material)


def delete_material(material_id: object) -> None:
    _get(material_id).delete()
    logger.info("Deleted material %s", material_id)


__all__ = [
    "MaterialNotFound",
    "MaterialValidationError",
    "material_to_record",
    "list_materials",
    "create_material",
    "create_materials",
    "update_material",
    "delete_material",
]
