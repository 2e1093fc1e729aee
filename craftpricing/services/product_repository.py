"""Persistence of saved products.

Records cross this boundary with the camelCase field names the stored data
has always used (``productId``, ``laborCost``, ``sellingPrice``...).
"""
from __future__ import annotations

import logging
from typing import Mapping

from django.core.exceptions import ValidationError

from ..models import Product
from .validation import describe_validation_error, require_datetime, require_number

logger = logging.getLogger(__name__)


class ProductNotFound(Exception):
    """Raised when no saved product has the requested id."""


class ProductValidationError(Exception):
    """Raised when a product record is malformed."""


TEXT_FIELDS = {
    "productId": "product_id",
    "productName": "product_name",
    "customName": "custom_name",
    "productDescription": "product_description",
    "customDescription": "custom_description",
    "productImage": "product_image",
    "materialsList": "materials_list",
}

NUMBER_FIELDS = {
    "quantity": "quantity",
    "laborCost": "labor_cost",
    "additionalCost": "additional_cost",
    "totalCost": "total_cost",
    "unitCost": "unit_cost",
    "sellingPrice": "selling_price",
    "unitPrice": "unit_price",
    "profitMargin": "profit_margin",
    "profitAmount": "profit_amount",
}


def _clean_materials(value: object) -> list[dict]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ProductValidationError("materials must be a list of objects.")

    cleaned: list[dict] = []
    for index, item in enumerate(value):
        entry = dict(item)
        for key in ("price", "quantity"):
            if entry.get(key) is not None:
                entry[key] = require_number(entry[key], f"materials[{index}].{key}", ProductValidationError)
        if entry.get("price") is not None and entry["price"] < 0:
            raise ProductValidationError(f"materials[{index}].price cannot be negative.")
        if entry.get("quantity") is not None and entry["quantity"] <= 0:
            raise ProductValidationError(f"materials[{index}].quantity must be greater than 0.")
        cleaned.append(entry)
    return cleaned


def _field_values(record: Mapping[str, object]) -> dict[str, object]:
    if not isinstance(record, Mapping):
        raise ProductValidationError("Product record must be an object.")

    values: dict[str, object] = {}
    for key, field_name in TEXT_FIELDS.items():
        raw = record.get(key)
        if raw is not None:
            values[field_name] = str(raw)

    for key, field_name in NUMBER_FIELDS.items():
        raw = record.get(key)
        if raw is not None and raw != "":
            values[field_name] = require_number(raw, key, ProductValidationError)
    if values.get("quantity", 1) <= 0:
        raise ProductValidationError("quantity must be greater than 0.")

    photo = record.get("productPhoto")
    values["product_photo"] = str(photo) if photo else None

    materials = _clean_materials(record.get("materials"))
    values["materials"] = materials

    count = record.get("materialsCount")
    values["materials_count"] = (
        int(require_number(count, "materialsCount", ProductValidationError))
        if count is not None
        else len(materials)
    )
    if "materials_list" not in values:
        values["materials_list"] = ", ".join(str(item.get("name") or "") for item in materials)

    if record.get("date"):
        values["date"] = require_datetime(record["date"], "date", ProductValidationError)

    return values


def _save(product: Product) -> Product:
    try:
        product.full_clean()
    except ValidationError as exc:
        raise ProductValidationError(describe_validation_error(exc)) from exc
    product.save()
    return product


def product_to_record(product: Product) -> dict[str, object]:
    """Serialize a product with its stored field names; ``date`` as ISO-8601."""
    record: dict[str, object] = {"id": product.pk}
    for key, field_name in TEXT_FIELDS.items():
        record[key] = getattr(product, field_name)
    record["productPhoto"] = product.product_photo
    record["materials"] = list(product.materials or [])
    record["materialsCount"] = product.materials_count
    for key, field_name in NUMBER_FIELDS.items():
        record[key] = getattr(product, field_name)
    record["date"] = product.date.isoformat()
    return record


def _get(product_id: object) -> Product:
    try:
        return Product.objects.get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError) as exc:
        raise ProductNotFound(f"Product {product_id} not found") from exc


def list_products() -> list[dict[str, object]]:
    return [product_to_record(product) for product in Product.objects.all()]


def get_product(product_id: object) -> dict[str, object]:
    return product_to_record(_get(product_id))


def create_product(record: Mapping[str, object]) -> dict[str, object]:
    product = _save(Product(**_field_values(record)))
    logger.info("Saved product %s (%s)", product.pk, product)
    return product_to_record(product)


def update_product(product_id: object, record: Mapping[str, object]) -> dict[str, object]:
    """Replace every field of an existing product with ``record``.

    Fields missing from ``record`` go back to their defaults.
    """

    product = _get(product_id)
    replacement = Product(**_field_values(record))
    for field in Product._meta.concrete_fields:
        if not field.primary_key:
            setattr(product, field.attname, getattr(replacement, field.attname))
    _save(product)
    logger.info("Replaced product %s (%s)", product.pk, product)
    return product_to_record(product)


def delete_product(product_id: object) -> None:
    product = _get(product_id)
    product.delete()
    logger.info("Deleted product %s", product_id)


__all__ = [
    "ProductNotFound",
    "ProductValidationError",
    "product_to_record",
    "list_products",
    "get_product",
    "create_product",
    "update_product",
    "delete_product",
]
