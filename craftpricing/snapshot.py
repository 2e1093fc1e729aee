"""Conversion between pricing inputs/results and saved product records."""
from __future__ import annotations

from typing import Mapping

from django.utils import timezone

from .domain_models import PricingInputs, PricingMode, PricingResult, ProductType
from .pricing_engine import normalize_unit_count, to_number
from .selection import material_line_from_record


def build_product_record(
    product_type: ProductType,
    inputs: PricingInputs,
    result: PricingResult,
    *,
    custom_name: str = "",
    custom_description: str = "",
    product_photo: str | None = None,
) -> dict[str, object]:
    """Return the record written to the product store.

    ``profitMargin`` and ``profitAmount`` hold the net figures, with labor
    counted as profit.
    """

    materials = list(inputs.materials)
    description = custom_description or product_type.description
    return {
        "productId": product_type.id,
        "productName": product_type.title,
        "customName": custom_name or product_type.title,
        "productDescription": description,
        "customDescription": description,
        "productImage": product_type.image,
        "productPhoto": product_photo or None,
        "materials": [line.to_record() for line in materials],
        "materialsCount": len(materials),
        "materialsList": ", ".join(line.name for line in materials),
        "quantity": normalize_unit_count(inputs.unit_count),
        "laborCost": to_number(inputs.labor_charge),
        "additionalCost": to_number(inputs.additional_charge),
        "totalCost": result.total_cost,
        "unitCost": result.unit_cost,
        "sellingPrice": result.final_price,
        "unitPrice": result.unit_final_price,
        "profitMargin": result.net_profit_percentage,
        "profitAmount": result.net_profit_amount,
        "date": timezone.now(),
    }


def inputs_from_record(record: Mapping[str, object]) -> PricingInputs:
    """Rebuild editable inputs from a saved record.

    Editing always reopens in selling-price mode with the stored price, the
    stored margin sitting alongside it.
    """

    raw_materials = record.get("materials") or []
    return PricingInputs(
        materials=[material_line_from_record(item) for item in raw_materials],  # type: ignore[union-attr]
        unit_count=record.get("quantity") or 1,  # type: ignore[arg-type]
        labor_charge=record.get("laborCost") or "",  # type: ignore[arg-type]
        additional_charge=record.get("additionalCost") or "",  # type: ignore[arg-type]
        mode=PricingMode.SELLING_PRICE,
        selling_price=record.get("sellingPrice") or "",  # type: ignore[arg-type]
        margin_value=record.get("profitMargin") or "",  # type: ignore[arg-type]
    )
