from __future__ import annotations

from typing import IO, Iterable, Mapping

import pandas as pd

from ..pricing_engine import to_number

SORT_OPTIONS = ("date", "price", "name")

TABLE_COLUMNS = [
    "id",
    "productId",
    "name",
    "materialsCount",
    "quantity",
    "totalCost",
    "sellingPrice",
    "unitPrice",
    "profitAmount",
    "profitMargin",
    "date",
]


def display_name(record: Mapping[str, object]) -> str:
    return str(record.get("customName") or record.get("productName") or "")


def display_breakdown(record: Mapping[str, object]) -> dict[str, float]:
    """Recompute the cost figures shown for a saved product from its components.

    The stored totals are not trusted for display; materials, labor and
    additional charges are rebuilt per unit and scaled by the quantity.
    """

    final_price = to_number(record.get("sellingPrice")) or to_number(record.get("totalPrice"))
    quantity = to_number(record.get("quantity"), default=1.0)

    materials = record.get("materials") or []
    materials_per_unit = sum(
        to_number(item.get("price")) * to_number(item.get("quantity"))  # type: ignore[union-attr]
        for item in materials  # type: ignore[union-attr]
    )
    labor_per_unit = to_number(record.get("laborCost"))
    additional_per_unit = to_number(record.get("additionalCost"))

    total_materials = materials_per_unit * quantity
    total_labor = labor_per_unit * quantity
    total_additional = additional_per_unit * quantity
    total_cost = total_materials + total_labor + total_additional

    return {
        "finalPrice": final_price,
        "unitFinalPrice": to_number(record.get("unitPrice")) or final_price / quantity,
        "quantity": quantity,
        "materialsCostPerUnit": materials_per_unit,
        "totalMaterialsCost": total_materials,
        "totalLaborCost": total_labor,
        "totalAdditionalCost": total_additional,
        "totalCost": total_cost,
        "profitMarginAmount": final_price - (total_cost - total_labor),
    }


def _frame(records: Iterable[Mapping[str, object]]) -> pd.DataFrame:
    rows = []
    for record in records:
        rows.append(
            {
                "id": record.get("id"),
                "productId": record.get("productId"),
                "name": display_name(record),
                "materialsCount": record.get("materialsCount") or 0,
                "quantity": to_number(record.get("quantity"), default=1.0),
                "totalCost": to_number(record.get("totalCost")),
                "sellingPrice": to_number(record.get("sellingPrice")) or to_number(record.get("totalPrice")),
                "unitPrice": to_number(record.get("unitPrice")),
                "profitAmount": to_number(record.get("profitAmount")),
                "profitMargin": to_number(record.get("profitMargin")),
                "date": record.get("date"),
            }
        )
    frame = pd.DataFrame(rows, columns=TABLE_COLUMNS)
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce", utc=True)
    return frame


def product_table(
    records: Iterable[Mapping[str, object]], search: str | None = "", sort_by: str | None = "date"
) -> pd.DataFrame:
    """Filter saved products by name and order them for the listing page.

    ``sort_by`` is ``date`` (newest first), ``price`` (highest first) or
    ``name`` (alphabetical); anything else keeps the stored order.
    """

    frame = _frame(records)

    if search:
        frame = frame[frame["name"].str.lower().str.contains(search.lower(), regex=False)]

    if sort_by == "date":
        frame = frame.sort_values("date", ascending=False, kind="stable", na_position="last")
    elif sort_by == "price":
        frame = frame.sort_values("sellingPrice", ascending=False, kind="stable")
    elif sort_by == "name":
        frame = frame.sort_values("name", kind="stable", key=lambda names: names.str.lower())

    return frame.reset_index(drop=True)


def table_rows(frame: pd.DataFrame) -> list[dict[str, object]]:
    """JSON-friendly rows; dates rendered as ISO-8601."""
    rows = frame.copy()
    rows["date"] = rows["date"].map(lambda value: value.isoformat() if pd.notna(value) else None)
    rows = rows.astype(object).where(pd.notna(rows), None)
    return rows.to_dict(orient="records")


def export_products_csv(frame: pd.DataFrame, file_obj: IO[str]) -> None:
    frame.to_csv(file_obj, index=False, float_format="%.2f", date_format="%Y-%m-%d %H:%M")


__all__ = [
    "SORT_OPTIONS",
    "display_name",
    "display_breakdown",
    "product_table",
    "table_rows",
    "export_products_csv",
]
