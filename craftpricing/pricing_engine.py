"""Core pricing calculations."""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable

from .domain_models import (
    MarginKind,
    MaterialLine,
    PricingInputs,
    PricingMode,
    PricingResult,
)

# Minimum change before a synced field is overwritten; stops the
# price <-> margin updates from feeding each other forever.
SYNC_THRESHOLD = 0.01
SYNC_DECIMALS = 2


def to_number(value: object, default: float = 0.0) -> float:
    """Parse a user-entered number, falling back to ``default``.

    Empty strings, ``None``, text that is not a number, NaN and infinities
    all fall back. Zero also falls back, matching how the form treats an
    empty or zero field.
    """

    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0:
        return default
    return number


def normalize_unit_count(value: object) -> float:
    count = to_number(value, default=1.0)
    return count if count > 0 else 1.0


def normalize_mode(value: object) -> PricingMode:
    try:
        return PricingMode(value)
    except ValueError:
        return PricingMode.SELLING_PRICE


def normalize_margin_kind(value: object) -> MarginKind:
    try:
        return MarginKind(value)
    except ValueError:
        return MarginKind.PERCENTAGE


def compute_materials_unit_cost(materials: Iterable[MaterialLine]) -> float:
    """Cost of the materials going into one unit of the product."""

    return sum(
        (to_number(item.unit_price) * to_number(item.quantity) for item in materials),
        0.0,
    )


def compute_total_cost(inputs: PricingInputs) -> float:
    """Materials, labor and additional charges for the whole batch."""

    unit_cost = (
        compute_materials_unit_cost(inputs.materials)
        + to_number(inputs.labor_charge)
        + to_number(inputs.additional_charge)
    )
    return unit_cost * normalize_unit_count(inputs.unit_count)


def compute_cost_basis(inputs: PricingInputs) -> float:
    """Labor-excluded cost used when syncing selling price and margin."""

    return (
        compute_materials_unit_cost(inputs.materials) + to_number(inputs.additional_charge)
    ) * normalize_unit_count(inputs.unit_count)


def _price_for_margin(cost: float, margin: float, kind: MarginKind) -> float:
    if kind is MarginKind.AMOUNT:
        return cost + margin
    # margin is a share of the selling price, so it cannot reach 100%
    if 0 < margin < 100:
        return cost / (1 - margin / 100)
    return cost


def compute_final_price(inputs: PricingInputs, total_cost: float | None = None) -> float:
    """Selling price shown for the batch under the selected pricing mode."""

    if normalize_mode(inputs.mode) is PricingMode.SELLING_PRICE:
        return to_number(inputs.selling_price)

    if total_cost is None:
        total_cost = compute_total_cost(inputs)
    return _price_for_margin(
        total_cost,
        to_number(inputs.margin_value),
        normalize_margin_kind(inputs.margin_kind),
    )


def _percentage_of(amount: float, price: float) -> float:
    return amount / price * 100 if price else 0.0


def compute_pricing(inputs: PricingInputs) -> PricingResult:
    """Compute costs, price and both profit figures for the given inputs."""

    unit_count = normalize_unit_count(inputs.unit_count)
    materials_unit_cost = compute_materials_unit_cost(inputs.materials)
    labor = to_number(inputs.labor_charge)
    additional = to_number(inputs.additional_charge)

    total_cost = (materials_unit_cost + labor + additional) * unit_count
    final_price = compute_final_price(inputs, total_cost=total_cost)

    gross_profit = final_price - total_cost
    # labor is the maker's own pay, so it counts as profit when reporting net
    net_profit = gross_profit + labor * unit_count

    return PricingResult(
        materials_unit_cost=materials_unit_cost,
        total_cost=total_cost,
        unit_cost=total_cost / unit_count,
        final_price=final_price,
        unit_final_price=final_price / unit_count,
        gross_profit_amount=gross_profit,
        gross_profit_percentage=_percentage_of(gross_profit, final_price),
        net_profit_amount=net_profit,
        net_profit_percentage=_percentage_of(net_profit, final_price),
    )


def price_from_margin(inputs: PricingInputs) -> float:
    """Selling price reaching ``margin_value`` on the labor-excluded basis."""

    return _price_for_margin(
        compute_cost_basis(inputs),
        to_number(inputs.margin_value),
        normalize_margin_kind(inputs.margin_kind),
    )


def margin_from_price(inputs: PricingInputs) -> float | None:
    """Margin percentage of ``selling_price`` over the labor-excluded basis.

    Returns ``None`` when there is no positive price or no cost to compare.
    """

    selling = to_number(inputs.selling_price)
    cost_basis = compute_cost_basis(inputs)
    if selling <= 0 or cost_basis <= 0:
        return None
    return (selling - cost_basis) / selling * 100


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def sync_selling_price(inputs: PricingInputs) -> PricingInputs:
    """Refresh ``selling_price`` after the margin changed.

    Only applies in margin mode with a margin entered, and only when the
    recomputed price moved by more than ``SYNC_THRESHOLD``.
    """

    if normalize_mode(inputs.mode) is not PricingMode.MARGIN or _is_blank(inputs.margin_value):
        return inputs

    calculated = price_from_margin(inputs)
    if abs(calculated - to_number(inputs.selling_price)) > SYNC_THRESHOLD:
        return replace(inputs, selling_price=round(calculated, SYNC_DECIMALS))
    return inputs


def sync_margin(inputs: PricingInputs) -> PricingInputs:
    """Refresh ``margin_value`` after the selling price changed."""

    if normalize_mode(inputs.mode) is not PricingMode.SELLING_PRICE or _is_blank(inputs.selling_price):
        return inputs

    calculated = margin_from_price(inputs)
    if calculated is None:
        return inputs
    if abs(calculated - to_number(inputs.margin_value)) > SYNC_THRESHOLD:
        return replace(inputs, margin_value=round(calculated, SYNC_DECIMALS))
    return inputs


def sync_inputs(inputs: PricingInputs) -> PricingInputs:
    """Apply whichever sync direction the current mode calls for."""

    if normalize_mode(inputs.mode) is PricingMode.MARGIN:
        return sync_selling_price(inputs)
    return sync_margin(inputs)


__all__ = [
    "SYNC_THRESHOLD",
    "to_number",
    "normalize_unit_count",
    "compute_materials_unit_cost",
    "compute_total_cost",
    "compute_cost_basis",
    "compute_final_price",
    "compute_pricing",
    "price_from_margin",
    "margin_from_price",
    "sync_selling_price",
    "sync_margin",
    "sync_inputs",
]
