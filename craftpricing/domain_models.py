"""Domain models for pricing inputs."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PricingMode(str, Enum):
    SELLING_PRICE = "selling"
    MARGIN = "margin"


class MarginKind(str, Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


@dataclass(frozen=True)
class ProductType:
    id: str
    title: str
    description: str
    image: str


@dataclass
class MaterialLine:
    id: str
    name: str
    unit_price: float
    quantity: float = 1
    unit: str = "per piece"
    category: str = "beads"
    image: str | None = None

    @property
    def line_cost(self) -> float:
        return self.unit_price * self.quantity

    def to_record(self) -> dict[str, object]:
        """Serialize using the stored ``materials[]`` field names."""
        return {
            "id": self.id,
            "name": self.name,
            "price": self.unit_price,
            "quantity": self.quantity,
            "unit": self.unit,
            "image": self.image,
            "category": self.category,
        }


@dataclass
class PricingInputs:
    materials: list[MaterialLine] = field(default_factory=list)
    unit_count: float | str | None = 1
    labor_charge: float | str | None = 0.0
    additional_charge: float | str | None = 0.0
    mode: PricingMode = PricingMode.SELLING_PRICE
    selling_price: float | str | None = None
    margin_value: float | str | None = None
    margin_kind: MarginKind = MarginKind.PERCENTAGE


@dataclass(frozen=True)
class PricingResult:
    materials_unit_cost: float
    total_cost: float
    unit_cost: float
    final_price: float
    unit_final_price: float
    gross_profit_amount: float
    gross_profit_percentage: float
    net_profit_amount: float
    net_profit_percentage: float

    def as_dict(self) -> dict[str, float]:
        return {
            "materialsUnitCost": self.materials_unit_cost,
            "totalCost": self.total_cost,
            "unitCost": self.unit_cost,
            "finalPrice": self.final_price,
            "unitFinalPrice": self.unit_final_price,
            "grossProfitAmount": self.gross_profit_amount,
            "grossProfitPercentage": self.gross_profit_percentage,
            "netProfitAmount": self.net_profit_amount,
            "netProfitPercentage": self.net_profit_percentage,
        }
