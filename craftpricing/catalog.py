"""Product types offered by the shop and material category rules."""
from __future__ import annotations

from .domain_models import ProductType

DEFAULT_CATEGORY = "beads"
DEFAULT_UNIT = "per piece"

PRODUCT_TYPES: list[ProductType] = [
    ProductType(
        id="bracelets",
        title="Bracelets",
        description="Elegant handcrafted bracelets that wrap your wrist in beauty and charm. Perfect for any occasion.",
        image="💫",
    ),
    ProductType(
        id="rings",
        title="Rings",
        description="Delicate rings adorned with carefully selected beads, symbolizing love and elegance.",
        image="💍",
    ),
    ProductType(
        id="necklace",
        title="Necklace",
        description="Stunning necklaces that grace your neckline with timeless elegance and sophistication.",
        image="✨",
    ),
    ProductType(
        id="phone-charms",
        title="Phone Charms",
        description="Adorable charms to personalize your phone, adding a touch of your unique style.",
        image="📱",
    ),
    ProductType(
        id="key-chains",
        title="Key Chains",
        description="Functional and beautiful key chains that keep your keys organized in style.",
        image="🔑",
    ),
    ProductType(
        id="earrings",
        title="Earrings",
        description="Dazzling earrings that frame your face with elegance and capture every moment beautifully.",
        image="💎",
    ),
]

# Material id prefix -> category
CATEGORY_PREFIXES = {
    "bead-": "beads",
    "thread-": "threads",
    "finding-": "findings",
    "accessory-": "accessories",
}


def get_product_type(product_type_id: str) -> ProductType | None:
    """Return the product type with the given id, or None if unknown."""
    for product_type in PRODUCT_TYPES:
        if product_type.id == product_type_id:
            return product_type
    return None


def infer_category(material_id: str | None) -> str:
    if not material_id:
        return DEFAULT_CATEGORY
    for prefix, category in CATEGORY_PREFIXES.items():
        if material_id.startswith(prefix):
            return category
    return DEFAULT_CATEGORY
