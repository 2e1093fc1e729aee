from __future__ import annotations

from django import template

from ..pricing_engine import to_number

register = template.Library()


@register.filter
def money(value, places=2):
    """Format a number with thousands separators, e.g. ``1,234.50``."""
    try:
        places = int(places)
    except (TypeError, ValueError):
        places = 2
    return f"{to_number(value):,.{places}f}"


@register.filter
def percent(value):
    return f"{to_number(value):.1f}%"

