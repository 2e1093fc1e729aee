"""Field coercion shared by the record repositories."""
from __future__ import annotations

import datetime as dt
import math
from typing import Type

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_datetime


def require_number(value: object, field_name: str, error_cls: Type[Exception]) -> float:
    """Return ``value`` as a finite float or raise ``error_cls``."""
    if isinstance(value, bool):
        raise error_cls(f"{field_name} must be a number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise error_cls(f"{field_name} must be a number.") from exc
    if not math.isfinite(number):
        raise error_cls(f"{field_name} must be a finite number.")
    return number


def require_datetime(value: object, field_name: str, error_cls: Type[Exception]) -> dt.datetime:
    """Accept a datetime or an ISO-8601 string; naive values are taken as local time."""
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
        except ValueError as exc:
            raise error_cls(f"{field_name} is not a valid date.") from exc
        if parsed is None:
            raise error_cls(f"{field_name} is not a valid date.")
    else:
        raise error_cls(f"{field_name} is not a valid date.")

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a model validation error into one readable line."""
    if hasattr(exc, "message_dict"):
        return "; ".join(
            f"{field}: {' '.join(messages)}" for field, messages in sorted(exc.message_dict.items())
        )
    return " ".join(exc.messages)
