"""
Explicit input validation for workflow services.

Responsibility:
    Pure checks invoked by services before they open an atomic unit of work.
    Nothing here touches the database; cross-entity checks (product exists,
    supplier active) live in the services that own the lookup.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - ValidationError subclasses, each carrying the offending field.
"""

import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TypeVar
from uuid import UUID

from warehouse_kernel.exceptions import (
    DuplicateLineItemError,
    EmptyLineItemsError,
    InvalidQuantityError,
    ValidationError,
)

CUSTOMER_NAME_MIN = 2
CUSTOMER_NAME_MAX = 200
TASK_TITLE_MIN = 3
TASK_TITLE_MAX = 200
RECEIVING_NOTES_MAX = 1000
LEDGER_NOTE_MAX = 500
TASK_DESCRIPTION_MAX = 1000

_SKU_PATTERN = re.compile(r"^[A-Z0-9_-]+$")
_CENT = Decimal("0.01")

E = TypeVar("E", bound=Enum)


def require_line_items(product_ids: Iterable[UUID]) -> list[UUID]:
    """Reject empty item lists and repeated products.

    Returns the product ids in request order.
    """
    ids = list(product_ids)
    if not ids:
        raise EmptyLineItemsError()
    seen: set[UUID] = set()
    for product_id in ids:
        if product_id in seen:
            raise DuplicateLineItemError(str(product_id))
        seen.add(product_id)
    return ids


def require_positive_quantity(quantity: int, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity, field=field)
    return quantity


def require_non_negative_quantity(quantity: int, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantityError(quantity, field=field)
    return quantity


def require_text(
    value: str | None,
    field: str,
    min_length: int = 1,
    max_length: int | None = None,
) -> str:
    """Trim and length-check a required text field."""
    text = (value or "").strip()
    if len(text) < min_length:
        raise ValidationError(
            f"{field} must be at least {min_length} characters", field=field
        )
    if max_length is not None and len(text) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters", field=field
        )
    return text


def optional_text(value: str | None, field: str, max_length: int) -> str | None:
    """Trim an optional text field; blank becomes None."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters", field=field
        )
    return text


def normalize_sku(sku: str) -> str:
    normalized = (sku or "").strip().upper()
    if not _SKU_PATTERN.match(normalized):
        raise ValidationError(
            "SKU must contain only letters, numbers, hyphens and underscores",
            field="sku",
        )
    return normalized


def normalize_location_segment(value: str, field: str) -> str:
    segment = require_text(value, field, max_length=50)
    if "-" in segment:
        # full_path joins segments with "-", so they must not contain it
        raise ValidationError(f"{field} must not contain '-'", field=field)
    return segment


def require_money(amount: Decimal | int | str, field: str) -> Decimal:
    value = Decimal(str(amount))
    if value < 0:
        raise InvalidQuantityError(value, field=field)
    return value


def line_subtotal(unit_amount: Decimal, quantity: int) -> Decimal:
    """unit_amount * quantity rounded half-up to cents."""
    return (Decimal(unit_amount) * quantity).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def require_choice(choices: type[E], value: E | str, field: str) -> E:
    """Coerce ``value`` to a member of ``choices`` or raise ValidationError."""
    try:
        return choices(value)
    except ValueError:
        allowed = ", ".join(member.value for member in choices)
        raise ValidationError(
            f"{field} must be one of: {allowed} (got {value!r})", field=field
        ) from None
