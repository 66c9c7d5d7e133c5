from __future__ import annotations

from typing import Any


# Largest unit price accepted for a product (KRW)
MAX_PRICE = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for request payloads.

    Accepts ints and plain digit strings (optional leading minus). Rejects
    bools, floats, decimals and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_non_negative_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be zero or greater")
    return number


def parse_cart_payload(lines: Any) -> dict[int, int]:
    """
    Turn a JSON list of {"product_id", "quantity"} objects into a cart.

    Duplicate product lines are merged. Lines whose quantity is zero are
    dropped so the cart never carries empty entries.
    """
    if lines is None:
        return {}
    if not isinstance(lines, list):
        raise ValidationError("cart must be a list of lines")

    cart: dict[int, int] = {}
    for i, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"cart[{i}] must be an object")
        if "product_id" not in line or "quantity" not in line:
            raise ValidationError(f"cart[{i}] requires product_id and quantity")
        product_id = coerce_int(line["product_id"], f"cart[{i}].product_id")
        quantity = coerce_non_negative_int(line["quantity"], f"cart[{i}].quantity")
        if quantity == 0:
            continue
        cart[product_id] = cart.get(product_id, 0) + quantity
    return cart


def cart_to_payload(cart: dict[int, int]) -> list[dict]:
    return [{"product_id": pid, "quantity": qty} for pid, qty in cart.items()]
