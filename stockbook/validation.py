from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError


# Maximum amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999
MAX_QUANTITY = 1_000_000


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Accepts ints (not bools) and plain digit strings. Rejects floats,
    decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_bool(value: Any, field: str, *, default: bool = False) -> bool:
    """Strict boolean: a JSON bool or the strings "true"/"false"."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{field} must be true or false")


def require_int(
    value: Any,
    field: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
    default: int | None = None,
) -> int:
    if value is None:
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    number = coerce_int(value, field)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return number


def optional_int(value: Any, field: str, *, minimum: int | None = None) -> int | None:
    if value is None:
        return None
    return require_int(value, field, minimum=minimum, maximum=MAX_AMOUNT_CENTS)


def require_amount(value: Any, field: str, *, default: int | None = None) -> int:
    """Money field in cents, 0..MAX_AMOUNT_CENTS."""
    return require_int(value, field, minimum=0, maximum=MAX_AMOUNT_CENTS, default=default)


def require_positive_amount(value: Any, field: str) -> int:
    amount = require_int(value, field, maximum=MAX_AMOUNT_CENTS)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return amount


def require_choice(value: Any, field: str, choices: Iterable[str], *, default: str | None = None) -> str:
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    normalized = str(value).strip().upper().replace(" ", "_")
    allowed = sorted(choices)
    if normalized not in allowed:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {allowed}")
    return normalized


def clean_text(value: Any, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_length]


def normalize_order_items(items: Any) -> list[dict]:
    """
    Validate order line input.

    Each item: product_id (required unless is_custom), name, sku,
    unit_price_cents (optional for stock-linked items: defaults to the
    product price), quantity >= 1, is_custom.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        is_custom = coerce_bool(item.get("is_custom"), f"items[{index}].is_custom")
        product_id = None if is_custom else require_int(item.get("product_id"), f"items[{index}].product_id", minimum=1)
        name = clean_text(item.get("name"))
        if is_custom and not name:
            raise ValidationError(f"items[{index}].name is required for custom items")

        unit_price = item.get("unit_price_cents")
        if unit_price is None and is_custom:
            raise ValidationError(f"items[{index}].unit_price_cents is required for custom items")

        cleaned.append({
            "product_id": product_id,
            "is_custom": is_custom,
            "name": name,
            "sku": clean_text(item.get("sku"), max_length=64),
            "unit_price_cents": None if unit_price is None else require_amount(unit_price, f"items[{index}].unit_price_cents"),
            "quantity": require_int(item.get("quantity"), f"items[{index}].quantity", minimum=1, maximum=MAX_QUANTITY),
        })
    return cleaned


def normalize_purchase_items(items: Any) -> list[dict]:
    """Each item: product_id, quantity >= 1, purchase_price_cents >= 0, optional name/sku."""
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        quantity = require_int(item.get("quantity"), f"items[{index}].quantity", minimum=1, maximum=MAX_QUANTITY)
        price = require_amount(item.get("purchase_price_cents"), f"items[{index}].purchase_price_cents")
        cleaned.append({
            "product_id": require_int(item.get("product_id"), f"items[{index}].product_id", minimum=1),
            "name": clean_text(item.get("name")),
            "sku": clean_text(item.get("sku"), max_length=64),
            "quantity": quantity,
            "purchase_price_cents": price,
            "line_total_cents": price * quantity,
        })
    return cleaned
