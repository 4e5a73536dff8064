from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext


def as_int(value: object) -> int:
    """Parse a raw integer amount from an API payload (decimal or hex string)."""

    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    try:
        return int(Decimal(text).to_integral_value(rounding=ROUND_DOWN))
    except InvalidOperation:
        return 0


def as_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def scale(amount: int, ratio: float) -> int:
    """Multiply a raw amount by a float ratio, truncating toward zero."""

    if ratio <= 0 or amount == 0:
        return 0
    with localcontext() as ctx:
        ctx.prec = 80
        product = Decimal(amount) * Decimal(repr(ratio))
        return int(product.to_integral_value(rounding=ROUND_DOWN))


__all__ = ["as_float", "as_int", "scale"]
