from __future__ import annotations

from decimal import Decimal


def format_quantity(value) -> str | None:
    """Render a Numeric quantity without trailing zeros ("6.000" -> "6")."""
    if value is None:
        return None
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    text = format(d.normalize(), "f")
    return "0" if text in ("-0", "") else text
