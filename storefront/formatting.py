from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CURRENCY_PREFIX = "Gs."


def format_currency(amount) -> str:
    """Guaraní display: Gs. 25.000 (dot thousands, no decimals)."""
    try:
        value = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        value = 0
    s = f"{value:,}".replace(",", ".")
    return f"{CURRENCY_PREFIX} {s}"


def format_shipping(cost) -> str:
    return "Gratis" if not cost else format_currency(cost)
