"""Conversions between operator-entered decimal amounts and integer minor units"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from billing_engine.domain.exceptions import ValidationError

# ISO 4217 currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = {"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}


def minor_unit_exponent(currency: str) -> int:
    return 0 if currency.lower() in ZERO_DECIMAL_CURRENCIES else 2


def to_minor_units(value: str, currency: str = "usd") -> int:
    """
    Parse an operator-entered amount ("35", "35.5", "35.00") into minor units.

    Rounds half-up to the currency's minor unit. Blank input means no amount
    and yields 0.

    Raises:
        ValidationError: Input is not a number or is negative
    """
    if value is None or not str(value).strip():
        return 0

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("amount is not a number", field="amount", value=value)

    if not amount.is_finite() or amount < 0:
        raise ValidationError("amount must be a non-negative number", field="amount", value=value)

    scale = Decimal(10) ** minor_unit_exponent(currency)
    return int((amount * scale).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_minor_units(amount_cents: int, currency: str = "usd") -> str:
    """Render minor units for log and error messages, e.g. 350000 usd -> '3500.00 USD'"""
    exponent = minor_unit_exponent(currency)
    major = Decimal(amount_cents) / (Decimal(10) ** exponent)
    return f"{major:.{exponent}f} {currency.upper()}"
