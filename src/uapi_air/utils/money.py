# uapi_air/utils/money.py
"""
Helpers for uAPI money strings.

uAPI serializes amounts as a currency code immediately followed by the
amount, e.g. ``UAH1015`` or ``USD312.00``. The package keeps that string form
in its records and only converts to Decimal when it has to add things up.
"""

import re
from decimal import Decimal, InvalidOperation

MONEY_PATTERN: re.Pattern[str] = re.compile(r'^([A-Z]{3})(\d+(?:\.\d+)?)$')


def parse_money(value: str | None) -> tuple[str, Decimal] | None:
    """
    Split a money string into its currency and amount.

    Returns:
        (currency, amount) or None when the value is absent or malformed.

    Example:
        >>> parse_money('USD312.00')
        ('USD', Decimal('312.00'))
    """
    if not value:
        return None
    match: re.Match[str] | None = MONEY_PATTERN.match(value.strip())
    if match is None:
        return None
    try:
        return match.group(1), Decimal(match.group(2))
    except InvalidOperation:
        return None


def format_money(currency: str, amount: Decimal) -> str:
    """Join currency and amount back into the uAPI string form."""
    return f'{currency}{amount}'


def sum_money(values: list[str | None], multipliers: list[int] | None = None) -> str | None:
    """
    Add money strings of one currency together.

    Args:
        values: Money strings; any absent or malformed value makes the
                total unknown.
        multipliers: Optional per-value multipliers (e.g. passenger counts).

    Returns:
        The sum as a money string, or None when any value is missing, the
        currencies differ, or ``values`` is empty.
    """
    if not values:
        return None
    factors: list[int] = multipliers or [1] * len(values)
    currency: str | None = None
    total: Decimal = Decimal(0)
    for value, factor in zip(values, factors, strict=True):
        parsed: tuple[str, Decimal] | None = parse_money(value)
        if parsed is None:
            return None
        if currency is not None and parsed[0] != currency:
            return None
        currency = parsed[0]
        total += parsed[1] * factor
    assert currency is not None
    return format_money(currency, total)
