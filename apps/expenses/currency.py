"""
Currency precision and display helpers.

Amounts are stored as ``Decimal`` with a currency label; nothing here converts
between currencies. Ledger arithmetic happens in integer minor units
(cents, or whole units for zero-decimal currencies) so splits always sum
back to the original amount.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Currencies that don't use decimal places (same set as the app formatter)
NO_DECIMAL_CURRENCIES = frozenset({'JPY', 'KRW', 'VND', 'IDR', 'CLP', 'HUF'})

CURRENCY_SYMBOLS = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'CAD': 'CA$',
    'AUD': 'A$',
    'JPY': '¥',
    'CNY': '¥',
    'KRW': '₩',
    'INR': '₹',
    'BRL': 'R$',
    'MXN': 'MX$',
    'CHF': 'CHF',
    'SEK': 'kr',
    'NOK': 'kr',
    'DKK': 'kr',
    'NZD': 'NZ$',
    'SGD': 'S$',
    'HKD': 'HK$',
    'THB': '฿',
    'PHP': '₱',
    'MYR': 'RM',
    'IDR': 'Rp',
    'VND': '₫',
    'ZAR': 'R',
    'AED': 'د.إ',
    'SAR': '﷼',
    'TRY': '₺',
    'PLN': 'zł',
    'CZK': 'Kč',
    'HUF': 'Ft',
    'ILS': '₪',
    'CLP': 'CLP$',
    'COP': 'COP$',
    'ARS': 'ARS$',
    'PEN': 'S/',
}


class AmountPrecisionError(ValueError):
    """Raised when an amount has more precision than its currency allows."""


def normalize_currency(currency: str) -> str:
    return (currency or '').strip().upper()


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal digits used by the currency (0 or 2)."""
    return 0 if normalize_currency(currency) in NO_DECIMAL_CURRENCIES else 2


def quantum(currency: str) -> Decimal:
    """Smallest representable step, e.g. Decimal('0.01') for USD."""
    return Decimal(1).scaleb(-minor_unit_exponent(currency))


def to_minor_units(amount: Union[Decimal, int, str], currency: str) -> int:
    """
    Convert an amount to integer minor units.

    ``Decimal('10.50')`` USD -> ``1050``; ``Decimal('1200')`` JPY -> ``1200``.

    Raises:
        AmountPrecisionError: If the amount isn't a whole number of minor units
            (e.g. ``10.005`` USD or ``100.5`` JPY).
    """
    value = Decimal(amount)
    scaled = value.scaleb(minor_unit_exponent(currency))
    if scaled != scaled.to_integral_value():
        raise AmountPrecisionError(
            f"{amount} has more precision than {normalize_currency(currency)} allows"
        )
    return int(scaled)


def from_minor_units(units: int, currency: str) -> Decimal:
    """Convert integer minor units back to a Decimal with currency precision."""
    return Decimal(units).scaleb(-minor_unit_exponent(currency)).quantize(quantum(currency))


def quantize_amount(amount: Union[Decimal, int, str], currency: str) -> Decimal:
    """Round half-up to the currency's precision (display and input cleanup only)."""
    return Decimal(amount).quantize(quantum(currency), rounding=ROUND_HALF_UP)


def currency_symbol(currency: str) -> str:
    code = normalize_currency(currency)
    return CURRENCY_SYMBOLS.get(code, code)


def format_amount(amount: Union[Decimal, int, str], currency: str) -> str:
    """
    Format an amount with its currency symbol.

    >>> format_amount(Decimal('1234.5'), 'usd')
    '$1,234.50'
    >>> format_amount(Decimal('-1200'), 'JPY')
    '-¥1,200'
    """
    value = quantize_amount(amount, currency)
    sign = '-' if value < 0 else ''
    digits = minor_unit_exponent(currency)
    return f"{sign}{currency_symbol(currency)}{abs(value):,.{digits}f}"


def format_amount_with_code(amount: Union[Decimal, int, str], currency: str) -> str:
    """Format for list display, e.g. ``'$12.00 USD'``."""
    return f"{format_amount(amount, currency)} {normalize_currency(currency)}"
