"""Stateless conversion between registry assets.

Nothing here executes trades; it only prices one asset in another using the
registry's current prices.
"""

from __future__ import annotations

import re

from cryptotrends.data.registry import KnownAssetRegistry
from cryptotrends.exceptions import ConversionError

_AMOUNT_PATTERN = re.compile(r"^\d*\.?\d*$")


def parse_amount(amount: str | float) -> float:
    """Validate a user-entered amount.

    :raises ConversionError: If the amount is not a positive decimal number.
    """
    if isinstance(amount, str):
        text = amount.strip()
        if not text or not _AMOUNT_PATTERN.match(text) or text == ".":
            raise ConversionError("Please enter a valid number")
        value = float(text)
    else:
        value = float(amount)
    if value <= 0:
        raise ConversionError("Amount must be greater than 0")
    return value


def convert(
    amount: str | float,
    from_symbol: str,
    to_symbol: str,
    registry: KnownAssetRegistry,
    base_currency: str = "usd",
) -> float:
    """Convert ``amount`` of one asset into another asset or the base currency.

    :param amount: Quantity of the source asset.
    :param from_symbol: Ticker of the source asset.
    :param to_symbol: Ticker of the target asset, or the base currency code.
    :param registry: Assets with ``current_price`` in the base currency.
    :param base_currency: Currency the registry prices are quoted in.
    :returns: Equivalent quantity of the target.
    :raises ConversionError: If the amount or either symbol is invalid.
    """
    value = parse_amount(amount)

    source = registry.find_by_symbol(from_symbol)
    if source is None or not source.current_price:
        raise ConversionError("From currency not found")

    if to_symbol.upper() == base_currency.upper():
        to_price = 1.0
    else:
        target = registry.find_by_symbol(to_symbol)
        if target is None or not target.current_price:
            raise ConversionError("To currency not found")
        to_price = target.current_price

    return value * source.current_price / to_price


def format_conversion(value: float, currency: str, base_currency: str = "usd") -> str:
    """Render a converted amount with 2 to 6 fraction digits."""
    digits = f"{value:,.6f}".rstrip("0")
    whole, _, frac = digits.partition(".")
    frac = frac.ljust(2, "0")
    text = f"{whole}.{frac}"
    if currency.upper() == base_currency.upper():
        return f"{base_currency.upper()} {text}"
    return f"{text} {currency.upper()}"


__all__ = ["parse_amount", "convert", "format_conversion"]
