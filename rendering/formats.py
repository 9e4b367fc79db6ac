"""
Axis value formats.

A plot may ask for its continuous axes to be read out as currency,
percentages, plain numbers or scientific notation:

    PlotSpec(..., formats={"y": {"prefix": "$", "accuracy": 0.01}})

``axis_format`` normalizes such options into the payload's ``axes.format``
entry, which the runtime hands to ``Intl.NumberFormat``; ``format_tick``
writes the same format on the rendered tick labels.

Options: ``type`` (one of FORMAT_TYPES; detected from the other options
when absent), ``prefix``, ``suffix``, ``accuracy`` (0.01 -> 2 decimals),
``decimals``, ``digits`` (scientific), ``currency`` (ISO 4217 code) and
``locale``.
"""

from __future__ import annotations

import math
import re
from typing import Optional

FORMAT_TYPES = ("currency", "percent", "number", "scientific")

DEFAULT_LOCALE = "en-US"

_CURRENCY_CODES = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₩": "KRW",
    "₽": "RUB",
    "R$": "BRL",
    "CHF": "CHF",
    "C$": "CAD",
    "A$": "AUD",
    "NZ$": "NZD",
    "HK$": "HKD",
    "S$": "SGD",
    "₪": "ILS",
    "₱": "PHP",
    "฿": "THB",
    "kr": "SEK",
    "zł": "PLN",
}
# first symbol listed for a code wins
_CURRENCY_SYMBOLS = {code: symbol for symbol, code in reversed(list(_CURRENCY_CODES.items()))}

_SINGLE_SYMBOLS = {s for s in _CURRENCY_CODES if len(s) == 1}
_DOLLAR_PREFIX = re.compile(r"^[A-Z]{0,2}\$")
_ISO_CODE = re.compile(r"^[A-Z]{3}$")


def accuracy_to_decimals(accuracy: Optional[float]) -> int:
    """Decimal places for a rounding accuracy: 0.01 -> 2, 5 -> 0, unset -> 2.

    Raises:
        ValueError: *accuracy* is not positive.
    """
    if accuracy is None:
        return 2
    if accuracy <= 0:
        raise ValueError(f"accuracy must be positive, got {accuracy}")
    if accuracy >= 1:
        return 0
    return max(0, int(-math.floor(math.log10(accuracy))))


def currency_code(prefix: Optional[str]) -> str:
    """ISO 4217 code for a currency symbol; USD when unrecognized."""
    if not prefix:
        return "USD"
    if prefix in _CURRENCY_CODES:
        return _CURRENCY_CODES[prefix]
    if _ISO_CODE.match(prefix):
        return prefix
    return "USD"


def detect_format_type(options: dict) -> Optional[str]:
    """Format type named by, or implied by, *options*; None for no format.

    Raises:
        ValueError: an explicit ``type`` outside FORMAT_TYPES.
    """
    explicit = options.get("type")
    if explicit is not None:
        if explicit not in FORMAT_TYPES:
            raise ValueError(f"Unknown axis format type: {explicit}")
        return explicit
    if options.get("digits") is not None:
        return "scientific"
    if options.get("suffix") == "%":
        return "percent"
    prefix = options.get("prefix")
    if options.get("currency") or (prefix and (prefix in _SINGLE_SYMBOLS or _DOLLAR_PREFIX.match(prefix))):
        return "currency"
    if options.get("accuracy") is not None or options.get("decimals") is not None:
        return "number"
    return None


def axis_format(options: Optional[dict]) -> Optional[dict]:
    """Normalize one axis's format options into the payload entry."""
    if not options:
        return None
    kind = detect_format_type(options)
    if kind is None:
        return None
    decimals = options.get("decimals")
    if decimals is None:
        decimals = accuracy_to_decimals(options.get("accuracy"))
    if kind == "currency":
        code = options.get("currency") or currency_code(options.get("prefix") or "$")
        return {"type": kind, "currency": code, "decimals": int(decimals),
                "locale": options.get("locale", DEFAULT_LOCALE)}
    if kind == "percent":
        return {"type": kind, "decimals": int(decimals)}
    if kind == "scientific":
        return {"type": kind, "decimals": int(options.get("digits", options.get("decimals", 3)))}
    return {"type": kind, "decimals": int(decimals), "locale": options.get("locale", DEFAULT_LOCALE)}


def axes_format(formats: Optional[dict]) -> dict:
    """Payload ``format`` entries for the x and y axes that ask for one."""
    out = {}
    for axis in ("x", "y"):
        entry = axis_format((formats or {}).get(axis))
        if entry is not None:
            out[axis] = entry
    return out


def format_tick(value: float, entry: dict) -> str:
    """Tick label for *value* under a normalized format *entry*."""
    decimals = entry.get("decimals", 2)
    kind = entry["type"]
    if kind == "percent":
        return f"{value * 100:,.{decimals}f}%"
    if kind == "scientific":
        return f"{value:.{decimals}e}"
    if kind == "currency":
        code = entry.get("currency", "USD")
        symbol = _CURRENCY_SYMBOLS.get(code, f"{code} ")
        sign = "-" if value < 0 else ""
        return f"{sign}{symbol}{abs(value):,.{decimals}f}"
    return f"{value:,.{decimals}f}"
