"""Formatting utilities for currency and text display."""

from __future__ import annotations

from typing import Union

try:
    from .config import CURRENCY_SYMBOL
except ImportError:  # pragma: no cover - fallback for direct execution
    from config import CURRENCY_SYMBOL


def format_currency(amount: Union[float, int], include_sign: bool = True, symbol: str = CURRENCY_SYMBOL) -> str:
    """Format a currency amount with thousands separators.

    Args:
        amount: The amount to format
        include_sign: Whether to prefix the currency symbol
        symbol: Currency symbol to use

    Returns:
        Formatted currency string (e.g., "Rs. 1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56, symbol="Rs.")
        'Rs. 1,234.56'
        >>> format_currency(-50, symbol="Rs.")
        '-Rs. 50.00'
    """
    formatted = f"{abs(amount):,.2f}"
    sign = "-" if amount < 0 else ""
    if not include_sign:
        return f"{sign}{formatted}"
    return f"{sign}{symbol} {formatted}"


def escape_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown does not render LaTeX."""
    return text.replace("$", "\\$")


def format_percent(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"


def to_latin1(text: str) -> str:
    """Replace characters the PDF core fonts cannot encode."""
    return (text or "").replace("₹", "Rs.").encode("latin-1", "replace").decode("latin-1")
