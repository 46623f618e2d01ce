"""
Common utility functions shared across the application.
"""

# symbol, decimal places
CURRENCY_FORMATS = {
    "MAD": ("MAD", 2),
    "USD": ("$", 2),
    "EUR": ("€", 2),
    "GBP": ("£", 2),
    "JPY": ("¥", 0),
}

DEFAULT_CURRENCY = "MAD"


def format_currency(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount for receipts and notifications.

    Args:
        amount: The amount to format
        currency: ISO code; unsupported codes fall back to MAD

    Returns:
        str: e.g. "$1,234.50" or "MAD 30.00"
    """
    symbol, decimals = CURRENCY_FORMATS.get(currency, CURRENCY_FORMATS[DEFAULT_CURRENCY])
    sign = "-" if amount < 0 else ""
    number = f"{abs(amount):,.{decimals}f}"
    if len(symbol) > 1:
        return f"{sign}{symbol} {number}"
    return f"{sign}{symbol}{number}"

