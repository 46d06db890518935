# formatting.py
import math

_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "PLN": "PLN "}

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)

def format_currency(value, currency: str = "USD") -> str:
    if not _is_number(value):
        return "N/A"
    prefix = _SYMBOLS.get(currency.upper(), currency.upper() + " ")
    sign = "-" if value < 0 else ""
    return f"{sign}{prefix}{abs(value):,.2f}"

def format_percentage(value) -> str:
    if not _is_number(value):
        return "N/A"
    return f"{value:.2f}%"
