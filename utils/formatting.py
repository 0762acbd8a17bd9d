import datetime as dt
from typing import Optional


def format_fee(fee: float, currency: str = 'KES') -> str:
    """'KES 1,500' for whole amounts, up to three decimals otherwise."""
    fee = float(fee)
    if fee.is_integer():
        return f"{currency} {int(fee):,}"
    return f"{currency} {fee:,.3f}".rstrip('0').rstrip('.')


def format_date(value: Optional[str], fallback: str = 'N/A') -> str:
    """ISO timestamp or date -> '1 Dec 2025'."""
    if not value:
        return fallback
    try:
        parsed = dt.datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return value
    return f"{parsed.day} {parsed:%b %Y}"
