# sitebudget/presentation/currency.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CURRENCY_SYMBOLS = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "KES": "KSh",
    "GHS": "GH₵",
    "ZAR": "R",
}


def format_currency(amount: Union[Decimal, int, str], currency: str = "NGN") -> str:
    '''
    ₦1,234,567.50 style rendering with the tenant's currency.
    Unknown codes fall back to "CODE 1,234.00".
    '''
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    code = (currency or "NGN").upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {body}"
    return f"{sign}{symbol}{body}"


def money(amount, currency: str) -> dict:
    """Currency-tagged amount as it leaves the API."""
    return {"amount": str(Decimal(str(amount)).quantize(Decimal("0.01"))), "currency": currency}
