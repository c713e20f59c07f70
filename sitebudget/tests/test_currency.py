# sitebudget/tests/test_currency.py
from decimal import Decimal

from sitebudget.presentation.currency import format_currency, money
from sitebudget.schemas.dto.ledger_dto import MoneyDTO


def test_format_currency():
    assert format_currency(Decimal("1234567.5"), "NGN") == "₦1,234,567.50"
    assert format_currency(Decimal("1000"), "usd") == "$1,000.00"
    assert format_currency(Decimal("-1000"), "NGN") == "-₦1,000.00"
    assert format_currency(Decimal("0.005"), "NGN") == "₦0.01"


def test_unknown_currency_uses_the_code():
    assert format_currency(Decimal("1000"), "XOF") == "XOF 1,000.00"


def test_money_is_tagged_with_the_tenant_currency():
    assert money(Decimal("80000"), "NGN") == {"amount": "80000.00", "currency": "NGN"}
    assert MoneyDTO.of(Decimal("-20000.5"), "GBP").to_json() == {"amount": "-20000.50", "currency": "GBP"}
    assert MoneyDTO.of(None, "NGN").to_json() == {"amount": "0.00", "currency": "NGN"}
