# tests/test_formatting.py
from storefront.formatting import format_currency, format_shipping


def test_format_currency():
    assert format_currency(25000) == "Gs. 25.000"
    assert format_currency(0) == "Gs. 0"
    assert format_currency(1234567) == "Gs. 1.234.567"
    assert format_currency(999.5) == "Gs. 1.000"
    assert format_currency("8000") == "Gs. 8.000"


def test_format_currency_bad_input():
    assert format_currency(None) == "Gs. 0"
    assert format_currency("abc") == "Gs. 0"


def test_format_shipping():
    assert format_shipping(0) == "Gratis"
    assert format_shipping(8000) == "Gs. 8.000"
