"""
Rentas — Currency helpers
Fixed RD$/USD exchange rate; configure EXCHANGE_RATE to change it.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

from .models import Property

CENT = Decimal('0.01')


def get_exchange_rate():
    """RD$ per 1 USD."""
    return Decimal(str(getattr(settings, 'EXCHANGE_RATE', 56)))


def convert_currency(amount, from_currency, to_currency):
    amount = Decimal(str(amount))
    if from_currency == to_currency:
        return amount
    rate = get_exchange_rate()
    if from_currency == Property.CURRENCY_USD and to_currency == Property.CURRENCY_DOP:
        return amount * rate
    if from_currency == Property.CURRENCY_DOP and to_currency == Property.CURRENCY_USD:
        return amount / rate
    return amount


def format_currency(amount, currency):
    # e.g. "USD $1,250.00" / "RD$ 45,000.00"
    amount = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    if currency == Property.CURRENCY_USD:
        return f'USD ${amount:,.2f}'
    return f'RD$ {amount:,.2f}'
