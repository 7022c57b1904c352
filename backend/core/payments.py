"""
Rentas — Payment cycle and status rules

Pure date functions shared by every surface that shows payment or
contract state. Serializers and the repository call these; nothing
else recomputes them.
"""
import calendar
from collections import namedtuple
from datetime import date

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.utils import timezone

from .models import Property


URGENT_DAYS = 5
CONTRACT_WINDOW_MONTHS = 3

PaymentBadge = namedtuple('PaymentBadge', ['label', 'css_class', 'urgent'])
ContractFlag = namedtuple('ContractFlag', ['label', 'months_remaining', 'expired'])


def _today(today=None):
    return today or timezone.localdate()


def _occurrence(year, month, payment_day):
    """payment_day within (year, month), clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(payment_day, last_day))


def _shift(due, payment_day, months):
    moved = due + relativedelta(months=months)
    return _occurrence(moved.year, moved.month, payment_day)


# ═══════════════════════════════════════════════════════════
#  PAYMENT CYCLE
# ═══════════════════════════════════════════════════════════

def compute_initial_due_date(payment_day, today=None):
    """
    First due date strictly after today for a rent due on payment_day.
    Days 29-31 clamp to the last day of shorter months.
    """
    if not 1 <= int(payment_day) <= 31:
        raise ValueError('El día de pago debe estar entre 1 y 31')
    today = _today(today)
    due = _occurrence(today.year, today.month, payment_day)
    if due <= today:
        due = _shift(due, payment_day, 1)
    return due


def advance_after_payment(payment_day, today=None):
    """Due date after a payment: next month's occurrence of the initial due date."""
    due = compute_initial_due_date(payment_day, today)
    return _shift(due, payment_day, 1)


# ═══════════════════════════════════════════════════════════
#  STATUS BADGE
# ═══════════════════════════════════════════════════════════

def days_until(next_payment_date, today=None):
    return (next_payment_date - _today(today)).days


def payment_badge(payment_status, next_payment_date, today=None):
    """
    Display badge for a payment.

    An explicit Atrasado or Pagado always wins. Pendiente (or no status)
    turns Atrasado once the due date has passed, and counts down the days
    while it is in the future.
    """
    if payment_status == Property.PAYMENT_OVERDUE:
        return PaymentBadge('Atrasado', 'destructive', False)
    if payment_status == Property.PAYMENT_PAID:
        return PaymentBadge('Pagado', 'success', False)

    if next_payment_date:
        remaining = days_until(next_payment_date, today)
        if remaining < 0:
            return PaymentBadge('Atrasado', 'destructive', False)
        if remaining >= 1:
            noun = 'día' if remaining == 1 else 'días'
            urgent = remaining <= URGENT_DAYS
            return PaymentBadge(
                f'Vence en {remaining} {noun}',
                'urgent-payment' if urgent else 'warning',
                urgent,
            )

    return PaymentBadge('Pendiente', 'warning', False)


def is_overdue(next_payment_date, today=None):
    return bool(next_payment_date) and next_payment_date < _today(today)


# ═══════════════════════════════════════════════════════════
#  CONTRACT EXPIRATION
# ═══════════════════════════════════════════════════════════

def months_remaining(contract_end, today=None):
    """Whole calendar months from today until contract_end (negative once past)."""
    delta = relativedelta(contract_end, _today(today))
    return delta.years * 12 + delta.months


def contract_expiration(contract_end, today=None, include_expired=None):
    """
    Flag for a contract ending within the next three whole months.

    Contracts already past their end date are flagged only when
    include_expired (default: CONTRACT_EXPIRATION_FLAG_EXPIRED) is set.
    """
    if not contract_end:
        return None
    today = _today(today)
    if include_expired is None:
        include_expired = getattr(settings, 'CONTRACT_EXPIRATION_FLAG_EXPIRED', False)

    if contract_end < today:
        if include_expired:
            return ContractFlag('vencido', months_remaining(contract_end, today), True)
        return None

    months = months_remaining(contract_end, today)
    if months > CONTRACT_WINDOW_MONTHS:
        return None
    noun = 'mes' if months == 1 else 'meses'
    return ContractFlag(f'vence en {months} {noun}', months, False)


def expires_within_window(contract_end, today=None):
    """Dashboard window: strictly after today and before today + 3 months."""
    if not contract_end:
        return False
    today = _today(today)
    return today < contract_end < today + relativedelta(months=CONTRACT_WINDOW_MONTHS)
