"""Invoice settlement rules: recording payments and waivers"""

from decimal import Decimal

from cepa_fees.domain.exceptions import PaymentError
from cepa_fees.domain.models import PaymentOutcome, PaymentStatus

SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.WAIVED)


def apply_payment(
    amount_due: Decimal,
    amount_paid: Decimal,
    status: PaymentStatus,
    payment: Decimal,
) -> PaymentOutcome:
    """
    Apply a payment to an invoice.

    pending/partial -> partial while a balance remains, -> paid once the
    balance reaches zero.

    Raises:
        PaymentError: non-positive payment, settled invoice, or overpayment
    """
    if payment <= 0:
        raise PaymentError("Payment amount must be positive")
    if status in SETTLED_STATUSES:
        raise PaymentError(f"Invoice is already {status.value}")

    balance = amount_due - amount_paid
    if payment > balance:
        raise PaymentError(f"Payment of {payment} exceeds balance due of {balance}")

    new_paid = amount_paid + payment
    new_balance = amount_due - new_paid
    new_status = PaymentStatus.PAID if new_balance == 0 else PaymentStatus.PARTIAL

    return PaymentOutcome(amount_paid=new_paid, balance_due=new_balance, status=new_status)


def waive_invoice(amount_due: Decimal, amount_paid: Decimal, status: PaymentStatus) -> PaymentOutcome:
    """Waive the remaining balance of an unsettled invoice"""
    if status in SETTLED_STATUSES:
        raise PaymentError(f"Invoice is already {status.value}")

    return PaymentOutcome(amount_paid=amount_paid, balance_due=Decimal(0), status=PaymentStatus.WAIVED)
