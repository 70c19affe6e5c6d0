"""Permit fee invoicing: issue invoices, record payments and waivers"""

import uuid
import logging
from decimal import Decimal
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cepa_fees.api.v1.schemas import InvoiceRequest, InvoiceResponse, PaymentRequest
from cepa_fees.api.dependencies import get_request_id, get_revenue_client
from cepa_fees.config import settings
from cepa_fees.domain.exceptions import PaymentError
from cepa_fees.domain.models import PaymentStatus
from cepa_fees.domain.payments import apply_payment, waive_invoice
from cepa_fees.infrastructure.clients.revenue import RevenueClient
from cepa_fees.infrastructure.database.models import Invoice
from cepa_fees.infrastructure.database.session import get_db
from cepa_fees.infrastructure.database.repositories import FeeCalculationRepository, InvoiceRepository
from cepa_fees.infrastructure.observability.metrics import invoice_counter, payment_counter

router = APIRouter()


def _parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")


def _to_response(invoice: Invoice) -> InvoiceResponse:
    amount_paid = invoice.amount_paid or Decimal(0)
    balance_due = Decimal(0) if invoice.status == PaymentStatus.WAIVED.value else invoice.amount - amount_paid
    return InvoiceResponse(
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        calculation_id=str(invoice.calculation_id),
        permit_application_id=invoice.permit_application_id,
        amount=invoice.amount,
        amount_paid=amount_paid,
        balance_due=balance_due,
        currency=invoice.currency,
        status=invoice.status,
        payment_method=invoice.payment_method,
        payment_reference=invoice.payment_reference,
        paid_at=invoice.paid_at.isoformat() if invoice.paid_at else None,
        due_date=invoice.due_date,
    )


def _event_payload(event: str, response: InvoiceResponse) -> dict:
    # Amounts travel as strings so cents survive JSON encoding
    return {
        "event": event,
        "invoice_id": response.invoice_id,
        "invoice_number": response.invoice_number,
        "calculation_id": response.calculation_id,
        "permit_application_id": response.permit_application_id,
        "amount": str(response.amount),
        "amount_paid": str(response.amount_paid),
        "balance_due": str(response.balance_due),
        "currency": response.currency,
        "status": response.status,
        "due_date": response.due_date.isoformat(),
    }


def _load_invoice(db: Session, invoice_id: str) -> Invoice:
    invoice = InvoiceRepository(db).get_invoice_by_id(_parse_id(invoice_id, "invoice"))
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    request_body: InvoiceRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    revenue_client: RevenueClient = Depends(get_revenue_client),
):
    """
    Raise a pending invoice for a logged fee calculation.

    A calculation is invoiced at most once, and only when its total is
    positive. The revenue unit is notified asynchronously once the invoice
    is committed.
    """
    calculation_id = _parse_id(request_body.calculation_id, "calculation")

    calculation = FeeCalculationRepository(db).get_calculation_by_id(calculation_id)
    if not calculation:
        raise HTTPException(status_code=404, detail="Fee calculation not found")
    if calculation.total_fee <= 0:
        raise HTTPException(status_code=422, detail="Fee calculation total must be positive to invoice")

    invoice_repo = InvoiceRepository(db)
    existing = invoice_repo.get_invoice_by_calculation(calculation_id)
    if existing:
        raise HTTPException(
            status_code=409,
            detail={"message": "Fee calculation already invoiced", "invoice_id": str(existing.id)},
        )

    invoice = invoice_repo.create_invoice(
        calculation,
        currency=settings.invoice_currency,
        due_days=settings.invoice_due_days,
    )
    db.commit()
    invoice_counter.inc()

    response = _to_response(invoice)
    logging.info(
        "Invoice issued",
        extra={"request_id": get_request_id(request), "invoice_number": response.invoice_number},
    )

    background_tasks.add_task(revenue_client.send_invoice_event, _event_payload("INVOICE_ISSUED", response))

    return response


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return _to_response(_load_invoice(db, invoice_id))


@router.post("/invoices/{invoice_id}/payments", response_model=InvoiceResponse)
def record_payment(
    invoice_id: str,
    request_body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    revenue_client: RevenueClient = Depends(get_revenue_client),
):
    """
    Record a payment against an invoice.

    Partial payments move the invoice to partial; the payment that clears
    the balance marks it paid. Settled invoices and overpayments are
    rejected with 409.
    """
    request_id = get_request_id(request)
    invoice = _load_invoice(db, invoice_id)

    try:
        outcome = apply_payment(
            invoice.amount,
            invoice.amount_paid or Decimal(0),
            PaymentStatus(invoice.status),
            request_body.amount,
        )
    except PaymentError as e:
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    InvoiceRepository(db).apply_settlement(
        invoice,
        outcome,
        payment_method=request_body.payment_method,
        payment_reference=request_body.payment_reference,
    )
    db.commit()
    payment_counter.labels(status=outcome.status.value).inc()

    response = _to_response(invoice)
    logging.info(
        "Payment recorded",
        extra={"request_id": request_id, "invoice_number": response.invoice_number, "status": response.status},
    )

    background_tasks.add_task(revenue_client.send_invoice_event, _event_payload("PAYMENT_RECORDED", response))

    return response


@router.post("/invoices/{invoice_id}/waiver", response_model=InvoiceResponse)
def waive(
    invoice_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """Waive the outstanding balance of an unsettled invoice"""
    request_id = get_request_id(request)
    invoice = _load_invoice(db, invoice_id)

    try:
        outcome = waive_invoice(invoice.amount, invoice.amount_paid or Decimal(0), PaymentStatus(invoice.status))
    except PaymentError as e:
        logging.warning(f"Waiver rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    InvoiceRepository(db).apply_settlement(invoice, outcome)
    db.commit()
    payment_counter.labels(status=outcome.status.value).inc()

    logging.info("Invoice waived", extra={"request_id": request_id, "invoice_number": invoice.invoice_number})

    return _to_response(invoice)
