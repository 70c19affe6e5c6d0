"""Data access layer for fee structures, calculations and invoices"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from cepa_fees.infrastructure.database.models import FeeStructure, FeeCalculation, Invoice, utcnow
from cepa_fees.domain.exceptions import LookupUnavailable
from cepa_fees.domain.models import FeeCalculationResult, FeeParameters, FeeStructureRecord, PaymentOutcome
from cepa_fees.utils.date_utils import generate_invoice_number, invoice_due_date


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_record(row: FeeStructure) -> FeeStructureRecord:
    """Map an ORM row to the engine's reference record"""
    return FeeStructureRecord(
        permit_type=row.permit_type,
        fee_category=row.fee_category,
        activity_type=row.activity_type,
        annual_recurrent_fee=_decimal(row.annual_recurrent_fee),
        work_plan_amount=_decimal(row.work_plan_amount),
        category_multiplier=_decimal(row.category_multiplier),
        base_processing_days=row.base_processing_days,
        administration_form=row.administration_form,
        technical_form=row.technical_form,
        is_active=row.is_active,
    )


def parameters_to_json(params: FeeParameters) -> Dict[str, Any]:
    return {
        "activity_type": params.activity_type.value if params.activity_type else None,
        "permit_type": params.permit_type,
        "activity_level": params.activity_level,
        "prescribed_activity_id": params.prescribed_activity_id,
        "project_cost_kina": str(params.project_cost_kina) if params.project_cost_kina is not None else None,
        "land_area_hectares": str(params.land_area_hectares) if params.land_area_hectares is not None else None,
        "duration_years": params.duration_years,
        "ods_chemical_type": params.ods_chemical_type.value if params.ods_chemical_type else None,
        "waste_type": params.waste_type.value if params.waste_type else None,
        "fee_category": params.fee_category,
    }


def components_to_json(result: FeeCalculationResult) -> List[Dict[str, Any]]:
    return [
        {
            "component_name": c.component_name,
            "fee_category": c.fee_category.value,
            "base_amount": str(c.base_amount),
            "calculated_amount": str(c.calculated_amount),
            "formula_used": c.formula_used,
            "is_mandatory": c.is_mandatory,
            "notes": c.notes,
        }
        for c in result.components
    ]


class FeeStructureRepository:
    """Fee structure lookup backed by the fee_structures table"""

    def __init__(self, db: Session):
        self.db = db

    def find_fee_structure(
        self, permit_type: str, activity_type: str, fee_category: str
    ) -> Optional[FeeStructureRecord]:
        """
        Fetch the active fee structure for a lookup key.

        Returns None when no row matches.

        Raises:
            LookupUnavailable: On any database error
        """
        try:
            row = (
                self.db.query(FeeStructure)
                .filter(
                    FeeStructure.permit_type == permit_type,
                    FeeStructure.activity_type == activity_type,
                    FeeStructure.fee_category == fee_category,
                    FeeStructure.is_active.is_(True),
                )
                .order_by(FeeStructure.created_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            raise LookupUnavailable(f"Fee structure lookup failed: {e}") from e

        return to_record(row) if row else None

    def list_active(self) -> List[FeeStructure]:
        """All active fee structures ordered by lookup key"""
        return (
            self.db.query(FeeStructure)
            .filter(FeeStructure.is_active.is_(True))
            .order_by(FeeStructure.permit_type, FeeStructure.activity_type, FeeStructure.fee_category)
            .all()
        )


class FeeCalculationRepository:
    """Repository for logged fee calculations"""

    def __init__(self, db: Session):
        self.db = db

    def create_calculation(
        self,
        params: FeeParameters,
        result: FeeCalculationResult,
        permit_application_id: Optional[str] = None,
    ) -> FeeCalculation:
        """Persist a calculation and its component breakdown"""
        db_calculation = FeeCalculation(
            permit_application_id=permit_application_id,
            parameters=parameters_to_json(params),
            components=components_to_json(result),
            administration_fee=result.administration_fee,
            technical_fee=result.technical_fee,
            total_fee=result.total_fee,
            processing_days=result.processing_days,
            source=result.source.value,
        )
        self.db.add(db_calculation)
        self.db.flush()  # Get ID without committing
        return db_calculation

    def get_calculation_by_id(self, calculation_id: uuid.UUID) -> Optional[FeeCalculation]:
        return (
            self.db.query(FeeCalculation)
            .filter(FeeCalculation.id == calculation_id)
            .first()
        )

    def get_calculations_by_application(self, permit_application_id: str, limit: int = 10) -> List[FeeCalculation]:
        """Fetch recent calculations for a permit application"""
        return (
            self.db.query(FeeCalculation)
            .filter(FeeCalculation.permit_application_id == permit_application_id)
            .order_by(FeeCalculation.created_at.desc())
            .limit(limit)
            .all()
        )


class InvoiceRepository:
    """Repository for permit fee invoices"""

    def __init__(self, db: Session):
        self.db = db

    def create_invoice(
        self,
        calculation: FeeCalculation,
        currency: str,
        due_days: int,
        issued_on: Optional[date] = None,
    ) -> Invoice:
        """Raise a pending invoice for the calculation total"""
        issued_on = issued_on or date.today()
        db_invoice = Invoice(
            calculation_id=calculation.id,
            permit_application_id=calculation.permit_application_id,
            invoice_number=generate_invoice_number(issued_on),
            amount=calculation.total_fee,
            currency=currency,
            due_date=invoice_due_date(issued_on, due_days),
        )
        self.db.add(db_invoice)
        self.db.flush()
        return db_invoice

    def get_invoice_by_id(self, invoice_id: uuid.UUID) -> Optional[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .first()
        )

    def get_invoice_by_calculation(self, calculation_id: uuid.UUID) -> Optional[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.calculation_id == calculation_id)
            .first()
        )

    def apply_settlement(
        self,
        invoice: Invoice,
        outcome: PaymentOutcome,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Invoice:
        """Store the result of a payment or waiver on the invoice"""
        invoice.amount_paid = outcome.amount_paid
        invoice.status = outcome.status.value
        if payment_method:
            invoice.payment_method = payment_method
        if payment_reference:
            invoice.payment_reference = payment_reference
        if outcome.balance_due == 0:
            invoice.paid_at = utcnow()
        self.db.flush()
        return invoice
