"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from cepa_fees.domain.models import (
    ActivityType,
    FeeCalculationResult,
    FeeParameters,
    OdsChemicalType,
    WasteType,
)


class FeeCalculationRequest(BaseModel):
    """
    Request body for POST /v1/fees/calculate.

    Required identity fields are optional here so that the fee engine reports
    every missing field in a single validation error.
    """

    activity_type: Optional[ActivityType] = None
    permit_type: Optional[str] = Field(None, description="Permit category, e.g. 'Environment Permit'")
    activity_level: Optional[int] = Field(None, description="Environmental impact tier (1-3)")
    prescribed_activity_id: Optional[str] = None
    project_cost_kina: Optional[Decimal] = None
    land_area_hectares: Optional[Decimal] = None
    duration_years: Optional[int] = None
    ods_chemical_type: Optional[OdsChemicalType] = None
    waste_type: Optional[WasteType] = None
    fee_category: Optional[str] = Field(None, description="Fee structure category; derived from level if omitted")
    permit_application_id: Optional[str] = Field(None, description="Application to log the calculation against")

    def to_parameters(self) -> FeeParameters:
        return FeeParameters(
            activity_type=self.activity_type,
            permit_type=self.permit_type,
            activity_level=self.activity_level,
            prescribed_activity_id=self.prescribed_activity_id,
            project_cost_kina=self.project_cost_kina,
            land_area_hectares=self.land_area_hectares,
            duration_years=self.duration_years,
            ods_chemical_type=self.ods_chemical_type,
            waste_type=self.waste_type,
            fee_category=self.fee_category,
        )


class FeeComponentSchema(BaseModel):
    """Single line item of a fee breakdown"""

    component_name: str
    fee_category: str
    base_amount: Decimal
    calculated_amount: Decimal
    formula_used: str
    is_mandatory: bool
    notes: str = ""


class MultiplierAdjustmentSchema(BaseModel):
    """Advisory tier annotation"""

    basis: str
    threshold_label: str
    percentage: int
    notes: str = ""


class FeeCalculationResponse(BaseModel):
    """Response for POST /v1/fees/calculate"""

    calculation_id: str
    components: List[FeeComponentSchema]
    adjustments: List[MultiplierAdjustmentSchema]
    administration_fee: Decimal
    technical_fee: Decimal
    total_fee: Decimal
    processing_days: int
    administration_form: str
    technical_form: str
    source: str

    @classmethod
    def from_result(cls, calculation_id: str, result: FeeCalculationResult) -> "FeeCalculationResponse":
        return cls(
            calculation_id=calculation_id,
            components=[
                FeeComponentSchema(
                    component_name=c.component_name,
                    fee_category=c.fee_category.value,
                    base_amount=c.base_amount,
                    calculated_amount=c.calculated_amount,
                    formula_used=c.formula_used,
                    is_mandatory=c.is_mandatory,
                    notes=c.notes,
                )
                for c in result.components
            ],
            adjustments=[
                MultiplierAdjustmentSchema(
                    basis=a.basis,
                    threshold_label=a.threshold_label,
                    percentage=a.percentage,
                    notes=a.notes,
                )
                for a in result.adjustments
            ],
            administration_fee=result.administration_fee,
            technical_fee=result.technical_fee,
            total_fee=result.total_fee,
            processing_days=result.processing_days,
            administration_form=result.administration_form,
            technical_form=result.technical_form,
            source=result.source.value,
        )


class HistoryItem(BaseModel):
    """Single logged calculation"""

    calculation_id: str
    total_fee: Decimal
    processing_days: int
    source: str
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/fees/history"""

    permit_application_id: str
    calculations: List[HistoryItem]


class FeeStructureSchema(BaseModel):
    """Active fee structure row"""

    id: str
    permit_type: str
    activity_type: str
    fee_category: str
    annual_recurrent_fee: Decimal
    work_plan_amount: Decimal
    category_multiplier: Decimal
    base_processing_days: int
    administration_form: str
    technical_form: str


class FeeStructureListResponse(BaseModel):
    """Response for GET /v1/fee-structures"""

    fee_structures: List[FeeStructureSchema]


class InvoiceRequest(BaseModel):
    """Request body for POST /v1/invoices"""

    calculation_id: str = Field(..., min_length=1, description="Fee calculation to invoice")


class PaymentRequest(BaseModel):
    """Request body for POST /v1/invoices/{invoice_id}/payments"""

    amount: Decimal = Field(..., gt=0, description="Amount received, in the invoice currency")
    payment_method: Optional[str] = Field(None, description="e.g. bank transfer, cheque, card")
    payment_reference: Optional[str] = Field(None, description="Bank or receipt reference")


class InvoiceResponse(BaseModel):
    """Response for POST /v1/invoices and GET /v1/invoices/{invoice_id}"""

    invoice_id: str
    invoice_number: str
    calculation_id: str
    permit_application_id: Optional[str] = None
    amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    currency: str
    status: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[str] = None
    due_date: date
