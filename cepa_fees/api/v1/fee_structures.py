"""GET /v1/fee-structures - List active fee structures"""

from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cepa_fees.api.v1.schemas import FeeStructureListResponse, FeeStructureSchema
from cepa_fees.infrastructure.database.session import get_db
from cepa_fees.infrastructure.database.repositories import FeeStructureRepository

router = APIRouter()


@router.get("/fee-structures", response_model=FeeStructureListResponse)
def list_fee_structures(db: Session = Depends(get_db)):
    structures = FeeStructureRepository(db).list_active()

    return FeeStructureListResponse(
        fee_structures=[
            FeeStructureSchema(
                id=str(s.id),
                permit_type=s.permit_type,
                activity_type=s.activity_type,
                fee_category=s.fee_category,
                annual_recurrent_fee=s.annual_recurrent_fee or Decimal(0),
                work_plan_amount=s.work_plan_amount,
                category_multiplier=s.category_multiplier,
                base_processing_days=s.base_processing_days,
                administration_form=s.administration_form,
                technical_form=s.technical_form,
            )
            for s in structures
        ]
    )
