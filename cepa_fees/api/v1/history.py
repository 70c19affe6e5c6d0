"""GET /v1/fees/history - Fetch a permit application's calculation history"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cepa_fees.api.v1.schemas import HistoryResponse, HistoryItem
from cepa_fees.infrastructure.database.session import get_db
from cepa_fees.infrastructure.database.repositories import FeeCalculationRepository

router = APIRouter()


@router.get("/fees/history", response_model=HistoryResponse)
def get_fee_history(
    permit_application_id: str = Query(..., description="Permit application identifier"),
    db: Session = Depends(get_db),
):
    """Most recent fee calculations logged for a permit application, newest first"""
    calculation_repo = FeeCalculationRepository(db)
    calculations = calculation_repo.get_calculations_by_application(permit_application_id, limit=20)

    history_items = [
        HistoryItem(
            calculation_id=str(c.id),
            total_fee=c.total_fee,
            processing_days=c.processing_days,
            source=c.source,
            created_at=c.created_at.isoformat(),
        )
        for c in calculations
    ]

    return HistoryResponse(permit_application_id=permit_application_id, calculations=history_items)
