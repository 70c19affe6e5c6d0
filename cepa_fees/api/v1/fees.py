"""POST /v1/fees/calculate - Permit fee calculation endpoint"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cepa_fees.api.v1.schemas import FeeCalculationRequest, FeeCalculationResponse
from cepa_fees.api.dependencies import get_fallback_fees, get_request_id
from cepa_fees.infrastructure.database.session import get_db
from cepa_fees.infrastructure.database.repositories import FeeCalculationRepository, FeeStructureRepository
from cepa_fees.domain.fee_engine import calculate_fees
from cepa_fees.domain.rates import FallbackFees
from cepa_fees.domain.exceptions import InvalidFeeStructure, LookupUnavailable, ValidationError
from cepa_fees.infrastructure.observability.metrics import record_fee_calculation, fee_lookup_failures_counter
from cepa_fees.infrastructure.observability.logging import log_fee_calculation

router = APIRouter()


@router.post("/fees/calculate", response_model=FeeCalculationResponse)
def create_fee_calculation(
    request_body: FeeCalculationRequest,
    request: Request,
    db: Session = Depends(get_db),
    fallback: FallbackFees = Depends(get_fallback_fees),
):
    """
    Calculate permit fees for the submitted parameters.

    Flow:
    1. Validate parameters and resolve the fee structure from fee_structures
    2. Compute administration, technical and special fees
    3. Log the calculation (against the permit application when given)
    4. Return the breakdown
    """
    start_time = time.time()
    request_id = get_request_id(request)
    params = request_body.to_parameters()

    try:
        result = calculate_fees(params, FeeStructureRepository(db), fallback)

        calculation_repo = FeeCalculationRepository(db)
        db_calculation = calculation_repo.create_calculation(
            params=params,
            result=result,
            permit_application_id=request_body.permit_application_id,
        )
        db.commit()

        duration_ms = (time.time() - start_time) * 1000
        record_fee_calculation(result)
        log_fee_calculation(
            request_id,
            params.permit_type,
            params.activity_type.value,
            result.source.value,
            float(result.total_fee),
            duration_ms,
        )

        return FeeCalculationResponse.from_result(str(db_calculation.id), result)

    except ValidationError as e:
        db.rollback()
        logging.warning(f"Invalid fee parameters: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail={"message": str(e), "fields": e.fields})

    except LookupUnavailable as e:
        fee_lookup_failures_counter.inc()
        db.rollback()
        logging.error(f"Fee structure lookup failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Fee structure data unavailable")

    except InvalidFeeStructure as e:
        fee_lookup_failures_counter.inc()
        db.rollback()
        logging.error(f"Rejected fee structure: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Fee structure data invalid")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
