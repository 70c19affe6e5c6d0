"""Fee reference tables: surcharge rates, advisory tiers and the fallback fee structure"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from cepa_fees.domain.models import (
    ActivityType,
    FeeParameters,
    FeeStructureRecord,
    OdsChemicalType,
    WasteType,
)

DAYS_PER_YEAR = Decimal(365)
EXTRA_DAYS_PER_PERMIT_YEAR = 30

# ODS handling surcharge, Kina per application
ODS_BASE_RATES: Dict[OdsChemicalType, Decimal] = {
    OdsChemicalType.CFC: Decimal(500),
    OdsChemicalType.HCFC: Decimal(300),
    OdsChemicalType.HFC: Decimal(200),
    OdsChemicalType.HALONS: Decimal(800),
    OdsChemicalType.OTHER: Decimal(250),
}
ODS_COST_THRESHOLD = Decimal(100_000)
ODS_HIGH_COST_MULTIPLIER = Decimal("1.5")

WASTE_BASE_RATES: Dict[WasteType, Decimal] = {
    WasteType.HAZARDOUS: Decimal(1000),
    WasteType.INDUSTRIAL: Decimal(500),
    WasteType.CHEMICAL: Decimal(800),
    WasteType.MEDICAL: Decimal(1200),
    WasteType.RADIOACTIVE: Decimal(2000),
    WasteType.OTHER: Decimal(300),
}

# (exclusive lower bound in hectares, multiplier), checked top-down
WASTE_AREA_TIERS: List[Tuple[Decimal, Decimal]] = [
    (Decimal(5000), Decimal("1.3")),
    (Decimal(1000), Decimal("1.1")),
]

# Advisory tiers: (exclusive lower bound, percentage). Display only.
PROJECT_COST_TIERS: List[Tuple[Decimal, int]] = [
    (Decimal(5_000_000), 50),
    (Decimal(1_000_000), 20),
]
LAND_AREA_TIERS: List[Tuple[Decimal, int]] = [
    (Decimal(10_000), 30),
    (Decimal(5_000), 15),
]

# Default lookup category per environmental impact tier
LEVEL_FEE_CATEGORIES: Dict[int, str] = {
    1: "Green Category",
    2: "Orange Category",
    3: "Red Category",
}

ADMINISTRATION_FORM = "Form 2"
TECHNICAL_FORMS: Dict[ActivityType, str] = {
    ActivityType.NEW: "Form 9",
    ActivityType.AMALGAMATION: "Form 7",
    ActivityType.AMENDMENT: "Form 8",
    ActivityType.RENEWAL: "Form 10",
    ActivityType.TRANSFER: "Form 11",
    ActivityType.SURRENDER: "Form 12",
}


@dataclass(frozen=True)
class FallbackFees:
    """Amounts used when no fee structure matches the lookup key"""

    annual_recurrent_fee: Decimal = Decimal(36_500)
    work_plan_amount: Decimal = Decimal(15_500)
    base_processing_days: int = 30


DEFAULT_FALLBACK = FallbackFees()


def lookup_fee_category(params: FeeParameters) -> str:
    """Fee structure category for the lookup key, explicit or derived from level"""
    if params.fee_category:
        return params.fee_category
    return LEVEL_FEE_CATEGORIES.get(params.activity_level or 0, LEVEL_FEE_CATEGORIES[1])


def fallback_structure(params: FeeParameters, fallback: FallbackFees = DEFAULT_FALLBACK) -> FeeStructureRecord:
    """Build the default fee structure for parameters with no matching row"""
    activity_type = params.activity_type or ActivityType.NEW
    return FeeStructureRecord(
        permit_type=params.permit_type or "",
        fee_category=lookup_fee_category(params),
        activity_type=activity_type.value,
        annual_recurrent_fee=Decimal(fallback.annual_recurrent_fee),
        work_plan_amount=Decimal(fallback.work_plan_amount),
        category_multiplier=Decimal(1),
        base_processing_days=fallback.base_processing_days,
        administration_form=ADMINISTRATION_FORM,
        technical_form=TECHNICAL_FORMS.get(activity_type, ADMINISTRATION_FORM),
    )


def tier_for(value: Decimal, tiers: List[Tuple[Decimal, int]]) -> Optional[Tuple[Decimal, int]]:
    """First tier whose lower bound the value exceeds, or None"""
    for threshold, percentage in tiers:
        if value > threshold:
            return threshold, percentage
    return None
