"""Domain models - pure Python dataclasses representing fee calculation entities"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class ActivityType(str, Enum):
    """Kind of permit operation being applied for"""

    NEW = "new"
    AMENDMENT = "amendment"
    TRANSFER = "transfer"
    AMALGAMATION = "amalgamation"
    RENEWAL = "renewal"
    SURRENDER = "surrender"


class OdsChemicalType(str, Enum):
    """Ozone-depleting substance handled by the activity"""

    CFC = "CFC"
    HCFC = "HCFC"
    HFC = "HFC"
    HALONS = "Halons"
    OTHER = "other"


class WasteType(str, Enum):
    """Waste stream generated by the activity"""

    HAZARDOUS = "hazardous"
    INDUSTRIAL = "industrial"
    CHEMICAL = "chemical"
    MEDICAL = "medical"
    RADIOACTIVE = "radioactive"
    OTHER = "other"


class FeeCategory(str, Enum):
    """Category of a single fee line item"""

    ADMINISTRATION = "Administration"
    TECHNICAL = "Technical"
    SPECIAL = "Special"


class FeeSource(str, Enum):
    """Whether the fee structure came from reference data or the built-in default"""

    DATABASE = "database"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FeeParameters:
    """Inputs for a single fee calculation, assembled from the application form"""

    activity_type: Optional[ActivityType]
    permit_type: Optional[str]
    activity_level: Optional[int]  # 1-3 environmental impact tier
    prescribed_activity_id: Optional[str] = None
    project_cost_kina: Optional[Decimal] = None
    land_area_hectares: Optional[Decimal] = None
    duration_years: Optional[int] = None
    ods_chemical_type: Optional[OdsChemicalType] = None
    waste_type: Optional[WasteType] = None
    fee_category: Optional[str] = None  # lookup category; derived from level when absent


@dataclass(frozen=True)
class FeeStructureRecord:
    """Row of the fee_structures reference table"""

    permit_type: str
    fee_category: str
    activity_type: str
    annual_recurrent_fee: Decimal
    work_plan_amount: Decimal
    category_multiplier: Decimal
    base_processing_days: int
    administration_form: str
    technical_form: str
    is_active: bool = True


@dataclass
class FeeComponent:
    """Single line item of a fee breakdown"""

    component_name: str
    fee_category: FeeCategory
    base_amount: Decimal
    calculated_amount: Decimal
    formula_used: str
    is_mandatory: bool
    notes: str = ""


@dataclass
class MultiplierAdjustment:
    """Advisory tier annotation; shown to reviewers, never added to totals"""

    basis: str  # "project_cost" or "land_area"
    threshold_label: str
    percentage: int
    notes: str = ""


@dataclass
class FeeCalculationResult:
    """Output of the fee calculation engine"""

    components: List[FeeComponent]
    administration_fee: Decimal
    technical_fee: Decimal
    total_fee: Decimal
    processing_days: int
    administration_form: str
    technical_form: str
    source: FeeSource
    adjustments: List[MultiplierAdjustment] = field(default_factory=list)


class PaymentStatus(str, Enum):
    """Settlement state of a permit fee invoice"""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    WAIVED = "waived"


@dataclass(frozen=True)
class PaymentOutcome:
    """Invoice settlement after applying a payment or waiver"""

    amount_paid: Decimal
    balance_due: Decimal
    status: PaymentStatus
