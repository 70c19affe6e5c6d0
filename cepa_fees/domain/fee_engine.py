"""Fee calculation engine - core business logic for permit fee assessment"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Protocol, Tuple

from cepa_fees.domain.exceptions import InvalidFeeStructure, ValidationError
from cepa_fees.domain.models import (
    ActivityType,
    FeeCalculationResult,
    FeeCategory,
    FeeComponent,
    FeeParameters,
    FeeSource,
    FeeStructureRecord,
    MultiplierAdjustment,
    OdsChemicalType,
    WasteType,
)
from cepa_fees.domain.rates import (
    DAYS_PER_YEAR,
    DEFAULT_FALLBACK,
    EXTRA_DAYS_PER_PERMIT_YEAR,
    LAND_AREA_TIERS,
    ODS_BASE_RATES,
    ODS_COST_THRESHOLD,
    ODS_HIGH_COST_MULTIPLIER,
    PROJECT_COST_TIERS,
    WASTE_AREA_TIERS,
    WASTE_BASE_RATES,
    FallbackFees,
    fallback_structure,
    lookup_fee_category,
    tier_for,
)

CENTS = Decimal("0.01")
ACTIVITY_LEVELS = (1, 2, 3)


class FeeStructureLookup(Protocol):
    """Reference-data capability supplied by the caller"""

    def find_fee_structure(
        self, permit_type: str, activity_type: str, fee_category: str
    ) -> Optional[FeeStructureRecord]:
        """Return the matching active record, or None when nothing matches"""
        ...


class StaticFeeStructureLookup:
    """In-memory lookup over a fixed set of fee structures"""

    def __init__(self, structures: Iterable[FeeStructureRecord]):
        self._structures = {
            (s.permit_type, s.activity_type, s.fee_category): s
            for s in structures
            if s.is_active
        }

    def find_fee_structure(
        self, permit_type: str, activity_type: str, fee_category: str
    ) -> Optional[FeeStructureRecord]:
        return self._structures.get((permit_type, activity_type, fee_category))


def _amount(value) -> Decimal:
    """Coerce an optional numeric input to Decimal, treating absence as zero"""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_parameters(params: FeeParameters) -> None:
    """
    Check required identity fields and numeric ranges.

    Raises:
        ValidationError: listing every offending field, in declaration order
    """
    fields: List[str] = []
    messages: List[str] = []

    def reject(name: str, message: str) -> None:
        fields.append(name)
        messages.append(message)

    if params.activity_type is None:
        reject("activity_type", "activity type is required")
    if not params.permit_type or not params.permit_type.strip():
        reject("permit_type", "permit type is required")
    if params.activity_level is None:
        reject("activity_level", "activity level is required")
    elif params.activity_level not in ACTIVITY_LEVELS:
        reject("activity_level", "activity level must be 1, 2 or 3")

    if params.project_cost_kina is not None and _amount(params.project_cost_kina) < 0:
        reject("project_cost_kina", "project cost must not be negative")
    if params.land_area_hectares is not None and _amount(params.land_area_hectares) < 0:
        reject("land_area_hectares", "land area must not be negative")
    if params.duration_years is not None and params.duration_years < 1:
        reject("duration_years", "duration must be at least one year")

    if fields:
        raise ValidationError(fields, messages)


def calculate_processing_days(base_processing_days: int, duration_years: Optional[int]) -> int:
    """One extra month of processing per additional permit year"""
    if duration_years and duration_years > 1:
        return base_processing_days + (duration_years - 1) * EXTRA_DAYS_PER_PERMIT_YEAR
    return base_processing_days


def multiplier_adjustments(params: FeeParameters) -> List[MultiplierAdjustment]:
    """
    Advisory tier annotations for project cost and land area.

    These rows tell a reviewer which tier an application falls into. They are
    not compounded into the administration, technical or total fee.
    """
    adjustments = []

    cost_tier = tier_for(_amount(params.project_cost_kina), PROJECT_COST_TIERS)
    if cost_tier:
        threshold, percentage = cost_tier
        adjustments.append(
            MultiplierAdjustment(
                basis="project_cost",
                threshold_label=f"Project cost > K{threshold:,}",
                percentage=percentage,
                notes=f"Project cost K{_amount(params.project_cost_kina):,}",
            )
        )

    area_tier = tier_for(_amount(params.land_area_hectares), LAND_AREA_TIERS)
    if area_tier:
        threshold, percentage = area_tier
        adjustments.append(
            MultiplierAdjustment(
                basis="land_area",
                threshold_label=f"Land area > {threshold:,} ha",
                percentage=percentage,
                notes=f"Land area {_amount(params.land_area_hectares):,} ha",
            )
        )

    return adjustments


def ods_surcharge(chemical_type: OdsChemicalType, project_cost_kina: Optional[Decimal]) -> FeeComponent:
    """ODS handling surcharge: base rate by chemical, x1.5 above K100,000 project cost"""
    base_rate = ODS_BASE_RATES.get(chemical_type, ODS_BASE_RATES[OdsChemicalType.OTHER])
    cost_multiplier = ODS_HIGH_COST_MULTIPLIER if _amount(project_cost_kina) > ODS_COST_THRESHOLD else Decimal(1)

    return FeeComponent(
        component_name="ODS Chemical Surcharge",
        fee_category=FeeCategory.SPECIAL,
        base_amount=_to_cents(base_rate),
        calculated_amount=_to_cents(base_rate * cost_multiplier),
        formula_used=f"ODS {chemical_type.value} Base Rate × Cost Multiplier ({cost_multiplier})",
        is_mandatory=True,
        notes=f"Special fee for {chemical_type.value} chemical handling",
    )


def waste_management_fee(waste_type: WasteType, land_area_hectares: Optional[Decimal]) -> FeeComponent:
    """Waste management fee: base rate by waste type, scaled by land area tier"""
    base_rate = WASTE_BASE_RATES.get(waste_type, WASTE_BASE_RATES[WasteType.OTHER])
    land_area = _amount(land_area_hectares)

    area_multiplier = Decimal(1)
    for threshold, multiplier in WASTE_AREA_TIERS:
        if land_area > threshold:
            area_multiplier = multiplier
            break

    return FeeComponent(
        component_name="Waste Management Fee",
        fee_category=FeeCategory.SPECIAL,
        base_amount=_to_cents(base_rate),
        calculated_amount=_to_cents(base_rate * area_multiplier),
        formula_used=f"{waste_type.value.capitalize()} Waste Base Rate × Area Multiplier ({area_multiplier})",
        is_mandatory=True,
        notes=f"Special fee for {waste_type.value} waste management",
    )


def check_fee_structure(structure: FeeStructureRecord) -> None:
    """
    Reject reference data that would produce negative fees.

    Raises:
        InvalidFeeStructure: naming every negative field of the record
    """
    negative = [
        name
        for name in ("annual_recurrent_fee", "work_plan_amount", "category_multiplier", "base_processing_days")
        if _amount(getattr(structure, name)) < 0
    ]
    if negative:
        raise InvalidFeeStructure(
            f"Fee structure {structure.permit_type}/{structure.activity_type}/{structure.fee_category} "
            f"has negative values: {', '.join(negative)}"
        )


def _resolve_structure(
    params: FeeParameters,
    structure: Optional[FeeStructureRecord],
    fallback: FallbackFees,
) -> Tuple[FeeStructureRecord, FeeSource]:
    if structure is None:
        return fallback_structure(params, fallback), FeeSource.FALLBACK
    check_fee_structure(structure)
    return structure, FeeSource.DATABASE


def build_fee_breakdown(
    params: FeeParameters,
    structure: Optional[FeeStructureRecord],
    fallback: FallbackFees = DEFAULT_FALLBACK,
) -> FeeCalculationResult:
    """
    Compute the fee breakdown from an already resolved fee structure.

    A structure of None means the lookup confirmed there is no matching row;
    the fallback structure is used and the result is marked as such.
    A database record with negative amounts raises InvalidFeeStructure.

    Components are emitted in order: administration, technical, then ODS and
    waste surcharges when applicable. total_fee is the sum of their
    calculated amounts.
    """
    resolved, source = _resolve_structure(params, structure, fallback)

    base_days = resolved.base_processing_days
    processing_days = calculate_processing_days(base_days, params.duration_years)
    processing_note = f"Processing time: {processing_days} days"
    if processing_days != base_days:
        processing_note += (
            f" ({base_days} base + {processing_days - base_days} for a "
            f"{params.duration_years}-year permit)"
        )

    annual_fee = _amount(resolved.annual_recurrent_fee)
    work_plan = _amount(resolved.work_plan_amount)

    administration = FeeComponent(
        component_name="Administration Fee",
        fee_category=FeeCategory.ADMINISTRATION,
        base_amount=_to_cents(annual_fee),
        calculated_amount=_to_cents(annual_fee / DAYS_PER_YEAR * processing_days),
        formula_used="(Annual Recurrent Fee ÷ 365) × Processing Days",
        is_mandatory=True,
        notes=f"{processing_note}. Form: {resolved.administration_form}",
    )
    technical = FeeComponent(
        component_name="Technical Fee",
        fee_category=FeeCategory.TECHNICAL,
        base_amount=_to_cents(work_plan),
        calculated_amount=_to_cents(work_plan),
        formula_used="Work Plan Amount",
        is_mandatory=True,
        notes=f"Form: {resolved.technical_form}. Assessment for Level {params.activity_level} permit",
    )

    components = [administration, technical]
    if params.ods_chemical_type is not None:
        components.append(ods_surcharge(params.ods_chemical_type, params.project_cost_kina))
    if params.waste_type is not None:
        components.append(waste_management_fee(params.waste_type, params.land_area_hectares))

    return FeeCalculationResult(
        components=components,
        administration_fee=administration.calculated_amount,
        technical_fee=technical.calculated_amount,
        total_fee=sum((c.calculated_amount for c in components), Decimal(0)),
        processing_days=processing_days,
        administration_form=resolved.administration_form,
        technical_form=resolved.technical_form,
        source=source,
        adjustments=multiplier_adjustments(params),
    )


def calculate_fees(
    params: FeeParameters,
    lookup: FeeStructureLookup,
    fallback: FallbackFees = DEFAULT_FALLBACK,
) -> FeeCalculationResult:
    """
    Main entry point: validate, resolve the fee structure and compute fees.

    Lookup errors propagate unchanged; only a None result (no matching row)
    falls back to the default structure.

    Raises:
        ValidationError: required parameters missing or out of range
    """
    validate_parameters(params)

    activity_type: ActivityType = params.activity_type
    structure = lookup.find_fee_structure(
        params.permit_type,
        activity_type.value,
        lookup_fee_category(params),
    )

    return build_fee_breakdown(params, structure, fallback)
