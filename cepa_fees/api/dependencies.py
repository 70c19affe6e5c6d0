"""Dependency injection for FastAPI endpoints"""

from decimal import Decimal
from fastapi import Request
from cepa_fees.config import settings
from cepa_fees.domain.rates import FallbackFees
from cepa_fees.infrastructure.clients.revenue import RevenueClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_revenue_client() -> RevenueClient:
    """Provide revenue webhook client instance"""
    return RevenueClient()


def get_fallback_fees() -> FallbackFees:
    """Fallback fee structure amounts from configuration"""
    return FallbackFees(
        annual_recurrent_fee=Decimal(str(settings.fallback_annual_recurrent_fee)),
        work_plan_amount=Decimal(str(settings.fallback_work_plan_amount)),
        base_processing_days=settings.fallback_processing_days,
    )
