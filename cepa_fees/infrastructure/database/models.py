"""SQLAlchemy ORM models for fee reference data, calculations and invoices"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Boolean,
    CheckConstraint,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Numeric,
    Text,
    JSON,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def utcnow() -> datetime:
    """Row timestamp with microsecond resolution, independent of transaction start"""
    return datetime.now(timezone.utc)


class FeeStructure(Base):
    """Fee schedule row keyed by (permit_type, activity_type, fee_category)"""

    __tablename__ = "fee_structures"
    __table_args__ = (
        CheckConstraint("annual_recurrent_fee IS NULL OR annual_recurrent_fee >= 0", name="ck_fee_structures_annual_fee"),
        CheckConstraint("work_plan_amount >= 0", name="ck_fee_structures_work_plan"),
        CheckConstraint("category_multiplier >= 0", name="ck_fee_structures_multiplier"),
        CheckConstraint("base_processing_days >= 0", name="ck_fee_structures_processing_days"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    permit_type = Column(Text, nullable=False, index=True)
    activity_type = Column(Text, nullable=False)
    fee_category = Column(Text, nullable=False)
    annual_recurrent_fee = Column(Numeric(14, 2), nullable=True)
    work_plan_amount = Column(Numeric(14, 2), nullable=False, default=0)
    category_multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    base_processing_days = Column(Integer, nullable=False, default=30)
    administration_form = Column(Text, nullable=False, default="Form 2")
    technical_form = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FeeCalculation(Base):
    """Logged fee calculation for a permit application"""

    __tablename__ = "fee_calculations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    permit_application_id = Column(Text, nullable=True, index=True)
    parameters = Column(JSON, nullable=False)
    components = Column(JSON, nullable=False)
    administration_fee = Column(Numeric(14, 2), nullable=False)
    technical_fee = Column(Numeric(14, 2), nullable=False)
    total_fee = Column(Numeric(14, 2), nullable=False)
    processing_days = Column(Integer, nullable=False)
    source = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    invoice = relationship("Invoice", back_populates="calculation", uselist=False, cascade="all, delete-orphan")


class Invoice(Base):
    """Permit fee invoice raised from a calculation, one per calculation"""

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("amount_paid >= 0", name="ck_invoices_amount_paid"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    calculation_id = Column(
        Uuid, ForeignKey("fee_calculations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    permit_application_id = Column(Text, nullable=True, index=True)
    invoice_number = Column(Text, nullable=False, unique=True)
    transaction_type = Column(Text, nullable=False, default="permit_fee")
    amount = Column(Numeric(14, 2), nullable=False)
    amount_paid = Column(Numeric(14, 2), nullable=False, default=0)
    currency = Column(Text, nullable=False, default="PGK")
    status = Column(Text, nullable=False, default="pending")  # pending | partial | paid | waived
    payment_method = Column(Text, nullable=True)
    payment_reference = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    calculation = relationship("FeeCalculation", back_populates="invoice")
