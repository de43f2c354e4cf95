"""SQLAlchemy ORM models for installment plans"""

import uuid
from sqlalchemy import Column, BigInteger, DateTime, Date, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class InstallmentPlan(Base):
    """Customer installment agreement"""

    __tablename__ = "installment_plan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(Text, nullable=False, index=True)
    customer_name = Column(Text, nullable=False, default="")
    customer_email = Column(Text, nullable=False, default="")
    customer_phone = Column(Text, nullable=False, default="")
    customer_address = Column(Text, nullable=False, default="")
    product_name = Column(Text, nullable=False)
    product_description = Column(Text, nullable=False, default="")
    total_amount = Column(BigInteger, nullable=False)
    advance_amount = Column(BigInteger, nullable=False, default=0)
    installment_count = Column(Integer, nullable=False)
    installment_unit = Column(Text, nullable=False)
    due_day = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    created_by = Column(Text, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    # Optimistic concurrency: every UPDATE checks and bumps this counter
    version = Column(Integer, nullable=False)

    installments = relationship(
        "PlanInstallment",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanInstallment.installment_number",
    )

    __mapper_args__ = {"version_id_col": version}


class PlanInstallment(Base):
    """Individual scheduled payment within a plan"""

    __tablename__ = "plan_installment"
    __table_args__ = (UniqueConstraint("plan_id", "installment_number", name="uq_plan_installment_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("installment_plan.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    amount = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    actual_paid_amount = Column(BigInteger, nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    paid_by = Column(Text, nullable=True)

    plan = relationship("InstallmentPlan", back_populates="installments")
