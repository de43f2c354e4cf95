"""Data access layer for installment plans"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError
from installment_gateway.infrastructure.database.models import InstallmentPlan, PlanInstallment
from installment_gateway.domain.exceptions import ConcurrentModificationError, InvalidPlanError, PlanNotFoundError
from installment_gateway.domain.models import (
    CustomerInfo,
    Installment,
    InstallmentStatus,
    InstallmentUnit,
    PaymentMethod,
    Plan,
)

# Descriptive fields that may change after creation; money and schedule fields never do
EDITABLE_PLAN_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_address",
    "product_name",
    "product_description",
)


def _to_domain_installment(row: PlanInstallment) -> Installment:
    return Installment(
        installment_number=row.installment_number,
        amount=row.amount,
        due_date=row.due_date,
        status=InstallmentStatus(row.status),
        actual_paid_amount=row.actual_paid_amount,
        paid_date=row.paid_date,
        payment_method=PaymentMethod(row.payment_method) if row.payment_method else None,
        notes=row.notes,
        paid_by=row.paid_by,
    )


def to_domain(record: InstallmentPlan) -> Plan:
    """Build a detached domain plan from its ORM record"""
    return Plan(
        plan_id=record.id,
        customer=CustomerInfo(
            customer_id=record.customer_id,
            name=record.customer_name,
            email=record.customer_email,
            phone=record.customer_phone,
            address=record.customer_address,
        ),
        product_name=record.product_name,
        product_description=record.product_description,
        total_amount=record.total_amount,
        advance_amount=record.advance_amount,
        installment_count=record.installment_count,
        installment_unit=InstallmentUnit(record.installment_unit),
        due_day=record.due_day,
        start_date=record.start_date,
        installments=[_to_domain_installment(row) for row in record.installments],
        created_by=record.created_by,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


class PlanRepository:
    """Repository for installment plans and their schedules"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(self, plan: Plan) -> InstallmentPlan:
        """Persist a new plan with all of its installments"""
        db_plan = InstallmentPlan(
            id=plan.plan_id,
            customer_id=plan.customer.customer_id,
            customer_name=plan.customer.name,
            customer_email=plan.customer.email,
            customer_phone=plan.customer.phone,
            customer_address=plan.customer.address,
            product_name=plan.product_name,
            product_description=plan.product_description,
            total_amount=plan.total_amount,
            advance_amount=plan.advance_amount,
            installment_count=plan.installment_count,
            installment_unit=plan.installment_unit.value,
            due_day=plan.due_day,
            start_date=plan.start_date,
            created_by=plan.created_by,
        )
        if plan.created_at is not None:
            db_plan.created_at = plan.created_at
            db_plan.updated_at = plan.created_at

        for inst in plan.installments:
            db_plan.installments.append(
                PlanInstallment(
                    installment_number=inst.installment_number,
                    amount=inst.amount,
                    due_date=inst.due_date,
                    status=inst.status.value,
                )
            )

        self.db.add(db_plan)
        self.db.flush()  # Get server defaults and version without committing
        return db_plan

    def get_record(self, plan_id: uuid.UUID) -> Optional[InstallmentPlan]:
        return self.db.get(InstallmentPlan, plan_id)

    def get_plan(self, plan_id: uuid.UUID) -> Optional[Plan]:
        """Fetch plan with installments as a domain object"""
        record = self.get_record(plan_id)
        return to_domain(record) if record else None

    def list_plans(
        self,
        created_by: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> List[Plan]:
        """Fetch plans newest first, optionally scoped to a creator and/or customer"""
        query = self.db.query(InstallmentPlan)
        if created_by is not None:
            query = query.filter(InstallmentPlan.created_by == created_by)
        if customer_id is not None:
            query = query.filter(InstallmentPlan.customer_id == customer_id)

        records = query.order_by(InstallmentPlan.created_at.desc()).all()
        return [to_domain(record) for record in records]

    def list_customer_plans(self, customer_id: str) -> List[Plan]:
        return self.list_plans(customer_id=customer_id)

    def save_plan(self, plan: Plan, now: datetime) -> InstallmentPlan:
        """
        Write a reconciled plan back as one unit.

        The stored version must still be the one the plan was loaded at.
        The plan row is always touched so its version is checked again and
        bumped at flush, even when only installment rows changed.

        Raises:
            PlanNotFoundError: Plan was deleted
            ConcurrentModificationError: Another writer committed first
        """
        record = self.get_record(plan.plan_id)
        if record is None:
            raise PlanNotFoundError(f"Plan {plan.plan_id} not found")
        if record.version != plan.version:
            raise ConcurrentModificationError(
                f"Plan {plan.plan_id} is at version {record.version}, "
                f"changes were computed from version {plan.version}; reload and retry"
            )

        rows = {row.installment_number: row for row in record.installments}
        for inst in plan.installments:
            row = rows[inst.installment_number]
            row.amount = inst.amount
            row.due_date = inst.due_date
            row.status = inst.status.value
            row.actual_paid_amount = inst.actual_paid_amount
            row.paid_date = inst.paid_date
            row.payment_method = inst.payment_method.value if inst.payment_method else None
            row.notes = inst.notes
            row.paid_by = inst.paid_by

        record.updated_at = now
        flag_modified(record, "updated_at")
        self._flush(plan.plan_id)
        plan.version = record.version
        return record

    def update_plan_details(self, plan_id: uuid.UUID, changes: Dict[str, Any], now: datetime) -> InstallmentPlan:
        record = self.get_record(plan_id)
        if record is None:
            raise PlanNotFoundError(f"Plan {plan_id} not found")

        for name, value in changes.items():
            if name not in EDITABLE_PLAN_FIELDS:
                raise InvalidPlanError(f"Field {name} cannot be updated")
            setattr(record, name, value)

        record.updated_at = now
        self._flush(plan_id)
        return record

    def delete_plan(self, plan_id: uuid.UUID) -> None:
        """Delete plan; installments go with it"""
        record = self.get_record(plan_id)
        if record is None:
            raise PlanNotFoundError(f"Plan {plan_id} not found")

        self.db.delete(record)
        self._flush(plan_id)

    def _flush(self, plan_id: uuid.UUID) -> None:
        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConcurrentModificationError(
                f"Plan {plan_id} was modified concurrently; reload and retry"
            ) from e
