"""Plan service - one unit of work per plan operation"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from installment_gateway.config import settings
from installment_gateway.domain import reconciliation
from installment_gateway.domain.exceptions import ConcurrentModificationError, PlanNotFoundError
from installment_gateway.domain.installments import create_plan
from installment_gateway.domain.models import (
    CustomerInfo,
    DerivedStatus,
    InstallmentUnit,
    PaymentMethod,
    PaymentResult,
    Plan,
)
from installment_gateway.domain.status import derive_installment_status, summarize_plan
from installment_gateway.infrastructure.database.repositories import PlanRepository
from installment_gateway.infrastructure.observability.metrics import (
    concurrent_modification_counter,
    payment_edit_counter,
    payment_reversal_counter,
    plans_created_counter,
    record_payment_outcome,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanService:
    """
    Owns the read-compute-write cycle for a plan.

    Every mutation loads the plan, runs the domain operation on that fresh
    copy, writes the whole plan back and commits. Any failure rolls the
    session back, so callers never observe a partial write.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        currency_label: str | None = None,
    ):
        self.db = db
        self.repo = PlanRepository(db)
        self.clock = clock
        self.currency_label = settings.currency_label if currency_label is None else currency_label

    def now(self) -> datetime:
        return self.clock()

    # Reads

    def get_plan(self, plan_id: uuid.UUID) -> Plan:
        plan = self.repo.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Plan {plan_id} not found")
        return plan

    def list_plans(
        self,
        created_by: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> List[Plan]:
        return self.repo.list_plans(created_by=created_by, customer_id=customer_id)

    def list_customer_plans(self, customer_id: str) -> List[Plan]:
        return self.repo.list_customer_plans(customer_id)

    def get_customer_overview(self, customer_id: str) -> Tuple[CustomerInfo, List[Plan]]:
        """
        Contact details and plans for one customer, newest plan first.

        Contact comes from the newest plan's snapshot.

        Raises:
            PlanNotFoundError: Customer has no plans
        """
        plans = self.list_customer_plans(customer_id)
        if not plans:
            raise PlanNotFoundError(f"No installment plans found for customer {customer_id}")
        return plans[0].customer, plans

    def dashboard_stats(self, created_by: Optional[str] = None, recent_limit: int = 10) -> Dict[str, Any]:
        """Totals for the staff dashboard: plans, installment counts, revenue, latest payments"""
        now = self.now()
        plans = self.repo.list_plans(created_by=created_by)

        stats = {
            "total_plans": len(plans),
            "total_installments": 0,
            "pending_payments": 0,
            "overdue_payments": 0,
            "completed_payments": 0,
            "total_revenue": 0,
            "total_advance": 0,
            "outstanding_amount": 0,
        }
        recent = []

        for plan in plans:
            stats["total_advance"] += plan.advance_amount
            stats["outstanding_amount"] += max(summarize_plan(plan, now).remaining_amount, 0)
            for inst in plan.installments:
                stats["total_installments"] += 1
                status = derive_installment_status(inst, now)
                if status == DerivedStatus.PAID:
                    stats["completed_payments"] += 1
                    stats["total_revenue"] += inst.actual_paid_amount or 0
                    recent.append(
                        {
                            "plan_id": str(plan.plan_id),
                            "customer_name": plan.customer.name,
                            "product_name": plan.product_name,
                            "installment_number": inst.installment_number,
                            "amount": inst.actual_paid_amount or 0,
                            "paid_date": inst.paid_date,
                        }
                    )
                elif status == DerivedStatus.OVERDUE:
                    stats["overdue_payments"] += 1
                else:
                    stats["pending_payments"] += 1

        recent.sort(key=lambda item: _sort_key(item["paid_date"]), reverse=True)
        stats["recent_payments"] = recent[:recent_limit]
        return stats

    # Writes

    def create_plan(
        self,
        customer: CustomerInfo,
        product_name: str,
        total_amount: int,
        installment_count: int,
        installment_unit: InstallmentUnit,
        start_date: date,
        due_day: Optional[int] = None,
        advance_amount: int = 0,
        product_description: str = "",
        created_by: Optional[str] = None,
    ) -> Plan:
        plan = create_plan(
            customer=customer,
            product_name=product_name,
            product_description=product_description,
            total_amount=total_amount,
            advance_amount=advance_amount,
            installment_count=installment_count,
            installment_unit=installment_unit,
            start_date=start_date,
            due_day=due_day,
            created_by=created_by,
        )
        plan.created_at = self.now()

        try:
            record = self.repo.create_plan(plan)
            plan.version = record.version
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        plans_created_counter.labels(unit=plan.installment_unit.value).inc()
        return plan

    def record_payment(
        self,
        plan_id: uuid.UUID,
        installment_number: int,
        paid_amount: Optional[int] = None,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        notes: str = "",
        due_date: Optional[date] = None,
        paid_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> PaymentResult:
        now = self.now()
        result = self._mutate(
            plan_id,
            expected_version,
            lambda plan: reconciliation.record_payment(
                plan,
                installment_number,
                paid_amount=paid_amount,
                payment_method=payment_method,
                notes=notes,
                due_date=due_date,
                paid_by=paid_by,
                now=now,
                currency_label=self.currency_label,
            ),
        )

        difference = result.distribution.difference if result.distribution else 0
        record_payment_outcome(difference, [w.reason for w in result.warnings])
        return result

    def edit_payment(
        self,
        plan_id: uuid.UUID,
        installment_number: int,
        paid_amount: Optional[int] = None,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
        paid_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> PaymentResult:
        result = self._mutate(
            plan_id,
            expected_version,
            lambda plan: reconciliation.edit_payment(
                plan,
                installment_number,
                paid_amount=paid_amount,
                payment_method=payment_method,
                notes=notes,
                due_date=due_date,
                paid_by=paid_by,
            ),
        )
        payment_edit_counter.inc()
        return result

    def record_or_edit_payment(
        self,
        plan_id: uuid.UUID,
        installment_number: int,
        paid_amount: Optional[int] = None,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
        paid_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> tuple[PaymentResult, bool]:
        """
        Single pay endpoint semantics: record when the installment is pending,
        edit when it is already paid.

        Returns:
            (result, edited) where edited is True for the EditPayment path
        """
        plan = self.get_plan(plan_id)
        target = plan.find_installment(installment_number)

        if target is not None and target.is_paid:
            result = self.edit_payment(
                plan_id,
                installment_number,
                paid_amount=paid_amount,
                payment_method=payment_method,
                notes=notes,
                due_date=due_date,
                paid_by=paid_by,
                expected_version=plan.version if expected_version is None else expected_version,
            )
            return result, True

        result = self.record_payment(
            plan_id,
            installment_number,
            paid_amount=paid_amount,
            payment_method=payment_method or PaymentMethod.CASH,
            notes=notes or "",
            due_date=due_date,
            paid_by=paid_by,
            expected_version=plan.version if expected_version is None else expected_version,
        )
        return result, False

    def mark_unpaid(
        self,
        plan_id: uuid.UUID,
        installment_number: int,
        expected_version: Optional[int] = None,
    ) -> PaymentResult:
        result = self._mutate(
            plan_id,
            expected_version,
            lambda plan: reconciliation.mark_unpaid(plan, installment_number),
        )
        payment_reversal_counter.inc()
        return result

    def update_plan_details(self, plan_id: uuid.UUID, changes: Dict[str, Any]) -> Plan:
        try:
            self.repo.update_plan_details(plan_id, changes, self.now())
            self.db.commit()
        except ConcurrentModificationError:
            concurrent_modification_counter.inc()
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            raise
        return self.get_plan(plan_id)

    def delete_plan(self, plan_id: uuid.UUID) -> Plan:
        plan = self.get_plan(plan_id)
        try:
            self.repo.delete_plan(plan_id)
            self.db.commit()
        except ConcurrentModificationError:
            concurrent_modification_counter.inc()
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            raise
        return plan

    def _mutate(
        self,
        plan_id: uuid.UUID,
        expected_version: Optional[int],
        operation: Callable[[Plan], T],
    ) -> T:
        try:
            plan = self.get_plan(plan_id)
            if expected_version is not None and plan.version != expected_version:
                raise ConcurrentModificationError(
                    f"Plan {plan_id} is at version {plan.version}, expected {expected_version}"
                )

            result = operation(plan)
            self.repo.save_plan(plan, self.now())
            self.db.commit()
            return result

        except ConcurrentModificationError:
            concurrent_modification_counter.inc()
            self.db.rollback()
            logger.warning("Concurrent modification rejected", extra={"plan_id": str(plan_id)})
            raise
        except Exception:
            self.db.rollback()
            raise


def _sort_key(value: Optional[datetime]) -> float:
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()
