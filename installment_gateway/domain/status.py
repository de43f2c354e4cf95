"""Read-time status derivation and plan aggregates (pure, nothing persisted)"""

from datetime import datetime

from installment_gateway.domain.models import DerivedStatus, Installment, Plan, PlanStatus, PlanSummary
from installment_gateway.domain.money import ceil_div


def derive_installment_status(installment: Installment, now: datetime) -> DerivedStatus:
    """Paid rows are always PAID; pending rows are OVERDUE once their due date has passed"""
    if installment.is_paid:
        return DerivedStatus.PAID
    if installment.due_date < now.date():
        return DerivedStatus.OVERDUE
    return DerivedStatus.PENDING


def derive_plan_status(plan: Plan, now: datetime) -> PlanStatus:
    statuses = [derive_installment_status(inst, now) for inst in plan.installments]
    if all(status == DerivedStatus.PAID for status in statuses):
        return PlanStatus.COMPLETED
    if DerivedStatus.OVERDUE in statuses:
        return PlanStatus.OVERDUE
    return PlanStatus.ACTIVE


def summarize_plan(plan: Plan, now: datetime) -> PlanSummary:
    """
    Aggregate a plan for listing views.

    - total_paid_amount: advance plus everything actually collected
    - remaining_amount: total - advance - collected installments
    - new_installment_amount: remaining spread evenly (round-up) over unpaid rows
    """
    statuses = {inst.installment_number: derive_installment_status(inst, now) for inst in plan.installments}
    paid = [inst for inst in plan.installments if inst.is_paid]
    unpaid = sorted(
        (inst for inst in plan.installments if not inst.is_paid),
        key=lambda inst: inst.installment_number,
    )

    collected = sum(inst.actual_paid_amount or 0 for inst in paid)
    remaining_amount = plan.total_amount - plan.advance_amount - collected
    new_installment_amount = (
        ceil_div(max(remaining_amount, 0), len(unpaid)) if unpaid else 0
    )

    return PlanSummary(
        status=derive_plan_status(plan, now),
        paid_count=len(paid),
        unpaid_count=len(unpaid),
        overdue_count=sum(1 for status in statuses.values() if status == DerivedStatus.OVERDUE),
        total_paid_amount=plan.advance_amount + collected,
        remaining_amount=remaining_amount,
        new_installment_amount=new_installment_amount,
        next_unpaid=unpaid[0] if unpaid else None,
    )
