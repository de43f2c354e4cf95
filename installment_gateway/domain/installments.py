"""Installment schedule generation for new plans"""

from datetime import date
from typing import List, Optional

from installment_gateway.domain.exceptions import InvalidPlanError
from installment_gateway.domain.models import CustomerInfo, Installment, InstallmentUnit, Plan
from installment_gateway.domain.money import split_amount
from installment_gateway.utils.date_utils import advance_periods

# Thirty years of monthly installments
MAX_INSTALLMENT_COUNT = 360


def generate_installment_schedule(
    total_amount: int,
    installment_count: int,
    installment_unit: InstallmentUnit,
    start_date: date,
    due_day: Optional[int] = None,
    advance_amount: int = 0,
) -> List[Installment]:
    """
    Build the initial pending schedule for a plan.

    Requirements:
    - Financed amount is total minus advance
    - Each installment is ceil(financed / count); the last one absorbs the
      rounding surplus so advance + sum(amounts) == total exactly
    - Installment k is due k periods after start_date; monthly plans pin the
      day-of-month to due_day, clamped for shorter months

    Example:
        total 100000, advance 10000, 7 installments
        ceil(90000 / 7) = 12858 for 1-6, last = 90000 - 6 * 12858 = 12852

    Raises:
        InvalidPlanError: On non-positive amounts/counts, more than MAX_INSTALLMENT_COUNT
            installments, an out-of-range due day or due dates past the calendar range
    """
    if total_amount <= 0:
        raise InvalidPlanError("Total amount must be positive")
    if advance_amount < 0:
        raise InvalidPlanError("Advance amount cannot be negative")
    if installment_count <= 0:
        raise InvalidPlanError("Installment count must be positive")
    if installment_count > MAX_INSTALLMENT_COUNT:
        raise InvalidPlanError(f"Installment count cannot exceed {MAX_INSTALLMENT_COUNT}")
    if due_day is not None and not 1 <= due_day <= 31:
        raise InvalidPlanError("Due day must be between 1 and 31")

    remaining = total_amount - advance_amount
    if remaining <= 0:
        raise InvalidPlanError("Advance amount must be less than the total amount")

    unit = InstallmentUnit(installment_unit)
    amounts = split_amount(remaining, installment_count)

    try:
        due_dates = [
            advance_periods(start_date, unit.value, number, due_day)
            for number in range(1, installment_count + 1)
        ]
    except (ValueError, OverflowError) as e:
        raise InvalidPlanError(f"Schedule runs past the supported date range: {e}") from e

    return [
        Installment(installment_number=number, amount=amount, due_date=due_dates[number - 1])
        for number, amount in enumerate(amounts, start=1)
    ]


def create_plan(
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
    """Assemble a new plan with its generated schedule"""
    if not customer.customer_id:
        raise InvalidPlanError("Customer id is required")

    anchor_day = due_day or start_date.day
    installments = generate_installment_schedule(
        total_amount=total_amount,
        installment_count=installment_count,
        installment_unit=installment_unit,
        start_date=start_date,
        due_day=anchor_day,
        advance_amount=advance_amount,
    )

    return Plan(
        customer=customer,
        product_name=product_name,
        product_description=product_description,
        total_amount=total_amount,
        advance_amount=advance_amount,
        installment_count=installment_count,
        installment_unit=InstallmentUnit(installment_unit),
        due_day=anchor_day,
        start_date=start_date,
        installments=installments,
        created_by=created_by,
    )
