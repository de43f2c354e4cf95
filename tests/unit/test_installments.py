"""Unit tests for installment schedule generation"""

import pytest
from datetime import date
from installment_gateway.domain.exceptions import InvalidPlanError
from installment_gateway.domain.installments import MAX_INSTALLMENT_COUNT, create_plan, generate_installment_schedule
from installment_gateway.domain.models import CustomerInfo, InstallmentStatus, InstallmentUnit


def test_schedule_exact_split():
    """total 100000, advance 10000, 3 installments -> 30000 each"""
    installments = generate_installment_schedule(
        total_amount=100000,
        advance_amount=10000,
        installment_count=3,
        installment_unit=InstallmentUnit.MONTHS,
        start_date=date(2025, 1, 1),
        due_day=1,
    )

    assert [inst.amount for inst in installments] == [30000, 30000, 30000]


def test_schedule_rounding():
    """Round-up per installment, last installment absorbs the surplus"""
    installments = generate_installment_schedule(
        total_amount=100000,
        advance_amount=10000,
        installment_count=7,
        installment_unit=InstallmentUnit.MONTHS,
        start_date=date(2025, 1, 1),
        due_day=1,
    )

    assert len(installments) == 7
    assert all(inst.amount == 12858 for inst in installments[:6])
    assert installments[6].amount == 12852  # 90000 - 6 * 12858


@pytest.mark.parametrize(
    "total,advance,count",
    [(100000, 10000, 7), (100000, 0, 12), (5000, 4999, 1), (10, 5, 4), (123457, 3457, 9)],
)
def test_schedule_closes_to_total(total, advance, count):
    installments = generate_installment_schedule(
        total_amount=total,
        advance_amount=advance,
        installment_count=count,
        installment_unit=InstallmentUnit.WEEKS,
        start_date=date(2025, 1, 1),
    )

    assert advance + sum(inst.amount for inst in installments) == total
    assert all(inst.amount >= 0 for inst in installments)


def test_schedule_rows_start_pending_and_numbered():
    installments = generate_installment_schedule(
        total_amount=3000,
        installment_count=3,
        installment_unit=InstallmentUnit.DAYS,
        start_date=date(2025, 1, 1),
    )

    assert [inst.installment_number for inst in installments] == [1, 2, 3]
    assert all(inst.status == InstallmentStatus.PENDING for inst in installments)
    assert all(inst.actual_paid_amount is None for inst in installments)


def test_schedule_daily_and_weekly_dates():
    start = date(2025, 1, 1)
    daily = generate_installment_schedule(3000, 3, InstallmentUnit.DAYS, start)
    weekly = generate_installment_schedule(3000, 3, InstallmentUnit.WEEKS, start)

    assert [inst.due_date for inst in daily] == [date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 4)]
    assert [inst.due_date for inst in weekly] == [date(2025, 1, 8), date(2025, 1, 15), date(2025, 1, 22)]


def test_schedule_monthly_dates_pinned_to_due_day():
    """Due day 31 is clamped in short months and restored in long ones"""
    installments = generate_installment_schedule(
        total_amount=4000,
        installment_count=4,
        installment_unit=InstallmentUnit.MONTHS,
        start_date=date(2024, 12, 15),
        due_day=31,
    )

    assert [inst.due_date for inst in installments] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"total_amount": 0},
        {"total_amount": -100},
        {"advance_amount": 5000},
        {"advance_amount": 6000},
        {"advance_amount": -1},
        {"installment_count": 0},
        {"due_day": 32},
        {"installment_count": 100000},
        {"start_date": date(9999, 9, 1)},
        {"start_date": date(9999, 12, 20), "installment_unit": InstallmentUnit.WEEKS},
    ],
)
def test_schedule_invalid_input(kwargs):
    params = {
        "total_amount": 5000,
        "advance_amount": 0,
        "installment_count": 5,
        "installment_unit": InstallmentUnit.MONTHS,
        "start_date": date(2025, 1, 1),
        "due_day": 1,
    }
    params.update(kwargs)

    with pytest.raises(InvalidPlanError):
        generate_installment_schedule(**params)


def test_create_plan_defaults_due_day_to_start_day():
    plan = create_plan(
        customer=CustomerInfo(customer_id="C-9"),
        product_name="Phone",
        total_amount=2000,
        installment_count=2,
        installment_unit=InstallmentUnit.MONTHS,
        start_date=date(2025, 5, 20),
    )

    assert plan.due_day == 20
    assert plan.installments[0].due_date == date(2025, 6, 20)
    assert plan.customer_id == "C-9"


def test_create_plan_requires_customer():
    with pytest.raises(InvalidPlanError):
        create_plan(
            customer=CustomerInfo(customer_id=""),
            product_name="Phone",
            total_amount=2000,
            installment_count=2,
            installment_unit=InstallmentUnit.MONTHS,
            start_date=date(2025, 5, 20),
        )
