"""Unit tests for payment reconciliation"""

import copy
import pytest
from datetime import date
from installment_gateway.domain.exceptions import (
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    InstallmentNotPaidError,
    InvalidAmountError,
)
from installment_gateway.domain.models import Installment, InstallmentStatus, PaymentMethod
from installment_gateway.domain.reconciliation import edit_payment, mark_unpaid, record_payment, redistribute

from conftest import NOW, amounts, plan_balance


def test_exact_payment_has_no_distribution(flat_plan):
    result = record_payment(flat_plan, 1, payment_method=PaymentMethod.WALLET, notes="on time", now=NOW)

    inst = result.installment
    assert inst.status == InstallmentStatus.PAID
    assert inst.actual_paid_amount == 1000
    assert inst.payment_method == PaymentMethod.WALLET
    assert inst.notes == "on time"
    assert inst.paid_date == NOW
    assert result.distribution is None
    assert amounts(flat_plan) == [1000] * 5


def test_excess_payment_reduces_remaining_installments(flat_plan):
    """Installment 2 paid at 1300: the extra 300 comes off installments 3-5"""
    result = record_payment(flat_plan, 2, paid_amount=1300, now=NOW)

    assert amounts(flat_plan) == [1000, 1000, 900, 900, 900]
    assert flat_plan.installments[1].actual_paid_amount == 1300
    assert result.distribution.difference == 300
    assert result.distribution.remaining_count == 3
    assert result.distribution.amount_per_installment == 100
    assert result.distribution.is_excess is True
    assert result.warnings == []
    assert plan_balance(flat_plan) == flat_plan.total_amount


def test_shortfall_raises_remaining_installments(flat_plan):
    result = record_payment(flat_plan, 2, paid_amount=700, now=NOW)

    assert amounts(flat_plan) == [1000, 1000, 1100, 1100, 1100]
    assert result.distribution.difference == -300
    assert result.distribution.is_excess is False
    assert plan_balance(flat_plan) == flat_plan.total_amount


def test_residual_goes_to_last_remaining_installment(flat_plan):
    """delta 100 over 3 rows: ceil gives 34, 34 and the last takes 32"""
    result = record_payment(flat_plan, 2, paid_amount=900, now=NOW)

    assert amounts(flat_plan)[2:] == [1034, 1034, 1032]
    assert result.distribution.amount_per_installment == 34
    assert plan_balance(flat_plan) == flat_plan.total_amount


def test_paid_later_installments_are_not_touched(flat_plan):
    """Installment 5 already paid: only 3 and 4 absorb the difference"""
    record_payment(flat_plan, 5, now=NOW)
    result = record_payment(flat_plan, 2, paid_amount=1300, now=NOW)

    assert amounts(flat_plan) == [1000, 1000, 850, 850, 1000]
    assert flat_plan.installments[4].actual_paid_amount == 1000
    assert result.distribution.remaining_count == 2
    assert plan_balance(flat_plan) == flat_plan.total_amount


def test_earlier_pending_installments_are_not_touched(flat_plan):
    record_payment(flat_plan, 3, paid_amount=1200, now=NOW)

    assert amounts(flat_plan) == [1000, 1000, 1000, 900, 900]


def test_redistribute_carries_clamped_remainder_forward():
    rows = [
        Installment(installment_number=3, amount=100, due_date=date(2025, 5, 1)),
        Installment(installment_number=4, amount=1000, due_date=date(2025, 6, 1)),
    ]

    unabsorbed = redistribute(rows, 600)

    assert unabsorbed == 0
    assert [row.amount for row in rows] == [0, 500]


def test_excess_beyond_remaining_schedule_is_clamped_and_reported(flat_plan):
    result = record_payment(flat_plan, 3, paid_amount=3500, now=NOW)

    assert amounts(flat_plan)[3:] == [0, 0]
    assert len(result.warnings) == 1
    assert result.warnings[0].reason == "clamped"
    assert result.warnings[0].amount == 500
    assert result.distribution.unabsorbed_amount == 500
    assert all(amount >= 0 for amount in amounts(flat_plan))


def test_installments_brought_to_zero_are_settled(flat_plan):
    result = record_payment(
        flat_plan, 3, paid_amount=3500, payment_method=PaymentMethod.WALLET, paid_by="m-1", now=NOW
    )

    assert result.settled_installments == [4, 5]
    for inst in flat_plan.installments[3:]:
        assert inst.status == InstallmentStatus.PAID
        assert inst.actual_paid_amount == 0
        assert inst.payment_method == PaymentMethod.WALLET
        assert inst.paid_by == "m-1"
        assert inst.paid_date == NOW
        assert inst.notes == "Covered by installment 3 payment"
    assert plan_balance(flat_plan) == 5000 + 500


def test_partial_reduction_settles_nothing(flat_plan):
    result = record_payment(flat_plan, 2, paid_amount=1300, now=NOW)

    assert result.settled_installments == []
    assert [inst.status for inst in flat_plan.installments[2:]] == [InstallmentStatus.PENDING] * 3


def test_zero_amount_installment_cannot_be_paid_at_zero(flat_plan):
    flat_plan.installments[4].amount = 0
    before = copy.deepcopy(flat_plan)

    with pytest.raises(InvalidAmountError):
        record_payment(flat_plan, 5, now=NOW)
    assert flat_plan == before

    result = record_payment(flat_plan, 5, paid_amount=100, now=NOW)
    assert result.installment.actual_paid_amount == 100
    assert result.warnings[0].reason == "no_remaining_installments"


def test_difference_on_last_installment_is_reported_not_pushed(flat_plan):
    for number in range(1, 5):
        record_payment(flat_plan, number, now=NOW)

    result = record_payment(flat_plan, 5, paid_amount=1200, now=NOW)

    assert result.distribution.remaining_count == 0
    assert result.distribution.amount_per_installment == 0
    assert result.distribution.unabsorbed_amount == 200
    assert result.warnings[0].reason == "no_remaining_installments"
    assert [inst.actual_paid_amount for inst in flat_plan.installments[:4]] == [1000] * 4


def test_due_date_can_be_corrected_on_payment(flat_plan):
    record_payment(flat_plan, 1, due_date=date(2025, 4, 12), now=NOW)

    assert flat_plan.installments[0].due_date == date(2025, 4, 12)


def test_distribution_message_uses_currency_label(flat_plan):
    result = record_payment(flat_plan, 2, paid_amount=1300, now=NOW, currency_label="Rs.")

    assert result.distribution.message == (
        "Excess payment of Rs. 300 distributed across 3 remaining installments (Rs. 100 each)"
    )


def test_payment_sequence_keeps_plan_balanced(flat_plan):
    """advance + collected + scheduled stays equal to the total after each payment"""
    for number, paid in [(1, 1200), (2, 500), (3, 1000), (4, 999)]:
        record_payment(flat_plan, number, paid_amount=paid, now=NOW)
        assert plan_balance(flat_plan) == flat_plan.total_amount

    assert flat_plan.installments[4].amount == 1301


@pytest.mark.parametrize("bad_amount", [0, -5])
def test_invalid_amount_leaves_installment_pending(flat_plan, bad_amount):
    with pytest.raises(InvalidAmountError):
        record_payment(flat_plan, 1, paid_amount=bad_amount, now=NOW)

    assert flat_plan.installments[0].status == InstallmentStatus.PENDING
    assert amounts(flat_plan) == [1000] * 5


def test_paying_twice_is_rejected(flat_plan):
    record_payment(flat_plan, 1, now=NOW)

    with pytest.raises(InstallmentAlreadyPaidError):
        record_payment(flat_plan, 1, paid_amount=500, now=NOW)


def test_unknown_installment(flat_plan):
    with pytest.raises(InstallmentNotFoundError):
        record_payment(flat_plan, 6, now=NOW)
    with pytest.raises(InstallmentNotFoundError):
        mark_unpaid(flat_plan, 0)


def test_edit_payment_changes_only_the_paid_row(flat_plan):
    record_payment(flat_plan, 2, paid_amount=1300, now=NOW)
    before = amounts(flat_plan)

    result = edit_payment(
        flat_plan,
        2,
        paid_amount=1500,
        payment_method=PaymentMethod.CHEQUE,
        notes="corrected receipt",
        due_date=date(2025, 5, 11),
    )

    inst = result.installment
    assert result.previous_paid_amount == 1300
    assert inst.actual_paid_amount == 1500
    assert inst.payment_method == PaymentMethod.CHEQUE
    assert inst.notes == "corrected receipt"
    assert inst.due_date == date(2025, 5, 11)
    assert inst.paid_date == NOW
    assert amounts(flat_plan) == before


def test_edit_payment_keeps_unspecified_fields(flat_plan):
    record_payment(flat_plan, 1, paid_amount=1000, payment_method=PaymentMethod.BANK_TRANSFER, notes="ref 42", now=NOW)

    edit_payment(flat_plan, 1, notes="ref 43")

    inst = flat_plan.installments[0]
    assert inst.actual_paid_amount == 1000
    assert inst.payment_method == PaymentMethod.BANK_TRANSFER
    assert inst.notes == "ref 43"


def test_edit_requires_paid_installment(flat_plan):
    with pytest.raises(InstallmentNotPaidError):
        edit_payment(flat_plan, 1, paid_amount=900)


def test_edit_rejects_invalid_amount(flat_plan):
    record_payment(flat_plan, 1, now=NOW)

    with pytest.raises(InvalidAmountError):
        edit_payment(flat_plan, 1, paid_amount=0)
    assert flat_plan.installments[0].actual_paid_amount == 1000


def test_mark_unpaid_restores_row_and_keeps_redistribution(flat_plan):
    """Reversing installment 2 restores it to 1000 pending; 3-5 stay at 900"""
    before_payment = copy.deepcopy(flat_plan.installments[1])
    record_payment(flat_plan, 2, paid_amount=1300, payment_method=PaymentMethod.CASH, notes="x", now=NOW)
    after_payment = copy.deepcopy(flat_plan.installments[2:])

    result = mark_unpaid(flat_plan, 2)

    assert flat_plan.installments[1] == before_payment
    assert flat_plan.installments[2:] == after_payment
    assert amounts(flat_plan) == [1000, 1000, 900, 900, 900]
    assert result.previous_paid_amount == 1300


def test_mark_unpaid_requires_paid_installment(flat_plan):
    with pytest.raises(InstallmentNotPaidError):
        mark_unpaid(flat_plan, 1)
