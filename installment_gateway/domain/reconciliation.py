"""Payment reconciliation - recording, editing and reversing installment payments"""

from datetime import date, datetime, timezone
from typing import List, Optional

from installment_gateway.domain.exceptions import (
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    InstallmentNotPaidError,
    InvalidAmountError,
)
from installment_gateway.domain.models import (
    Distribution,
    Installment,
    InstallmentStatus,
    PaymentMethod,
    PaymentResult,
    Plan,
    UnabsorbedShortfallWarning,
)
from installment_gateway.domain.money import ceil_div, format_amount, split_amount


def _get_installment(plan: Plan, installment_number: int) -> Installment:
    installment = plan.find_installment(installment_number)
    if installment is None:
        raise InstallmentNotFoundError(
            f"Installment {installment_number} not found in plan {plan.plan_id}"
        )
    return installment


def _validate_amount(amount: Optional[int]) -> None:
    if amount is None:
        return
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError("Invalid payment amount")


def redistribute(remaining: List[Installment], delta: int) -> int:
    """
    Spread a payment difference over pending installments.

    An excess (delta > 0) lowers the remaining installments, a shortfall
    (delta < 0) raises them, so the plan still sums to its total.
    Shares follow split_amount: ceil(|delta| / n) each, last absorbs the residual.
    Reductions stop at zero and carry the leftover to the next installment.

    Returns:
        The part of |delta| that could not be absorbed (0 when fully absorbed)
    """
    shares = split_amount(abs(delta), len(remaining))

    if delta < 0:
        for inst, share in zip(remaining, shares):
            inst.amount += share
        return 0

    carry = 0
    for inst, share in zip(remaining, shares):
        reduction = share + carry
        applied = min(reduction, inst.amount)
        inst.amount -= applied
        carry = reduction - applied

    return carry


def _settle_cleared(remaining: List[Installment], source: Installment) -> List[int]:
    """Mark installments with nothing left due as paid by the source payment"""
    settled = []
    for inst in remaining:
        if inst.amount != 0:
            continue
        inst.status = InstallmentStatus.PAID
        inst.actual_paid_amount = 0
        inst.payment_method = source.payment_method
        inst.notes = f"Covered by installment {source.installment_number} payment"
        inst.paid_date = source.paid_date
        inst.paid_by = source.paid_by
        settled.append(inst.installment_number)
    return settled


def _distribution_message(distribution: Distribution, currency_label: str) -> str:
    difference = format_amount(abs(distribution.difference), currency_label)
    kind = "Excess payment" if distribution.is_excess else "Shortfall"

    if distribution.remaining_count == 0:
        return f"{kind} of {difference} could not be distributed: no pending installments remain"

    per_installment = format_amount(distribution.amount_per_installment, currency_label)
    return (
        f"{kind} of {difference} distributed across {distribution.remaining_count} "
        f"remaining installments ({per_installment} each)"
    )


def record_payment(
    plan: Plan,
    installment_number: int,
    paid_amount: Optional[int] = None,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    notes: str = "",
    due_date: Optional[date] = None,
    paid_by: Optional[str] = None,
    now: Optional[datetime] = None,
    currency_label: str = "",
) -> PaymentResult:
    """
    Mark a pending installment as paid and rebalance the rest of the schedule.

    Flow:
    1. Validate target (exists, pending) and the paid amount (> 0, given or defaulted)
    2. Record the payment on the target; its scheduled amount is kept
    3. Push the difference onto later pending installments
    4. Settle later installments an excess brought down to zero

    Raises:
        InstallmentNotFoundError, InstallmentAlreadyPaidError, InvalidAmountError
    """
    target = _get_installment(plan, installment_number)
    if target.is_paid:
        raise InstallmentAlreadyPaidError(f"Installment {installment_number} already paid")
    _validate_amount(paid_amount)

    actual = target.amount if paid_amount is None else paid_amount
    if actual <= 0:
        raise InvalidAmountError(
            f"Installment {installment_number} has nothing left to pay; send a positive amount to record a payment"
        )
    delta = actual - target.amount

    target.status = InstallmentStatus.PAID
    target.actual_paid_amount = actual
    target.payment_method = PaymentMethod(payment_method)
    target.notes = notes
    target.paid_date = now or datetime.now(timezone.utc)
    target.paid_by = paid_by
    if due_date is not None:
        target.due_date = due_date

    result = PaymentResult(plan=plan, installment=target)
    if delta == 0:
        return result

    remaining = plan.pending_after(installment_number)
    if remaining:
        unabsorbed = redistribute(remaining, delta)
        share = ceil_div(abs(delta), len(remaining))
        if unabsorbed:
            result.warnings.append(UnabsorbedShortfallWarning(amount=unabsorbed, reason="clamped"))
        result.settled_installments = _settle_cleared(remaining, target)
    else:
        unabsorbed = abs(delta)
        share = 0
        result.warnings.append(
            UnabsorbedShortfallWarning(amount=unabsorbed, reason="no_remaining_installments")
        )

    distribution = Distribution(
        difference=delta,
        remaining_count=len(remaining),
        amount_per_installment=share,
        is_excess=delta > 0,
        unabsorbed_amount=unabsorbed,
    )
    distribution.message = _distribution_message(distribution, currency_label)
    result.distribution = distribution
    return result


def edit_payment(
    plan: Plan,
    installment_number: int,
    paid_amount: Optional[int] = None,
    payment_method: Optional[PaymentMethod] = None,
    notes: Optional[str] = None,
    due_date: Optional[date] = None,
    paid_by: Optional[str] = None,
) -> PaymentResult:
    """
    Correct the details of an already-paid installment.

    Only the paid row changes; earlier redistribution stays baked into the
    other installments and the edit difference is not redistributed.
    """
    target = _get_installment(plan, installment_number)
    if not target.is_paid:
        raise InstallmentNotPaidError(f"Can only update paid installments (installment {installment_number})")
    _validate_amount(paid_amount)

    previous = target.actual_paid_amount
    if paid_amount is not None:
        target.actual_paid_amount = paid_amount
    if payment_method is not None:
        target.payment_method = PaymentMethod(payment_method)
    if notes is not None:
        target.notes = notes
    if due_date is not None:
        target.due_date = due_date
    if paid_by is not None:
        target.paid_by = paid_by

    return PaymentResult(plan=plan, installment=target, previous_paid_amount=previous)


def mark_unpaid(plan: Plan, installment_number: int) -> PaymentResult:
    """
    Reverse a payment.

    The scheduled amount was never overwritten by the payment, so reversal
    is a field reset on the single row; other installments keep whatever
    redistribution the payment applied to them.
    """
    target = _get_installment(plan, installment_number)
    if not target.is_paid:
        raise InstallmentNotPaidError(
            f"Can only mark paid installments as unpaid (installment {installment_number})"
        )

    previous = target.actual_paid_amount
    target.status = InstallmentStatus.PENDING
    target.actual_paid_amount = None
    target.paid_date = None
    target.payment_method = None
    target.notes = None
    target.paid_by = None

    return PaymentResult(plan=plan, installment=target, previous_paid_amount=previous)
