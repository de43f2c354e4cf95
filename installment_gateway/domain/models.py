"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class InstallmentUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    WALLET = "wallet"
    CHEQUE = "cheque"
    OTHER = "other"


class InstallmentStatus(str, Enum):
    """Stored installment status; overdue is never persisted"""

    PENDING = "pending"
    PAID = "paid"


class DerivedStatus(str, Enum):
    """Installment status as shown to readers, computed from stored fields and the clock"""

    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    OVERDUE = "overdue"
    COMPLETED = "completed"


@dataclass
class Installment:
    """Single scheduled payment within a plan"""

    installment_number: int
    amount: int  # scheduled (pending) amount, kept as-is when the row is paid
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    actual_paid_amount: Optional[int] = None
    paid_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    paid_by: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass
class CustomerInfo:
    """Contact snapshot captured when the plan is created"""

    customer_id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


@dataclass
class Plan:
    """Customer installment agreement with its schedule"""

    customer: CustomerInfo
    product_name: str
    total_amount: int
    advance_amount: int
    installment_count: int
    installment_unit: InstallmentUnit
    due_day: int
    start_date: date
    installments: List[Installment] = field(default_factory=list)
    product_description: str = ""
    plan_id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @property
    def customer_id(self) -> str:
        return self.customer.customer_id

    def find_installment(self, installment_number: int) -> Optional[Installment]:
        for inst in self.installments:
            if inst.installment_number == installment_number:
                return inst
        return None

    def pending_after(self, installment_number: int) -> List[Installment]:
        """Pending installments numbered after the given one, in ascending order"""
        return sorted(
            (
                inst for inst in self.installments
                if not inst.is_paid and inst.installment_number > installment_number
            ),
            key=lambda inst: inst.installment_number,
        )


@dataclass
class UnabsorbedShortfallWarning:
    """Part of a payment difference that could not be pushed onto pending installments.

    Non-fatal: the payment is still written.
    reason is "clamped" (pending rows hit zero) or "no_remaining_installments".
    """

    amount: int
    reason: str

    @property
    def message(self) -> str:
        if self.reason == "no_remaining_installments":
            return f"No pending installments left to absorb a difference of {self.amount}"
        return f"Pending installments reached zero; {self.amount} could not be absorbed"


@dataclass
class Distribution:
    """How a payment difference was spread over the remaining installments"""

    difference: int
    remaining_count: int
    amount_per_installment: int
    is_excess: bool
    unabsorbed_amount: int = 0
    message: str = ""


@dataclass
class PaymentResult:
    """Outcome of a reconciliation operation on one installment"""

    plan: Plan
    installment: Installment
    distribution: Optional[Distribution] = None
    warnings: List[UnabsorbedShortfallWarning] = field(default_factory=list)
    previous_paid_amount: Optional[int] = None
    settled_installments: List[int] = field(default_factory=list)


@dataclass
class PlanSummary:
    """Aggregates used by listing and customer views"""

    status: PlanStatus
    paid_count: int
    unpaid_count: int
    overdue_count: int
    total_paid_amount: int
    remaining_amount: int
    new_installment_amount: int
    next_unpaid: Optional[Installment]
