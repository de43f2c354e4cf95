"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from installment_gateway.domain.installments import MAX_INSTALLMENT_COUNT
from installment_gateway.domain.models import InstallmentUnit, PaymentMethod


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case accepted on input"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class CreatePlanRequest(CamelModel):
    """Request body for POST /v1/installments"""

    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    name: str = Field(..., min_length=1, description="Customer name")
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    address: str = ""
    product_name: str = Field(..., min_length=1)
    product_description: str = ""
    total_amount: int = Field(..., gt=0, strict=True, description="Plan total, plain integer")
    advance_amount: int = Field(0, ge=0, strict=True, description="Paid at creation, outside the schedule")
    installment_count: int = Field(..., gt=0, le=MAX_INSTALLMENT_COUNT, strict=True)
    installment_unit: InstallmentUnit
    monthly_installment: Optional[int] = Field(
        None, description="Display-only client value; recomputed server-side and ignored"
    )
    start_date: date
    due_day: Optional[int] = Field(
        None,
        ge=1,
        le=31,
        validation_alias=AliasChoices("dueDay", "dueDate", "due_day"),
        description="Day-of-month anchor for monthly plans",
    )


class PaymentRequest(CamelModel):
    """Request body for PUT /v1/installments/{plan_id}/pay"""

    installment_number: int = Field(..., gt=0)
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    custom_amount: Optional[int] = Field(None, strict=True, description="Amount actually paid")
    due_date: Optional[date] = None
    expected_version: Optional[int] = Field(None, description="Reject the write if the plan moved past this version")


class UnpayRequest(CamelModel):
    """Request body for PUT /v1/installments/{plan_id}/unpay"""

    installment_number: int = Field(..., gt=0)
    expected_version: Optional[int] = None


class UpdatePlanRequest(CamelModel):
    """Request body for PATCH /v1/installments/{plan_id} - descriptive fields only"""

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3)
    phone: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    product_name: Optional[str] = Field(None, min_length=1)
    product_description: Optional[str] = None


# Responses


class InstallmentSchema(CamelModel):
    """Single installment with its derived status"""

    installment_number: int
    amount: int
    due_date: date
    status: str
    actual_paid_amount: Optional[int] = None
    paid_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    paid_by: Optional[str] = None


class PlanSummarySchema(CamelModel):
    paid_count: int
    unpaid_count: int
    overdue_count: int
    total_paid_amount: int
    remaining_amount: int
    new_installment_amount: int


class PlanSchema(CamelModel):
    """Full plan with every installment"""

    plan_id: str
    customer_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    product_name: str
    product_description: str
    total_amount: int
    advance_amount: int
    installment_count: int
    installment_unit: InstallmentUnit
    installment_amount: int
    start_date: date
    due_day: int
    status: str
    version: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    summary: PlanSummarySchema
    installments: List[InstallmentSchema]


class PlanResponse(CamelModel):
    """Response for plan create/details/update"""

    success: bool = True
    plan: PlanSchema


class PlanListItem(CamelModel):
    """Plan row for staff listing, with its next unpaid installment"""

    plan_id: str
    customer_id: str
    customer_name: str
    customer_phone: str
    product_name: str
    total_amount: int
    advance_amount: int
    installment_count: int
    installment_unit: InstallmentUnit
    due_day: int
    status: str
    summary: PlanSummarySchema
    next_installment: Optional[InstallmentSchema] = None
    created_at: Optional[datetime] = None


class PlanListResponse(CamelModel):
    """Response for GET /v1/installments"""

    success: bool = True
    plans: List[PlanListItem]


class DistributionSchema(CamelModel):
    difference: int
    remaining_count: int
    amount_per_installment: int
    is_excess: bool
    unabsorbed_amount: int = 0
    message: str = ""


class WarningSchema(CamelModel):
    code: str = "unabsorbed_shortfall"
    reason: str
    amount: int
    message: str


class PaymentResponse(CamelModel):
    """Response for pay/unpay"""

    success: bool = True
    plan_id: str
    version: int
    edited: bool = False
    installment: InstallmentSchema
    distribution: Optional[DistributionSchema] = None
    previous_paid_amount: Optional[int] = None
    warnings: List[WarningSchema] = Field(default_factory=list)
    settled_installments: List[int] = Field(default_factory=list)


class CustomerSchema(CamelModel):
    customer_id: str
    name: str
    email: str
    phone: str
    address: str


class CustomerPlanItem(CamelModel):
    plan_id: str
    product_name: str
    product_description: str
    total_amount: int
    advance_amount: int
    installment_amount: int
    installment_count: int
    installment_unit: InstallmentUnit
    start_date: date
    due_day: int
    status: str
    summary: PlanSummarySchema
    next_unpaid: Optional[InstallmentSchema] = None
    created_at: Optional[datetime] = None


class CustomerOverviewResponse(CamelModel):
    """Response for GET /v1/installments/customer/{customer_id}"""

    success: bool = True
    customer: CustomerSchema
    plans: List[CustomerPlanItem]
    total_plans: int


class DeleteResponse(CamelModel):
    success: bool = True
    plan_id: str
    message: str


class RecentPaymentSchema(CamelModel):
    plan_id: str
    customer_name: str
    product_name: str
    installment_number: int
    amount: int
    paid_date: Optional[datetime] = None


class DashboardStatsResponse(CamelModel):
    """Response for GET /v1/dashboard/stats"""

    success: bool = True
    total_plans: int
    total_installments: int
    pending_payments: int
    overdue_payments: int
    completed_payments: int
    total_revenue: int
    total_advance: int
    outstanding_amount: int
    recent_payments: List[RecentPaymentSchema]


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    message: str
