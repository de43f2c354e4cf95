"""Installment plan endpoints - creation, payment reconciliation and read views"""

import time
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from installment_gateway.api.dependencies import (
    Caller,
    get_caller,
    get_event_client,
    get_plan_service,
    get_request_id,
    require_admin,
    require_staff,
)
from installment_gateway.api.v1.schemas import (
    CreatePlanRequest,
    CustomerOverviewResponse,
    CustomerPlanItem,
    CustomerSchema,
    DeleteResponse,
    DistributionSchema,
    InstallmentSchema,
    PaymentRequest,
    PaymentResponse,
    PlanListItem,
    PlanListResponse,
    PlanResponse,
    PlanSchema,
    PlanSummarySchema,
    UnpayRequest,
    UpdatePlanRequest,
    WarningSchema,
)
from installment_gateway.domain.models import CustomerInfo, Installment, PaymentResult, Plan, PlanStatus
from installment_gateway.domain.money import ceil_div
from installment_gateway.domain.status import derive_installment_status, summarize_plan
from installment_gateway.infrastructure.clients.webhook import EventWebhookClient
from installment_gateway.infrastructure.observability.logging import log_payment, log_plan_created
from installment_gateway.services.plans import PlanService

router = APIRouter()

# Request field -> stored column for descriptive plan updates
PLAN_DETAIL_FIELDS = {
    "name": "customer_name",
    "email": "customer_email",
    "phone": "customer_phone",
    "address": "customer_address",
    "product_name": "product_name",
    "product_description": "product_description",
}


def _parse_plan_id(plan_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(plan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid plan ID format")


def _installment_schema(inst: Installment, now: datetime) -> InstallmentSchema:
    return InstallmentSchema(
        installment_number=inst.installment_number,
        amount=inst.amount,
        due_date=inst.due_date,
        status=derive_installment_status(inst, now).value,
        actual_paid_amount=inst.actual_paid_amount,
        paid_date=inst.paid_date,
        payment_method=inst.payment_method,
        notes=inst.notes,
        paid_by=inst.paid_by,
    )


def _installment_amount(plan: Plan) -> int:
    """Per-installment amount at creation (the client's 'monthly installment')"""
    return ceil_div(plan.total_amount - plan.advance_amount, plan.installment_count)


def _plan_schema(plan: Plan, now: datetime) -> PlanSchema:
    summary = summarize_plan(plan, now)
    return PlanSchema(
        plan_id=str(plan.plan_id),
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
        installment_unit=plan.installment_unit,
        installment_amount=_installment_amount(plan),
        start_date=plan.start_date,
        due_day=plan.due_day,
        status=summary.status.value,
        version=plan.version,
        created_by=plan.created_by,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
        summary=PlanSummarySchema.model_validate(summary, from_attributes=True),
        installments=[_installment_schema(inst, now) for inst in plan.installments],
    )


def _payment_response(result: PaymentResult, now: datetime, edited: bool = False) -> PaymentResponse:
    distribution = None
    if result.distribution is not None:
        distribution = DistributionSchema.model_validate(result.distribution, from_attributes=True)

    return PaymentResponse(
        plan_id=str(result.plan.plan_id),
        version=result.plan.version,
        edited=edited,
        installment=_installment_schema(result.installment, now),
        distribution=distribution,
        previous_paid_amount=result.previous_paid_amount,
        warnings=[
            WarningSchema(reason=w.reason, amount=w.amount, message=w.message)
            for w in result.warnings
        ],
        settled_installments=result.settled_installments,
    )


def _ensure_can_read(caller: Caller, plan: Plan) -> None:
    if caller.is_staff:
        return
    if caller.customer_id is None or caller.customer_id != plan.customer_id:
        raise HTTPException(status_code=403, detail="Not allowed to view this plan")


@router.post("/installments", response_model=PlanResponse, status_code=201)
def create_installment_plan(
    body: CreatePlanRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """
    Create a plan and generate its schedule.

    The client's monthlyInstallment is ignored; amounts are recomputed so
    advance + sum(installments) == total exactly.
    """
    plan = service.create_plan(
        customer=CustomerInfo(
            customer_id=body.customer_id,
            name=body.name,
            email=body.email,
            phone=body.phone,
            address=body.address,
        ),
        product_name=body.product_name,
        product_description=body.product_description,
        total_amount=body.total_amount,
        advance_amount=body.advance_amount,
        installment_count=body.installment_count,
        installment_unit=body.installment_unit,
        start_date=body.start_date,
        due_day=body.due_day,
        created_by=caller.user_id,
    )

    log_plan_created(
        get_request_id(request),
        str(plan.plan_id),
        plan.customer_id,
        plan.total_amount,
        plan.installment_count,
        caller.user_id,
    )
    background_tasks.add_task(
        event_client.send_event,
        {
            "event": "PLAN_CREATED",
            "plan_id": str(plan.plan_id),
            "customer_id": plan.customer_id,
            "total_amount": plan.total_amount,
            "advance_amount": plan.advance_amount,
            "installment_count": plan.installment_count,
        },
    )

    return PlanResponse(plan=_plan_schema(plan, service.now()))


@router.get("/installments", response_model=PlanListResponse)
def list_installment_plans(
    status: Optional[PlanStatus] = Query(None, description="Filter by derived plan status"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
):
    """
    List plan summaries, newest first.

    Managers see the plans they created; admins see every plan.
    """
    created_by = None if caller.is_admin else caller.user_id
    plans = service.list_plans(created_by=created_by, customer_id=customer_id)
    now = service.now()

    items = []
    for plan in plans:
        summary = summarize_plan(plan, now)
        if status is not None and summary.status != status:
            continue

        items.append(
            PlanListItem(
                plan_id=str(plan.plan_id),
                customer_id=plan.customer_id,
                customer_name=plan.customer.name,
                customer_phone=plan.customer.phone,
                product_name=plan.product_name,
                total_amount=plan.total_amount,
                advance_amount=plan.advance_amount,
                installment_count=plan.installment_count,
                installment_unit=plan.installment_unit,
                due_day=plan.due_day,
                status=summary.status.value,
                summary=PlanSummarySchema.model_validate(summary, from_attributes=True),
                next_installment=(
                    _installment_schema(summary.next_unpaid, now) if summary.next_unpaid else None
                ),
                created_at=plan.created_at,
            )
        )

    return PlanListResponse(plans=items)


@router.get("/installments/details/{plan_id}", response_model=PlanResponse)
def get_installment_plan(
    plan_id: str,
    caller: Caller = Depends(get_caller),
    service: PlanService = Depends(get_plan_service),
):
    """Full plan with derived statuses applied to every installment"""
    plan = service.get_plan(_parse_plan_id(plan_id))
    _ensure_can_read(caller, plan)
    return PlanResponse(plan=_plan_schema(plan, service.now()))


@router.get("/installments/customer/{customer_id}", response_model=CustomerOverviewResponse)
def get_customer_installments(
    customer_id: str,
    service: PlanService = Depends(get_plan_service),
):
    """
    Public customer view: contact details and one summary per plan.

    No authentication; read-only.
    """
    latest, plans = service.get_customer_overview(customer_id)
    now = service.now()
    items = []
    for plan in plans:
        summary = summarize_plan(plan, now)
        items.append(
            CustomerPlanItem(
                plan_id=str(plan.plan_id),
                product_name=plan.product_name,
                product_description=plan.product_description,
                total_amount=plan.total_amount,
                advance_amount=plan.advance_amount,
                installment_amount=_installment_amount(plan),
                installment_count=plan.installment_count,
                installment_unit=plan.installment_unit,
                start_date=plan.start_date,
                due_day=plan.due_day,
                status=summary.status.value,
                summary=PlanSummarySchema.model_validate(summary, from_attributes=True),
                next_unpaid=_installment_schema(summary.next_unpaid, now) if summary.next_unpaid else None,
                created_at=plan.created_at,
            )
        )

    return CustomerOverviewResponse(
        customer=CustomerSchema(
            customer_id=latest.customer_id,
            name=latest.name,
            email=latest.email,
            phone=latest.phone,
            address=latest.address,
        ),
        plans=items,
        total_plans=len(items),
    )


@router.put("/installments/{plan_id}/pay", response_model=PaymentResponse)
def pay_installment(
    plan_id: str,
    body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """
    Record a payment, or edit it when the installment is already paid.

    Recording a custom amount spreads the difference over later pending
    installments and returns a distribution block. Editing only changes
    the paid row.
    """
    start_time = time.time()
    plan_uuid = _parse_plan_id(plan_id)

    result, edited = service.record_or_edit_payment(
        plan_uuid,
        body.installment_number,
        paid_amount=body.custom_amount,
        payment_method=body.payment_method,
        notes=body.notes,
        due_date=body.due_date,
        paid_by=caller.user_id,
        expected_version=body.expected_version,
    )

    difference = result.distribution.difference if result.distribution else 0
    duration_ms = (time.time() - start_time) * 1000
    log_payment(
        get_request_id(request),
        "payment_updated" if edited else "payment_recorded",
        plan_id,
        body.installment_number,
        result.installment.actual_paid_amount,
        difference,
        duration_ms,
    )
    background_tasks.add_task(
        event_client.send_event,
        {
            "event": "PAYMENT_UPDATED" if edited else "PAYMENT_RECORDED",
            "plan_id": plan_id,
            "customer_id": result.plan.customer_id,
            "installment_number": body.installment_number,
            "paid_amount": result.installment.actual_paid_amount,
            "difference": difference,
            "paid_by": caller.user_id,
        },
    )

    return _payment_response(result, service.now(), edited=edited)


@router.put("/installments/{plan_id}/unpay", response_model=PaymentResponse)
def mark_installment_unpaid(
    plan_id: str,
    body: UnpayRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Reverse a payment; only the target installment changes"""
    start_time = time.time()
    result = service.mark_unpaid(
        _parse_plan_id(plan_id),
        body.installment_number,
        expected_version=body.expected_version,
    )

    log_payment(
        get_request_id(request),
        "payment_reversed",
        plan_id,
        body.installment_number,
        result.previous_paid_amount,
        0,
        (time.time() - start_time) * 1000,
    )
    background_tasks.add_task(
        event_client.send_event,
        {
            "event": "PAYMENT_REVERSED",
            "plan_id": plan_id,
            "customer_id": result.plan.customer_id,
            "installment_number": body.installment_number,
            "reversed_amount": result.previous_paid_amount,
            "reversed_by": caller.user_id,
        },
    )

    return _payment_response(result, service.now())


@router.patch("/installments/{plan_id}", response_model=PlanResponse)
def update_installment_plan(
    plan_id: str,
    body: UpdatePlanRequest,
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
):
    """Update customer contact and product text; amounts and schedule are fixed"""
    changes = {
        PLAN_DETAIL_FIELDS[name]: value
        for name, value in body.model_dump(exclude_unset=True).items()
        if value is not None
    }
    plan_uuid = _parse_plan_id(plan_id)
    plan = service.update_plan_details(plan_uuid, changes) if changes else service.get_plan(plan_uuid)
    return PlanResponse(plan=_plan_schema(plan, service.now()))


@router.delete("/installments/{plan_id}", response_model=DeleteResponse)
def delete_installment_plan(
    plan_id: str,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(require_admin),
    service: PlanService = Depends(get_plan_service),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Delete a plan and all of its installments (admin only)"""
    plan = service.delete_plan(_parse_plan_id(plan_id))
    background_tasks.add_task(
        event_client.send_event,
        {
            "event": "PLAN_DELETED",
            "plan_id": plan_id,
            "customer_id": plan.customer_id,
            "deleted_by": caller.user_id,
        },
    )
    return DeleteResponse(plan_id=plan_id, message="Installment plan deleted")
