"""GET /v1/dashboard/stats - Staff dashboard totals"""

from fastapi import APIRouter, Depends

from installment_gateway.api.dependencies import Caller, get_plan_service, require_staff
from installment_gateway.api.v1.schemas import DashboardStatsResponse
from installment_gateway.services.plans import PlanService

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
def get_dashboard_stats(
    caller: Caller = Depends(require_staff),
    service: PlanService = Depends(get_plan_service),
):
    """
    Aggregate installment counts and collected revenue.

    Returns:
        Totals over the plans visible to the caller (all for admins, own for managers)
        plus the ten most recent payments
    """
    created_by = None if caller.is_admin else caller.user_id
    return DashboardStatsResponse(**service.dashboard_stats(created_by=created_by))
