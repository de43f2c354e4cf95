"""Dependency injection for FastAPI endpoints"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from installment_gateway.infrastructure.clients.webhook import EventWebhookClient
from installment_gateway.infrastructure.database.session import get_db
from installment_gateway.services.plans import PlanService

STAFF_ROLES = ("admin", "manager")
ROLES = STAFF_ROLES + ("customer",)


@dataclass
class Caller:
    """Identity forwarded by the upstream auth layer"""

    user_id: str
    role: str
    customer_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_plan_service(db: Session = Depends(get_db)) -> PlanService:
    return PlanService(db)


def get_event_client() -> EventWebhookClient:
    """Provide event webhook client instance"""
    return EventWebhookClient()


def get_optional_caller(
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
    role: Optional[str] = Header(None, alias="X-User-Role"),
    customer_id: Optional[str] = Header(None, alias="X-Customer-Id"),
) -> Optional[Caller]:
    if not user_id or not role:
        return None
    role = role.lower()
    if role not in ROLES:
        raise HTTPException(status_code=403, detail=f"Unknown role: {role}")
    return Caller(user_id=user_id, role=role, customer_id=customer_id)


def get_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return caller


def require_staff(caller: Caller = Depends(get_caller)) -> Caller:
    """Only admins and managers may create plans or move money"""
    if not caller.is_staff:
        raise HTTPException(status_code=403, detail="Admin or manager role required")
    return caller


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return caller
