"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"
    http_status = 400


class InvalidPlanError(DomainException):
    """Plan creation input is malformed (non-positive amounts or counts)"""

    code = "invalid_plan"
    http_status = 422


class PlanNotFoundError(DomainException):
    """No plan with the given id"""

    code = "plan_not_found"
    http_status = 404


class InstallmentNotFoundError(DomainException):
    """Plan has no installment with the given number"""

    code = "installment_not_found"
    http_status = 404


class InstallmentAlreadyPaidError(DomainException):
    """Payment recorded against an installment that is already paid"""

    code = "installment_already_paid"
    http_status = 409


class InstallmentNotPaidError(DomainException):
    """Edit or reversal requested for an installment that is still pending"""

    code = "installment_not_paid"
    http_status = 409


class InvalidAmountError(DomainException):
    """Paid amount is not a positive integer"""

    code = "invalid_amount"
    http_status = 422


class ConcurrentModificationError(DomainException):
    """Plan changed since it was read; caller should retry with fresh state"""

    code = "concurrent_modification"
    http_status = 409
