"""Domain exceptions shared across QuickCart services.

Service functions raise these; ``libs.common.error_handler`` turns them into
JSON responses with the right status code. The ``detail`` string is shown to
customers as-is, so keep it human readable.
"""

from typing import Optional


class AppError(Exception):
    status_code: int = 400
    code: str = "APP_ERROR"
    headers: Optional[dict[str, str]] = None

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"


class BusinessRuleViolation(AppError):
    status_code = 400
    code = "BUSINESS_RULE_VIOLATION"


class OutOfStock(BusinessRuleViolation):
    code = "OUT_OF_STOCK"

    def __init__(self, product_name: str):
        super().__init__(
            f'Product "{product_name}" is out of stock at your nearest store.'
        )
        self.product_name = product_name


class InsufficientBalance(BusinessRuleViolation):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            detail
            or "Insufficient wallet balance. Please add money or choose COD."
        )


class InvalidStatusTransition(BusinessRuleViolation):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str, detail: Optional[str] = None):
        super().__init__(
            detail or f"Cannot move order from {current} to {target}"
        )
        self.current = current
        self.target = target


class NoDarkStoreAvailable(BusinessRuleViolation):
    code = "NO_DARK_STORE"

    def __init__(self):
        super().__init__("No dark store is available to fulfil this order")


class UpstreamServiceError(AppError):
    status_code = 502
    code = "UPSTREAM_ERROR"
