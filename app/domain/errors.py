# app/domain/errors.py
"""
Typed failures raised by the pricing and order core.

The HTTP layer maps ``status_code`` onto the response, services never
translate these into generic errors.
"""


class CommerceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CommerceError):
    status_code = 400


class NotFoundError(CommerceError):
    status_code = 404


class InsufficientStock(CommerceError):
    status_code = 400

    def __init__(self, available: int, message: str | None = None):
        super().__init__(message or f"Only {available} items available in stock")
        self.available = available


class CouponIneligible(CommerceError):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidTransition(CommerceError):
    status_code = 400

    def __init__(self, current: str, requested: str, reason: str | None = None):
        super().__init__(reason or f"Cannot change order status from {current} to {requested}")
        self.current = current
        self.requested = requested


class ConcurrencyConflict(CommerceError):
    status_code = 409


class ExternalServiceError(CommerceError):
    """Email/SMS/gateway failure. Logged by the caller, never propagated."""

    status_code = 502
