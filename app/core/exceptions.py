"""Domain errors for the booking and payment workflows.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it with the right status code. ``code`` is a stable, machine
readable tag returned next to ``detail``.
"""

from fastapi import HTTPException, status


class BookingAppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"

    def __init__(self, detail: str):
        super().__init__(status_code=type(self).status_code, detail=detail)


class NotFoundError(BookingAppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(BookingAppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class ValidationFailedError(BookingAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"


class InvalidStateError(BookingAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current} to {target}")


class InvalidSignatureError(ValidationFailedError):
    code = "invalid_signature"


class GatewayError(BookingAppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "gateway_error"


class InternalError(BookingAppError):
    pass
