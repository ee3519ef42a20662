from fastapi import Request
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    """Base for every failure surfaced to API callers.

    `code` is stable and machine-readable; `detail` is the human message.
    """

    kind = "error"
    status_code = 400

    def __init__(self, code: str, detail: str):
        super().__init__(detail)
        self.code = code
        self.detail = detail


class ValidationError(ServiceError):
    kind = "validation"
    status_code = 400


class NotFound(ServiceError):
    kind = "not_found"
    status_code = 404


class Unauthorized(ServiceError):
    kind = "unauthorized"
    status_code = 403


class Conflict(ServiceError):
    kind = "conflict"
    status_code = 409


class PolicyViolation(ServiceError):
    kind = "policy_violation"
    status_code = 400


class TransportFailure(ServiceError):
    kind = "transport_failure"
    status_code = 502


# Error table: code -> (error class, default message)
ERRORS = {
    # Lookups
    'MEETUP_NOT_FOUND': (NotFound, 'Meetup not found'),
    'PARTICIPANT_NOT_FOUND': (NotFound, 'Participant not found'),
    'CHECKIN_NO_MATCH': (NotFound, 'No participant matches that name and phone number'),

    # Host authorization
    'NOT_HOST': (Unauthorized, 'Host credential required for this meetup'),
    'INVALID_SESSION': (Unauthorized, 'Invalid or expired session'),
    'INVALID_CREDENTIALS': (Unauthorized, 'Invalid username or password'),

    # Registration
    'DUPLICATE_REGISTRATION': (Conflict, 'This phone number is already registered'),
    'WAITLIST_FULL': (Conflict, 'The waitlist is full'),
    'MEETUP_CLOSED': (Conflict, 'Meetup is not accepting registrations'),

    # Transitions
    'ALREADY_PROCESSED': (Conflict, 'This request has already been processed'),
    'ALREADY_CHECKED_IN': (Conflict, 'Already checked in'),
    'INVALID_TRANSITION': (Conflict, 'Participant cannot make this transition'),
    'TOO_CLOSE_TO_EVENT': (PolicyViolation, 'Cancellation is not possible within 24 hours of the meetup'),

    # Input
    'INVALID_ACTION': (ValidationError, 'Invalid action'),
    'INVALID_REMINDER_TYPE': (ValidationError, 'Invalid reminder type'),
    'INVALID_NOTIFICATION_TYPE': (ValidationError, 'Invalid notification type'),
    'NO_CHANGES': (ValidationError, 'No editable fields supplied'),
    'NO_TARGETS': (ValidationError, 'No recipients for this notification'),
    'INVALID_CAPACITY': (ValidationError, 'Capacity must be at least 2'),

    # Hosts
    'USERNAME_TAKEN': (Conflict, 'Username is already in use'),

    # Transport
    'SMS_FAILED': (TransportFailure, 'SMS delivery failed'),
}


def service_error(error_code: str, error_message: str = None) -> ServiceError:
    """
    Build the service error for a code from the error table.

    Args:
        error_code: Stable code (e.g., 'WAITLIST_FULL')
        error_message: Optional message overriding the table default

    Returns:
        ServiceError subclass instance ready to raise
    """
    error_class, detail = ERRORS.get(error_code, (ValidationError, error_code))
    return error_class(error_code, error_message or detail)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render ServiceError as JSON with its kind and code"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind, "code": exc.code},
    )
