# meetups/domain/errors.py


class MeetupError(Exception):
    status_code: int = 400
    code: str = "error"
    default_message: str = "The request could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(MeetupError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class InvalidInputError(MeetupError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class DailyQuotaExceededError(MeetupError):
    status_code = 429
    code = "quota_exceeded"

    def __init__(self, limit: int):
        super().__init__(f"You have reached the limit of {limit} events per day")
        self.limit = limit


class EventFullError(MeetupError):
    status_code = 409
    code = "event_full"
    default_message = "This event is full"


class OrganizerCannotLeaveError(MeetupError):
    status_code = 409
    code = "organizer_cannot_leave"
    default_message = "The organizer cannot leave their own event"


class JoinRequiredError(MeetupError):
    status_code = 403
    code = "join_required"
    default_message = "You must join the event to access its chat"


class AccessDeniedError(MeetupError):
    status_code = 403
    code = "access_denied"
    default_message = "You are not allowed to access this conversation"


class PartialWriteError(MeetupError):
    """A multi-step write stopped after some steps had already landed."""

    status_code = 500
    code = "partial_write"

    def __init__(
        self,
        operation: str,
        failed_step: str,
        completed_steps: list[str],
        resource_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"{operation} failed at step '{failed_step}'")
        self.operation = operation
        self.failed_step = failed_step
        self.completed_steps = completed_steps
        self.resource_id = resource_id
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "operation": self.operation,
            "failed_step": self.failed_step,
            "completed_steps": self.completed_steps,
            "resource_id": self.resource_id,
        }


class StoreError(MeetupError):
    status_code = 500
    code = "unknown"
    default_message = "Unexpected storage failure"


class PermissionDeniedError(StoreError):
    status_code = 403
    code = "permission_denied"
    default_message = "Missing or insufficient permissions"


class FailedPreconditionError(StoreError):
    status_code = 503
    code = "failed_precondition"
    default_message = "The query requires an index or schema that is not provisioned yet"


class StoreUnavailableError(StoreError):
    status_code = 503
    code = "unavailable"
    default_message = "The store is temporarily unavailable, please retry"
