"""
Error kinds raised by the service layer.

Every operation reports failures through one of these classes; ``app.main``
turns them into a JSON body of the form ``{"detail", "kind", "input"}``.
"""
from typing import Any, Optional


PERMISSION_DENIED = "You do not have permission to perform this action."


class AppError(Exception):
    status_code = 500
    kind = "infrastructure"
    default_message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None, rejected_input: Any = None):
        self.message = message or self.default_message
        self.rejected_input = rejected_input
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind, "input": self.rejected_input}


class UnauthenticatedError(AppError):
    status_code = 401
    kind = "unauthenticated"
    default_message = "Could not validate credentials"


class ForbiddenError(AppError):
    status_code = 403
    kind = "forbidden"
    default_message = PERMISSION_DENIED


class NotAMemberError(ForbiddenError):
    """Authenticated, but not a member of the team. Reported like ForbiddenError."""


class NotFoundError(AppError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class InvalidInputError(AppError):
    status_code = 400
    kind = "invalid_input"
    default_message = "Invalid input"


class ConflictError(AppError):
    status_code = 409
    kind = "conflict"
    default_message = "The request conflicts with existing data"


class OnboardingRequiredError(AppError):
    status_code = 428
    kind = "onboarding_required"
    default_message = "Create or join a team to continue."


class PartialFailureError(AppError):
    """The primary write went through but a secondary step did not."""
    status_code = 500
    kind = "partial_failure"

    def __init__(self, succeeded: str, failed: str, reason: str, rejected_input: Any = None,
                 result: Any = None):
        self.succeeded = succeeded
        self.failed = failed
        self.reason = reason
        self.result = result
        super().__init__(f"{succeeded}, but {failed}: {reason}", rejected_input)


class InfrastructureError(AppError):
    status_code = 500
    kind = "infrastructure"
