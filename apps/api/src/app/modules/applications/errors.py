"""
Application Service Errors

Every failure the lifecycle surfaces to clients is an
ApplicationServiceError carrying a stable error_code and the HTTP status the
routers translate it to.
"""

from uuid import UUID


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when an application is not found."""

    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class ScholarshipNotFoundError(ApplicationServiceError):
    """Raised when a scholarship is not found."""

    def __init__(self, scholarship_id: UUID | None = None):
        message = (
            f"Scholarship {scholarship_id} not found" if scholarship_id else "Scholarship not found"
        )
        super().__init__(
            message=message,
            error_code="SCHOLARSHIP_NOT_FOUND",
            status_code=404,
        )


class ApplicantNotFoundError(ApplicationServiceError):
    """Raised when the authenticated principal has no user record."""

    def __init__(self):
        super().__init__(
            message="Applicant account not found",
            error_code="APPLICANT_NOT_FOUND",
            status_code=404,
        )


class ApplicationAccessDeniedError(ApplicationServiceError):
    """Raised when a non-owner, non-admin touches an application."""

    def __init__(self, message: str = "You do not have access to this application"):
        super().__init__(
            message=message,
            error_code="FORBIDDEN",
            status_code=403,
        )


# ============================================
# Eligibility & capacity gate
# ============================================


class ScholarshipUnavailableError(ApplicationServiceError):
    """Scholarship is missing or not active."""

    def __init__(self, message: str = "Scholarship is not available for applications"):
        super().__init__(
            message=message,
            error_code="SCHOLARSHIP_UNAVAILABLE",
            status_code=400,
        )


class DeadlinePassedError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Application deadline has passed",
            error_code="DEADLINE_PASSED",
            status_code=400,
        )


class CapacityExceededError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Maximum number of applications reached for this scholarship",
            error_code="CAPACITY_EXCEEDED",
            status_code=409,
        )


class DuplicateApplicationError(ApplicationServiceError):
    """Raised when the applicant already applied to the scholarship."""

    def __init__(self, message: str = "You have already applied for this scholarship"):
        super().__init__(
            message=message,
            error_code="DUPLICATE_APPLICATION",
            status_code=409,
        )


# ============================================
# State machine
# ============================================


class InvalidStateTransitionError(ApplicationServiceError):
    """Raised when an operation is not allowed in the application's current status."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_STATE_TRANSITION",
        status_code: int = 409,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
        )


class SubmissionRequirementsError(InvalidStateTransitionError):
    """Raised when the draft -> submitted guard fails."""

    def __init__(self, missing: list[str], completion: int, threshold: int):
        self.missing = missing
        self.completion = completion
        self.threshold = threshold

        parts = []
        if missing:
            parts.append(f"missing required fields: {', '.join(missing)}")
        if completion < threshold:
            parts.append(f"completion {completion}% is below the required {threshold}%")

        super().__init__(
            message="Application cannot be submitted: " + "; ".join(parts),
            error_code="SUBMISSION_REQUIREMENTS_NOT_MET",
            status_code=400,
        )


class ValidationFailedError(ApplicationServiceError):
    """Raised when section data does not match its schema."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_FAILED",
            status_code=422,
        )


class NotificationFailedError(ApplicationServiceError):
    """
    Raised by the notifier when a message could not be delivered.

    Caught by the notification dispatcher; never reaches a client.
    """

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="NOTIFICATION_FAILED",
            status_code=502,
        )
