"""Domain errors raised by services and mapped to HTTP responses in main."""
from fastapi import status


class SkillVouchError(Exception):
    """Base class for errors the API reports to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Validation
class ValidationFailed(SkillVouchError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidSubmission(ValidationFailed):
    default_message = "Invalid quiz submission"


class SelfRequest(ValidationFailed):
    default_message = "You cannot send an exchange request to yourself"


class DuplicateSkill(SkillVouchError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Skill already exists"


class InvalidTransition(SkillVouchError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid status transition"


class PermissionDenied(SkillVouchError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


# Not found
class NotFound(SkillVouchError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class QuizNotFound(NotFound):
    default_message = "Quiz not found"


class RequestNotFound(NotFound):
    default_message = "Exchange request not found"


class TaskNotFound(NotFound):
    default_message = "Task not found"


class RoadmapNotFound(NotFound):
    default_message = "Roadmap not found"


# External dependencies
class ExternalServiceError(SkillVouchError):
    """The AI endpoint failed or returned something unusable.

    `message` holds the internal reason for logs; callers only ever see
    `public_message`.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "External service failure"
    public_message = "Service temporarily unavailable. Please try again later."


class MalformedModelOutput(ExternalServiceError):
    default_message = "Model output did not contain valid JSON"


class QuizGenerationFailed(ExternalServiceError):
    default_message = "Quiz generation failed"
    public_message = "Quiz generation failed. Please try again later."

    def __init__(self, message: str = None, last_error: Exception = None):
        super().__init__(message)
        self.last_error = last_error
