"""
Shared error handling for the authorization engine.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for the authorization engine."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthorizationError(AccessLayerException):
    """Raised when a caller enforces a decision that came back as deny."""

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class InvalidRuleDefinition(AccessLayerException):
    """A rule was built outside the subject registry vocabulary.

    This is a programming error in a role policy and is raised at
    compile time, never during a request.
    """

    def __init__(self, message: str = "Invalid rule definition", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_RULE_DEFINITION", message, details)


class UnknownActionOrSubject(AccessLayerException):
    """A query named an action/subject pair the registry does not define."""

    def __init__(self, action: str, subject_type: str, details: Optional[Dict[str, Any]] = None):
        payload = {"action": action, "subject_type": subject_type}
        payload.update(details or {})
        super().__init__(
            "UNKNOWN_ACTION_OR_SUBJECT",
            f"Unknown action '{action}' for subject '{subject_type}'",
            payload
        )


class MissingResourceAttribute(AccessLayerException):
    """A condition needed a resource attribute the caller did not supply."""

    def __init__(self, subject_type: str, attribute: str, rule_id: Optional[str] = None):
        super().__init__(
            "MISSING_RESOURCE_ATTRIBUTE",
            f"Resource '{subject_type}' is missing attribute '{attribute}'",
            {"subject_type": subject_type, "attribute": attribute, "rule_id": rule_id}
        )
        self.subject_type = subject_type
        self.attribute = attribute
        self.rule_id = rule_id
