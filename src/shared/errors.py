"""
Error taxonomy for the letter service.

Every error raised by the logic layer derives from LetterServiceError and
carries the HTTP status and machine-readable code the API layer responds
with. Handlers never build error responses by hand; they raise one of these
and the global exception handlers render the envelope.
"""

from typing import Any


class LetterServiceError(Exception):
    """Base error for letter service operations."""

    status_code = 500
    error_code = "internal_error"
    # Whether the message is safe to return verbatim to the caller
    expose_message = True

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(LetterServiceError):
    """Malformed or missing input."""

    status_code = 400
    error_code = "validation_error"


class InvalidTransitionError(ValidationError):
    """Requested status is not reachable from the letter's current status."""

    error_code = "invalid_transition"

    def __init__(self, current: str, requested: str, valid_transitions: list[str]):
        super().__init__(
            message=f"Invalid status transition from {current} to {requested}",
            details={
                "current_status": current,
                "requested_status": requested,
                "valid_transitions": valid_transitions,
            },
        )
        self.current = current
        self.requested = requested
        self.valid_transitions = valid_transitions


class AuthenticationError(LetterServiceError):
    """Missing, malformed or rejected bearer credential."""

    status_code = 401
    error_code = "unauthorized"


class AuthorizationError(LetterServiceError):
    """Caller's role or ownership does not permit the operation."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(LetterServiceError):
    """Referenced entity does not exist."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, identifier: str):
        super().__init__(
            message=f"{entity} not found",
            details={"entity": entity.lower().replace(" ", "_"), "id": identifier},
        )


class UpstreamError(LetterServiceError):
    """An external API (LLM, identity service, email provider) failed."""

    status_code = 500
    error_code = "upstream_error"
    expose_message = False


class ConfigurationError(LetterServiceError):
    """A required secret or setting is absent."""

    status_code = 500
    error_code = "configuration_error"
    expose_message = False
