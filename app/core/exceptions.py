# -----------------------------------------------------------------------------
# ERRORS
# Every assistant failure maps onto the same error response at the API edge.
# -----------------------------------------------------------------------------


class AssistantError(Exception):
    """Base class for failures surfaced as {"type": "error"} responses."""

    default_message = "An error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(AssistantError):
    default_message = "Message is required"


class AuthenticationError(AssistantError):
    default_message = "Authentication failed"


class ConfigurationError(AssistantError):
    default_message = "Service is not configured"


class ModelError(AssistantError):
    default_message = "Language model request failed"


class SecurityViolation(AssistantError):
    default_message = "Security violation: Query must include tenant_id filtering"


class QueryExecutionError(AssistantError):
    default_message = "Database query error"
