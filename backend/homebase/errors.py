"""
Domain exceptions for the HomeBase AI turn engine.

Only input validation and upstream model failures abort a turn. Tool
failures never surface as exceptions outside the tool executor; they are
converted into error tool results.
"""


class HomeBaseError(Exception):
    """Base class for all HomeBase AI errors."""

    code = "internal_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class InputValidationError(HomeBaseError):
    """Request rejected before any model call."""

    code = "invalid_request"


class SessionNotFoundError(InputValidationError):
    """Unknown session id, or a session owned by another user."""

    code = "session_not_found"


class ModelClientError(HomeBaseError):
    """The completion API failed or returned an unusable response."""

    code = "model_error"


class ModelRateLimitError(ModelClientError):
    code = "rate_limit"


class ModelPaymentRequiredError(ModelClientError):
    code = "payment_required"


class ToolExecutionError(HomeBaseError):
    """Raised by tool handlers for expected failures (missing org, insert failed)."""

    code = "tool_error"
