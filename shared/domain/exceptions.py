"""
Domain Errors

Closed set of error kinds raised by the booking engine. Each kind carries
the HTTP status the API layer maps it to, so callers can dispatch on the
class (or on ``kind``) instead of matching message strings.
"""


class DomainError(Exception):
    """Base class for every error the engine reports to its callers"""

    kind = 'error'
    http_status = 500
    default_message = 'Unexpected error'

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'detail': self.message}


class ValidationError(DomainError):
    """Malformed or missing input. Always fixable by the caller."""
    kind = 'validation_error'
    http_status = 400
    default_message = 'Invalid request'


class NotFoundError(DomainError):
    kind = 'not_found'
    http_status = 404
    default_message = 'Resource not found'


class ConflictError(DomainError):
    """Requested window overlaps a non-cancelled booking"""
    kind = 'conflict'
    http_status = 409
    default_message = 'Court not available in the requested window'


class InvalidStateTransition(DomainError):
    kind = 'invalid_state_transition'
    http_status = 409
    default_message = 'Transition not allowed from the current state'


class ConfigurationError(DomainError):
    """Missing or invalid system setting. Fixable by an operator, not the caller."""
    kind = 'configuration_error'
    http_status = 500
    default_message = 'Service misconfigured'


class PaymentProviderError(DomainError):
    """Payment gateway failure. The original exception is kept as ``cause``."""
    kind = 'payment_provider_error'
    http_status = 502
    default_message = 'Payment provider unavailable'

    def __init__(self, message: str | None = None, cause: BaseException | None = None, **context):
        super().__init__(message, **context)
        self.cause = cause


class InternalError(DomainError):
    """Store or transaction failure"""
    kind = 'internal_error'
    http_status = 500
    default_message = 'Internal error'
