"""
Envelope System Exceptions

Custom exceptions for template configuration, pricing and
envelope submission errors.
"""


class EnvelopeError(Exception):
    """Base exception for all envelope system errors."""
    pass


class ConfigurationError(EnvelopeError):
    """
    Raised when required configuration is missing or invalid.

    This includes payment gateway settings left unset or at their
    placeholder values, template definition errors, and a missing
    template PDF. Always raised before any remote call is made.
    """
    pass


class ValidationError(EnvelopeError):
    """
    Raised when an input payload or a single template entry is invalid.
    """
    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class UnknownSelectionError(EnvelopeError):
    """
    Raised in strict mode when the selected device model has no
    catalog price.
    """
    def __init__(self, message: str, device_model: str = None):
        self.device_model = device_model
        super().__init__(message)


class DocuSignAPIError(EnvelopeError):
    """
    Raised when DocuSign API calls fail.

    Wraps the underlying transport error with context.
    """
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class SubmissionError(EnvelopeError):
    """
    Raised when the envelope could not be created remotely.

    Auth rejections, malformed payloads and service outages all
    surface as this one type. The original exception is kept on
    ``cause`` (and chained) for diagnostics.
    """
    def __init__(self, message: str, cause: Exception = None):
        self.cause = cause
        super().__init__(message)


class ResolutionError(EnvelopeError):
    """
    Raised when an anchor source path cannot be resolved.

    The resolver logs it and binds the anchor to an empty string.
    """
    def __init__(self, message: str, source_path: str = None):
        self.source_path = source_path
        super().__init__(message)
