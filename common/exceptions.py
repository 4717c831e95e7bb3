"""
HomelyEats - Custom Exceptions
================================
Business-level exceptions that are converted to HTTP responses by the
handler registered in main.py.
"""


class HomelyEatsError(Exception):
    """Base exception for all business logic errors."""
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred."):
        self.message = message
        super().__init__(self.message)


class ValidationError(HomelyEatsError):
    """Bad input: empty cart, blank address, non-positive amount."""
    status_code = 400


class AuthenticationError(HomelyEatsError):
    """Raised when no valid identity accompanies the request."""
    status_code = 401

    def __init__(self, message: str = "login_required"):
        super().__init__(message)


class UnauthorizedError(HomelyEatsError):
    """Ownership or role check failed."""
    status_code = 403


class NotFoundError(HomelyEatsError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class InvalidStateError(HomelyEatsError):
    """Operation is not legal from the order's current status."""
    status_code = 409


class ExternalServiceError(HomelyEatsError):
    """Payment processor, language model or backing store call failed."""
    status_code = 502


class SignatureError(HomelyEatsError):
    """Webhook signature missing or invalid. Nothing may be applied."""
    status_code = 400

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)
