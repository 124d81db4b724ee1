"""
Domain exceptions shared by repositories, services and route handlers.
Each carries the HTTP status the API layer should answer with.
"""


class RentalHubError(Exception):
    """Base exception for rule violations the caller can fix"""
    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class ValidationError(RentalHubError):
    """Missing or malformed input"""
    status_code = 400


class NotFoundError(RentalHubError):
    """Referenced entity does not exist in this business"""
    status_code = 404


class ConflictError(RentalHubError):
    """Booking overlap or duplicate record"""
    status_code = 400


class DeleteGuardError(RentalHubError):
    """Entity is still referenced by an active or reserved rental"""
    status_code = 400


class PaymentError(RentalHubError):
    """Stripe rejected the operation (402 for card declines)"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class IntegrationNotConfigured(RentalHubError):
    """An external integration is missing its credentials"""
    status_code = 500
