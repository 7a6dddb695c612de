
class ApplicationError(Exception):
    """Base class for application-specific errors."""
    pass


class ProductValidationError(ApplicationError):
    """Raised when a request is well-formed but refers to invalid data."""
    pass


class ProductNotFoundError(ApplicationError):
    """Raised when a product is not found."""
    pass


class AuthenticationError(ApplicationError):
    """Raised when the bearer token is missing, malformed or invalid."""
    pass


class DatabaseError(ApplicationError):
    """Raised for general database-related errors not specifically handled."""
    def __init__(self, message="A database error occurred.", original_exception=None):
        super().__init__(message)
        self.original_exception = original_exception
