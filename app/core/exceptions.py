class LedgerException(Exception):
    """Base exception for the ledger"""

    pass


class UnauthorizedException(LedgerException):
    """Raised when the bearer credential cannot be resolved to an identity"""

    def __init__(self, message: str = "Unauthorized: Please provide a valid authentication token"):
        super().__init__(message)


class ForbiddenException(LedgerException):
    """Raised when the access policy denies an authenticated identity"""

    def __init__(self, message: str | None = None, required_role: str | None = None):
        if message is None:
            message = (
                f"Forbidden: This action requires {required_role} role"
                if required_role
                else "Forbidden: You don't have permission to perform this action"
            )
        super().__init__(message)
        self.required_role = required_role


class NotFoundException(LedgerException):
    """Raised when resource not found"""

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictException(LedgerException):
    """Raised on uniqueness violations (slug, email)"""

    pass


class InvalidStateException(LedgerException):
    """Raised when an operation is not allowed in the resource's current state"""

    pass


class ValidationException(LedgerException):
    """Raised for business logic validation errors"""

    pass
