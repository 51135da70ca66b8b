"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class ValidationError(DomainException):
    """Input is malformed or out of range"""

    message = "Validation error"


class AccountNotFound(DomainException):
    """Sender or receiver account does not exist"""

    message = "Account not found"


class ReceiverNotEligible(DomainException):
    """Account exists but is not approved to transact"""

    message = "Receiver account not found or not approved"


class InsufficientFunds(DomainException):
    """Balance is below the requested debit"""

    message = "Insufficient balance"

    def __init__(self, available: Decimal, requested: Decimal):
        super().__init__()
        self.available = available
        self.requested = requested


class SelfTransferDenied(DomainException):
    """Sender and receiver are the same account"""

    message = "Cannot transfer to your own account"


class TransactionNotFound(DomainException):
    message = "Transaction not found"


class AlreadyProcessed(DomainException):
    """Settlement targeted a transaction that is no longer pending"""

    def __init__(self, status: str):
        super().__init__(
            f"Transaction is already {status}. Only pending transactions can be processed."
        )
        self.status = status


class TransactionAborted(DomainException):
    """The atomic unit could not commit; nothing was applied"""

    message = "Transaction could not be completed, please try again"


class UserNotFound(DomainException):
    message = "User not found"


class EmailAlreadyRegistered(DomainException):
    message = "Email is already registered"


class IdNumberAlreadyRegistered(DomainException):
    message = "ID number is already registered"


class AlreadyApproved(DomainException):
    message = "User is already approved"


class AlreadyVerified(DomainException):
    message = "Email is already verified. Your account is eligible for admin approval."


class InvalidToken(DomainException):
    """Verification or reset token is unknown or expired"""

    message = "Invalid or expired token"


class AuthenticationError(DomainException):
    """Missing, malformed or expired bearer token"""

    message = "Invalid or expired token"


class InvalidCredentials(AuthenticationError):
    message = "Invalid credentials"


class PermissionDenied(DomainException):
    message = "Insufficient permissions"


class AccountNotVerified(PermissionDenied):
    message = (
        "Email not verified. Please verify your email address before logging in."
    )


class AccountNotApproved(PermissionDenied):
    message = (
        "Account not approved. Your account is pending admin approval."
    )


class RateLimitExceeded(DomainException):
    def __init__(self, retry_after: int, limit: int):
        super().__init__(f"Rate limit exceeded. Try again in {retry_after} seconds.")
        self.retry_after = retry_after
        self.limit = limit
