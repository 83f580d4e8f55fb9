"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidScheduleInput(DomainException):
    """Installment count, interval, total or edited value is invalid"""

    pass


class ScheduleSumMismatch(DomainException):
    """Installment values do not add up to the transaction amount"""

    def __init__(self, expected, scheduled):
        self.expected = expected
        self.scheduled = scheduled
        super().__init__(f"Installments sum to {scheduled}, transaction amount is {expected}")


class CannotRemoveLastInstallment(DomainException):
    """A schedule must keep at least one installment"""

    pass


class TenantMismatch(DomainException):
    """Resource belongs to a different tenant than the caller"""

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} is not accessible to this tenant")


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class TransactionNotFound(NotFoundError):
    pass


class InstallmentNotFound(NotFoundError):
    pass


class StoreUnavailable(DomainException):
    """Record store is unreachable; the whole atomic operation is safe to retry"""

    pass


class IdentityProviderError(DomainException):
    """Identity provider returned an error or is unavailable"""

    pass


class AuthenticationError(DomainException):
    """Caller credentials were rejected by the identity provider"""

    pass
