"""Domain-specific exceptions"""

from typing import List, Sequence


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Fee parameters are missing or out of range"""

    def __init__(self, fields: Sequence[str], messages: Sequence[str] = ()):
        self.fields: List[str] = list(fields)
        self.messages: List[str] = list(messages) or [f"{f} is invalid" for f in self.fields]
        super().__init__("; ".join(self.messages))


class LookupUnavailable(DomainException):
    """Fee structure lookup failed (backend error, not a missing row)"""

    pass


class InvalidFeeStructure(DomainException):
    """Resolved fee structure carries negative amounts or processing days"""

    pass


class PaymentError(DomainException):
    """Payment cannot be applied to the invoice in its current state"""

    pass
