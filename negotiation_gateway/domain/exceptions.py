"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidBillingItemError(DomainException):
    """Billing item carries a value the calculator cannot work with"""

    pass


class CodeServiceError(DomainException):
    """Negotiation code generator returned an error or is unavailable"""

    pass


class NegotiationCodeConflict(DomainException):
    """Generated negotiation code is already taken for the clinic"""

    def __init__(self, code: str):
        super().__init__(f"Negotiation code already in use: {code}")
        self.code = code


class CodeAllocationError(DomainException):
    """Could not allocate a unique negotiation code within the attempt limit"""

    pass


class PersistenceError(DomainException):
    """Negotiation could not be written to the database"""

    pass


class CommitInProgressError(DomainException):
    """A commit is already running for this wizard session"""

    pass


class InvalidStepError(DomainException):
    """Operation is not available at the wizard's current step"""

    pass


class SessionNotFoundError(DomainException):
    """Wizard session does not exist or has been discarded"""

    pass
