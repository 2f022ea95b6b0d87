"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class CatalogAPIError(DomainException):
    """Catalog API returned an error or is unavailable"""

    pass


class InvalidTransitionError(DomainException):
    """Checkout operation is not allowed in the current state"""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot {operation} while checkout is {state}")
        self.operation = operation
        self.state = state


class UnknownPlanError(DomainException):
    """Requested subscription plan does not exist"""

    pass


class OnboardingValidationError(DomainException):
    """Onboarding step data is missing or out of range"""

    pass


class PaymentValidationError(DomainException):
    """Payment information rejected before submission to the gateway"""

    pass
