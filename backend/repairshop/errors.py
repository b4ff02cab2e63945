# Overview: Domain error taxonomy shared by services; routes translate these to HTTP.

"""
Service Errors

Every core operation either returns its result or raises one of these.
The Flask error handler registered in create_app() maps status_code to the
HTTP response, so services never build responses themselves.
"""


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""
    status_code = 400

    def to_dict(self) -> dict:
        return {"error": str(self)}


class ValidationError(ServiceError, ValueError):
    """400-level input problem (missing field, non-numeric cost)."""
    status_code = 400


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate shop email)."""
    status_code = 409


class AuthenticationError(ServiceError):
    status_code = 401


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    """Cross-tenant or unauthorized access."""
    status_code = 403


class LockedError(ServiceError):
    """Mutation attempted on a checked_out job."""
    status_code = 403


class AlreadyLockedError(LockedError):
    """Checkout attempted on a job that is already locked."""
    status_code = 400


class InvalidStatusError(ServiceError):
    status_code = 400


class PlanNotFoundError(NotFoundError):
    pass


class StaffLimitError(ForbiddenError):
    def __init__(self, message: str, *, limit: int, current_count: int, subscription_class: str):
        super().__init__(message)
        self.limit = limit
        self.current_count = current_count
        self.subscription_class = subscription_class

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "limit": self.limit,
            "current_count": self.current_count,
            "subscription_class": self.subscription_class,
        }


class GoneError(ServiceError):
    status_code = 410


class SubscriptionExpiredError(ForbiddenError):
    pass


class ShopDeactivatedError(ForbiddenError):
    pass
