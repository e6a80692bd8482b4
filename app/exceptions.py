"""
Failure kinds raised by the service layer.

Services never raise HTTP-specific errors.  ``app.main`` registers one
exception handler per kind and decides the status code; nothing below the
router layer knows about status codes.
"""


class ServiceError(Exception):
    """Base class for expected, caller-visible failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ServiceError):
    """A required field was missing or empty."""


class NotFound(ServiceError):
    """The referenced user or article does not exist."""

    def __init__(self, resource: str, resource_id: int) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class Forbidden(ServiceError):
    """The caller is authenticated but does not own the resource."""

    def __init__(self, requester_id: int, article_id: int) -> None:
        super().__init__("Forbidden")
        self.requester_id = requester_id
        self.article_id = article_id


class EmailAlreadyRegistered(ServiceError):
    def __init__(self, email: str) -> None:
        super().__init__("Email already registered")
        self.email = email


class InvalidCredentials(ServiceError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class StoreUnavailable(Exception):
    """
    The record store failed (connection lost, statement error, ...).

    Raised by the SQL stores with the original ``SQLAlchemyError`` chained
    as ``__cause__``.  Kept outside the ``ServiceError`` hierarchy: it is an
    infrastructure failure, not a business outcome.
    """
