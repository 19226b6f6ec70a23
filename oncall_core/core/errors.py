# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain error taxonomy.
Services raise these; controllers map them onto HTTP status codes.
"""


class UnauthorizedError(Exception):
    """No valid identity proof was presented."""


class ForbiddenError(Exception):
    """Identity is valid but lacks the role the operation needs."""


class NotFoundError(KeyError):
    """Entity missing."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable in HTTP details.
        return str(self.args[0]) if self.args else "Not found"


class InvalidInputError(ValueError):
    """Missing required field or malformed value."""


class InvalidRosterError(InvalidInputError):
    """Rotation roster is empty."""


class ConflictError(Exception):
    """Request conflicts with the current state of the entity."""


class InvalidTransitionError(ConflictError):
    """Incident status would move backwards."""


# Most specific first: subclasses must precede their bases.
HTTP_STATUS = (
    (UnauthorizedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
    (InvalidInputError, 400),
)

DOMAIN_ERRORS = tuple(cls for cls, _ in HTTP_STATUS)


def status_for(exc: Exception) -> int:
    for cls, status in HTTP_STATUS:
        if isinstance(exc, cls):
            return status
    return 500
