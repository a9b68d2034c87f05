"""Domain errors shared by services, extractors and routers.

Each error carries the HTTP status the API layer answers with, so routers
never have to translate service failures by hand.
"""


class DinheirosError(Exception):
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(DinheirosError):
    status_code = 400
    default_message = "invalid request"


class NotFoundError(DinheirosError):
    status_code = 404
    default_message = "not found"


class InsufficientFundsError(DinheirosError):
    status_code = 400
    default_message = "insufficient funds"


class UnauthorizedError(DinheirosError):
    status_code = 401
    default_message = "unauthorized"


class ForbiddenError(DinheirosError):
    status_code = 403
    default_message = "forbidden"


class MissingMarkerError(DinheirosError):
    """A statement lacks a structural marker its extractor requires."""
    status_code = 422
    default_message = "could not find required marker"


class StatementReadError(DinheirosError):
    """The PDF could not be opened or one of its pages could not be read."""
    status_code = 422
    default_message = "failed to read statement"


class PersistenceError(DinheirosError):
    status_code = 500
    default_message = "database error"
