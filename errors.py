"""
Error taxonomy for the Shop API.

Every failure a handler can report is a ``ShopError`` carrying the HTTP
status it maps to and a short client-facing message.  The exception
handlers registered in ``main`` turn these into ``{"message": ...}``
responses.
"""


class ShopError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(ShopError):
    status_code = 400
    message = "Invalid input"


class InvalidArgument(ShopError):
    """A malformed identifier, as opposed to a well-formed unknown one."""

    status_code = 400
    message = "Invalid ID"


class Unauthorized(ShopError):
    status_code = 401
    message = "Unauthorized"


class TokenInvalid(Unauthorized):
    message = "Invalid token"


class TokenExpired(Unauthorized):
    message = "Token expired"


class Conflict(ShopError):
    status_code = 409
    message = "Conflict"


class NotFound(ShopError):
    status_code = 404
    message = "Not found"


class InternalFailure(ShopError):
    """An unexpected store or runtime failure."""
