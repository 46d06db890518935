# errors.py
from http import HTTPStatus
from typing import Any, Dict


class AppError(Exception):
    """Base for every failure that may cross the HTTP boundary.

    ``key`` is the JSON field the public message is rendered under: the
    auth/register and portfolio routes answer with ``error``, the session
    route with ``message``. ``envelope`` adds ``"success": false`` for the
    stock routes, which wrap their payloads in ``{success, data}``.
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, key: str = "error",
                 envelope: bool = False) -> None:
        self.message = message or self.default_message
        self.key = key
        self.envelope = envelope
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        if self.envelope:
            return {"success": False, self.key: self.message}
        return {self.key: self.message}


class InvalidInput(AppError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Invalid input"


class DuplicateEmail(AppError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Email already exists"


class DuplicateStock(AppError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Stock already exists"


class InvalidCredentials(AppError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Invalid credentials"


class Unauthenticated(AppError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Invalid or expired token"


class NotFound(AppError):
    status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class InternalError(AppError):
    pass
