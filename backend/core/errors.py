"""Application error taxonomy.

Services raise these; the handlers registered in ``main.py`` turn them into
``{"success": false, "message": ...}`` responses with the matching status.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500
    message: str = "Server error. Please try again later."

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    message = "Invalid request"


class NotFound(AppError):
    status_code = 404
    message = "User does not exist!"


class AlreadyExists(AppError):
    status_code = 409
    message = "User already exists!"


class AlreadyVerified(AppError):
    status_code = 400
    message = "You are already verified!"


class NoChallengeOutstanding(AppError):
    status_code = 400
    message = "something is wrong with the code!"


class CodeExpired(AppError):
    status_code = 400
    message = "code has been expired!"


class InvalidCode(AppError):
    status_code = 400
    message = "Invalid code!"


class InvalidCredentials(AppError):
    status_code = 401
    message = "Invalid credentials!"


class NotVerified(AppError):
    status_code = 403
    message = "You are not a verified user!"


class Unauthorized(AppError):
    status_code = 403
    message = "Unauthorized"


class InvalidToken(AppError):
    status_code = 401
    message = "Invalid or expired token"


class DispatchFailed(AppError):
    status_code = 400
    message = "Code sent failed!"


class Internal(AppError):
    status_code = 500
