"""Domain error taxonomy mapped onto HTTP statuses by the API layer."""

from __future__ import annotations


class InboxError(ValueError):
    """Base class for expected failures surfaced to API callers."""

    status_code: int = 400
    message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class UnauthorizedError(InboxError):
    status_code = 401
    message = "Unauthorized"


class AccountNotFoundError(InboxError):
    status_code = 404
    message = "User not found"


class MessageNotFoundError(InboxError):
    status_code = 404
    message = "Message not found or already deleted"


class DuplicateAccountError(InboxError):
    status_code = 400
    message = "Username already exists"


class VerificationCodeExpiredError(InboxError):
    status_code = 400
    message = "Verification code has expired. Please sign up again to get a new code"


class InvalidVerificationCodeError(InboxError):
    status_code = 400
    message = "Incorrect verification code"


class AccountNotVerifiedError(InboxError):
    status_code = 403
    message = "Please verify your account before signing in"


class BadCredentialsError(InboxError):
    status_code = 401
    message = "Incorrect password"


class NotAcceptingMessagesError(InboxError):
    """Recipient has switched off incoming messages.

    Reported as an application-level failure on a 200 response.
    """

    status_code = 200

    def __init__(self, username: str) -> None:
        super().__init__(f"{username} is not accepting messages currently.")
        self.username = username


class UpstreamServiceError(InboxError):
    status_code = 502
    message = "Upstream service unavailable"


class InternalError(InboxError):
    status_code = 500
    message = "Internal server error"
