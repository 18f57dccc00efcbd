"""HTTP route definitions for the inbox service."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..config import get_settings
from ..domain.account import Account, Message, SessionPrincipal
from ..domain.contracts import SendMessageInput, SignUpInput
from ..domain.errors import InternalError, UpstreamServiceError
from ..domain.messages import MessageService
from ..domain.service import AccountService
from ..security.tokens import issue_session_token
from ..suggestions.completion import SuggestionClient, parse_suggestions
from .dependencies import (
    get_account_service,
    get_current_principal,
    get_message_service,
    get_suggestion_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

settings = get_settings()

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"

# bcrypt hashes at most this many bytes of input
PASSWORD_MAX_BYTES = 72


class Envelope(BaseModel):
    """Base response shape shared by every endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` aggregate, minus secrets."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str
    email: EmailStr | None = None
    is_verified: bool = Field(alias="isVerified")
    is_accepting_messages: bool = Field(alias="isAcceptingMessages")

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.account_id,
            username=account.username,
            email=account.email,
            is_verified=account.is_verified,
            is_accepting_messages=account.is_accepting_messages,
        )

    @classmethod
    def from_principal(cls, principal: SessionPrincipal) -> "AccountResponse":
        return cls(
            id=principal.account_id,
            username=principal.username,
            is_verified=principal.is_verified,
            is_accepting_messages=principal.is_accepting_messages,
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    content: str
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, message: Message) -> "MessageResponse":
        return cls(id=message.message_id, content=message.content, created_at=message.created_at)


class SignUpRequest(BaseModel):
    """Payload accepted when registering an account.

    Only ``username`` and ``email`` are trimmed; the password is hashed exactly
    as sent so that sign-in with the same string matches.
    """

    username: str = Field(..., min_length=2, max_length=20, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("username", "email", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def _fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return value


class VerifyCodeRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1)
    code: str = Field(..., pattern=r"^\d{6}$")


class SignInRequest(BaseModel):
    """Credentials; ``identifier`` is a username or an email address."""

    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignInResponse(Envelope):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse


class AcceptMessagesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_accepting_messages: bool = Field(..., alias="isAcceptingMessages")


class AcceptMessagesStatusResponse(Envelope):
    is_accepting_messages: bool = Field(alias="isAcceptingMessages")


class AcceptMessagesUpdateResponse(Envelope):
    updated_user: AccountResponse = Field(alias="updatedUser")


class MessagesResponse(Envelope):
    messages: list[MessageResponse]


class SendMessageRequest(BaseModel):
    """Anonymous message payload; no sender fields are accepted."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=settings.message_max_length)


class SuggestionsResponse(Envelope):
    completion: str
    suggestions: list[str]


@router.post("/sign-up", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    service: AccountService = Depends(get_account_service),
) -> Envelope:
    """Register an account and send its verification code by email."""
    try:
        service.sign_up(
            SignUpInput(username=payload.username, email=payload.email, password=payload.password)
        )
    except UpstreamServiceError as exc:
        raise InternalError(exc.message) from exc
    return Envelope(message="User registered successfully. Please verify your email")


@router.post("/verify-code", response_model=Envelope)
def verify_code(
    payload: VerifyCodeRequest,
    service: AccountService = Depends(get_account_service),
) -> Envelope:
    service.verify_code(payload.username, payload.code)
    return Envelope(message="User verified successfully")


@router.post("/sign-in", response_model=SignInResponse)
def sign_in(
    payload: SignInRequest,
    service: AccountService = Depends(get_account_service),
) -> SignInResponse:
    """Exchange credentials for a signed session token."""
    principal = service.authenticate(payload.identifier, payload.password)
    token, expires_in = issue_session_token(principal)
    return SignInResponse(
        message="Signed in successfully",
        token=token,
        expires_in=expires_in,
        user=AccountResponse.from_principal(principal),
    )


@router.get("/accept-messages", response_model=AcceptMessagesStatusResponse)
def get_accept_messages(
    principal: SessionPrincipal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> AcceptMessagesStatusResponse:
    """Return the current acceptance flag, read from the store rather than the session."""
    accepting = service.get_accepting(principal.account_id)
    return AcceptMessagesStatusResponse(message="User found", is_accepting_messages=accepting)


@router.post("/accept-messages", response_model=AcceptMessagesUpdateResponse)
def set_accept_messages(
    payload: AcceptMessagesRequest,
    principal: SessionPrincipal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> AcceptMessagesUpdateResponse:
    account = service.set_accepting(principal.account_id, payload.is_accepting_messages)
    return AcceptMessagesUpdateResponse(
        message="Message accepting status updated",
        updated_user=AccountResponse.from_domain(account),
    )


@router.get("/get-messages", response_model=MessagesResponse)
def get_messages(
    principal: SessionPrincipal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
) -> MessagesResponse:
    messages = service.list_messages(principal.account_id)
    return MessagesResponse(
        message="Messages found",
        messages=[MessageResponse.from_domain(message) for message in messages],
    )


@router.delete("/delete-message/{message_id}", response_model=Envelope)
def delete_message(
    message_id: str,
    principal: SessionPrincipal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
) -> Envelope:
    service.delete_message(principal.account_id, message_id)
    return Envelope(message="Message deleted successfully")


@router.post("/send-message", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def send_message(
    payload: SendMessageRequest,
    service: MessageService = Depends(get_message_service),
) -> Envelope:
    """Deliver an anonymous message to a user's inbox."""
    service.send(SendMessageInput(username=payload.username, content=payload.content))
    return Envelope(message="Message sent successfully")


@router.get("/check-username-unique", response_model=Envelope)
def check_username_unique(
    username: str = Query(..., min_length=2, max_length=20, pattern=USERNAME_PATTERN),
    service: AccountService = Depends(get_account_service),
):
    if not service.is_username_available(username):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Username is already taken"},
        )
    return Envelope(message="Username is available")


@router.post("/suggest-messages", response_model=SuggestionsResponse)
def suggest_messages(
    client: SuggestionClient = Depends(get_suggestion_client),
) -> SuggestionsResponse:
    """Ask the completion API for ``||``-separated prompt ideas."""
    completion = client.suggest()
    return SuggestionsResponse(
        message="Suggestions generated",
        completion=completion,
        suggestions=parse_suggestions(completion),
    )
