"""Request-scoped dependencies resolved from application state."""

from __future__ import annotations

import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..domain.account import SessionPrincipal
from ..domain.errors import UnauthorizedError
from ..domain.messages import MessageService
from ..domain.service import AccountService
from ..security.tokens import decode_session_token
from ..suggestions.completion import SuggestionClient

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_account_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_message_service(request: Request) -> MessageService:
    service: MessageService = request.app.state.message_service
    return service


def get_suggestion_client(request: Request) -> SuggestionClient:
    client: SuggestionClient = request.app.state.suggestion_client
    return client


def get_current_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> SessionPrincipal:
    """Return the session principal carried by the bearer token or reject with 401."""
    if creds is None or (creds.scheme or "").lower() != "bearer":
        raise UnauthorizedError()
    try:
        return decode_session_token(creds.credentials)
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Session expired") from exc
    except jwt.PyJWTError as exc:
        logger.info("rejected session token: %s", exc)
        raise UnauthorizedError() from exc
