"""Account service orchestrating sign-up, verification, sign-in and inbox settings."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from urllib.parse import unquote

from .account import Account, SessionPrincipal
from .contracts import SignUpInput
from .errors import (
    AccountNotFoundError,
    AccountNotVerifiedError,
    BadCredentialsError,
    DuplicateAccountError,
    InvalidVerificationCodeError,
    VerificationCodeExpiredError,
)
from ..notifications.email import EmailSender
from ..repository import AccountRepository
from ..security.codes import issue_code
from ..security.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)


class AccountService:
    """Account lifecycle workflows backed by Postgres storage."""

    def __init__(self, repository: AccountRepository, mailer: EmailSender) -> None:
        """Store dependencies used to orchestrate persistence and email dispatch."""
        self._repository = repository
        self._mailer = mailer

    def sign_up(self, payload: SignUpInput) -> Account:
        """Register a new account, or refresh an unverified one holding the same email.

        Usernames are only reserved by verified accounts, so an unverified
        record under another email loses the name to this sign-up. The account
        is not considered registered until the verification email has been
        handed to the provider; a dispatch failure propagates.
        """
        if self._repository.find_verified_by_username(payload.username):
            raise DuplicateAccountError("Username already exists")

        existing = self._repository.find_by_email(payload.email)
        if existing is not None and existing.is_verified:
            raise DuplicateAccountError("Email already exists")

        now = datetime.now(timezone.utc)
        code, expiry = issue_code(now)
        password_hash = hash_password(payload.password)

        if existing is not None:
            existing.username = payload.username
            existing.password_hash = password_hash
            existing.verify_code = code
            existing.verify_code_expiry = expiry
            account = self._repository.update_account(existing)
            logger.info("refreshed unverified account id=%s", account.account_id)
        else:
            account = self._repository.create_account(
                Account(
                    account_id=str(uuid.uuid4()),
                    username=payload.username,
                    email=payload.email,
                    password_hash=password_hash,
                    verify_code=code,
                    verify_code_expiry=expiry,
                    is_verified=False,
                    is_accepting_messages=True,
                    created_at=now,
                )
            )
            logger.info("created account id=%s", account.account_id)

        self._mailer.send_verification_email(account.email, account.username, code)
        return account

    def verify_code(self, username: str, code: str) -> Account:
        """Mark the account verified when ``code`` matches and has not expired.

        Expiry is checked first, so an expired but correct code is rejected as
        expired. Verifying an already verified account is a no-op.
        """
        account = self._repository.find_by_username(unquote(username))
        if account is None:
            raise AccountNotFoundError()
        if account.is_verified:
            return account
        if datetime.now(timezone.utc) > account.verify_code_expiry:
            raise VerificationCodeExpiredError()
        if account.verify_code != code:
            raise InvalidVerificationCodeError()

        self._repository.mark_verified(account.account_id)
        account.is_verified = True
        logger.info("verified account id=%s", account.account_id)
        return account

    def authenticate(self, identifier: str, password: str) -> SessionPrincipal:
        """Validate credentials and return the session principal for the account."""
        account = self._repository.find_by_identifier(identifier)
        if account is None:
            raise AccountNotFoundError()
        if not account.is_verified:
            raise AccountNotVerifiedError()
        if not verify_password(password, account.password_hash):
            raise BadCredentialsError()
        return SessionPrincipal(
            account_id=account.account_id,
            username=account.username,
            is_verified=account.is_verified,
            is_accepting_messages=account.is_accepting_messages,
        )

    def get_account(self, account_id: str) -> Account:
        account = self._repository.get_account(account_id)
        if account is None:
            raise AccountNotFoundError()
        return account

    def set_accepting(self, account_id: str, accepting: bool) -> Account:
        """Idempotently set the acceptance flag and return the updated account."""
        account = self._repository.set_accepting(account_id, accepting)
        if account is None:
            raise AccountNotFoundError()
        logger.info("account id=%s accepting=%s", account_id, accepting)
        return account

    def get_accepting(self, account_id: str) -> bool:
        """Read the current acceptance flag from the store."""
        accepting = self._repository.get_accepting(account_id)
        if accepting is None:
            raise AccountNotFoundError()
        return accepting

    def is_username_available(self, username: str) -> bool:
        """Return ``True`` unless a verified account already holds ``username``."""
        return self._repository.find_verified_by_username(username) is None
