"""Anonymous message intake, retrieval and deletion."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from prometheus_client import Counter

from .account import Message
from .contracts import SendMessageInput
from .errors import AccountNotFoundError, MessageNotFoundError, NotAcceptingMessagesError
from ..repository import AccountRepository

logger = logging.getLogger(__name__)

MESSAGES_SENT = Counter(
    "inbox_messages_sent_total",
    "Anonymous messages submitted, by outcome.",
    ["outcome"],
)


class MessageService:
    """Inbox workflows; senders are never recorded."""

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    def send(self, payload: SendMessageInput) -> Message:
        """Append an anonymous message to the recipient's inbox.

        The acceptance flag is read fresh from the store, and the append itself
        is conditional on the flag, so a recipient that switches off between the
        read and the write still rejects the message.
        """
        account = self._repository.find_by_username(payload.username)
        if account is None:
            MESSAGES_SENT.labels(outcome="not_found").inc()
            raise AccountNotFoundError()
        if not account.is_accepting_messages:
            MESSAGES_SENT.labels(outcome="rejected").inc()
            raise NotAcceptingMessagesError(account.username)

        message = Message(
            message_id=str(uuid.uuid4()),
            content=payload.content,
            created_at=datetime.now(timezone.utc),
        )
        if not self._repository.append_message(account.account_id, message):
            MESSAGES_SENT.labels(outcome="rejected").inc()
            raise NotAcceptingMessagesError(account.username)

        MESSAGES_SENT.labels(outcome="delivered").inc()
        logger.info("message %s delivered to account id=%s", message.message_id, account.account_id)
        return message

    def list_messages(self, account_id: str) -> list[Message]:
        """Return the owner's messages, newest first."""
        messages = self._repository.list_messages(account_id)
        if messages is None:
            raise AccountNotFoundError()
        return messages

    def delete_message(self, account_id: str, message_id: str) -> None:
        """Remove one message from the owner's inbox; other inboxes are never touched."""
        removed = self._repository.remove_message(account_id, message_id)
        if removed == 0:
            raise MessageNotFoundError()
        logger.info("message %s deleted by account id=%s", message_id, account_id)
