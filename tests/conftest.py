from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from inbox.api import routes
from inbox.api.errors import register_exception_handlers
from inbox.domain.contracts import SignUpInput
from inbox.domain.messages import MessageService
from inbox.domain.service import AccountService

from fakes import FakeMailer, FakeRepository, FakeSuggestionClient


class Harness:
    """Bundles the test client with the fakes wired into it."""

    def __init__(self, client: TestClient, repository: FakeRepository, mailer: FakeMailer,
                 suggestions: FakeSuggestionClient, account_service: AccountService) -> None:
        self.client = client
        self.repository = repository
        self.mailer = mailer
        self.suggestions = suggestions
        self.account_service = account_service

    def register(self, username: str, email: str, password: str = "secret123", verify: bool = True):
        account = self.account_service.sign_up(
            SignUpInput(username=username, email=email, password=password)
        )
        if verify:
            self.account_service.verify_code(username, self.mailer.last_code_for(username))
        return account

    def sign_in(self, identifier: str, password: str = "secret123") -> dict[str, str]:
        response = self.client.post(
            "/api/sign-in", json={"identifier": identifier, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def harness():
    """Provide a FastAPI test client with isolated in-memory state."""
    repository = FakeRepository()
    mailer = FakeMailer()
    suggestions = FakeSuggestionClient()
    account_service = AccountService(repository, mailer)

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(routes.router)
    app.state.account_service = account_service
    app.state.message_service = MessageService(repository)
    app.state.suggestion_client = suggestions

    with TestClient(app, raise_server_exceptions=False) as client:
        yield Harness(client, repository, mailer, suggestions, account_service)
