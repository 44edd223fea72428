import json

import pytest

from oauthflow.client import Client
from oauthflow.transport import HttpRequest, HttpResponse


class FakeTransport:
    """In-memory transport that records requests and returns a canned response."""

    def __init__(self, status_code: int = 200, body: bytes | dict = b"", error: Exception | None = None):
        self.status_code = status_code
        self.body = json.dumps(body).encode() if isinstance(body, dict) else body
        self.error = error
        self.requests: list[HttpRequest] = []

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return HttpResponse(status_code=self.status_code, body=self.body)


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def client():
    return (
        Client.new("test-client", "https://auth.example.com/authorize", "https://auth.example.com/token")
        .with_client_secret("test-secret")
        .with_redirect_url("http://localhost:8080/callback")
    )


@pytest.fixture
def token_body():
    return {
        "access_token": "abc",
        "token_type": "bearer",
        "expires_in": 3600,
    }
