"""
Pytest configuration and shared fixtures.
"""

import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

# Add src to path for imports
PROJ_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJ_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from tmail.client import TmailClient  # noqa: E402

DOMAIN = "https://www.emailnator.com"


class FakeEmailnator:
    """
    In-process stand-in for the emailnator endpoints, used as an
    ``httpx.MockTransport`` handler.

    Every landing-page GET issues a new session (``xsrf1``, ``xsrf2``, ...).
    ``post_statuses`` queues error statuses returned by the next POSTs before
    normal handling resumes.
    """

    def __init__(self):
        self.address = "x@gmail.com"
        self.messages = []
        self.bodies = {}
        self.token_calls = 0
        self.token_delay = 0.0
        self.token_status = 200
        self.post_statuses = []
        self.requests = []

    @property
    def posts(self):
        return [r for r in self.requests if r.method == "POST"]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.method == "GET" and request.url.path == "/":
            self.token_calls += 1
            n = self.token_calls
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="unavailable")
            return httpx.Response(
                200,
                headers=[
                    ("set-cookie", f"XSRF-TOKEN=xsrf{n}; expires=Wed, 21 Oct 2099 07:28:00 GMT; Max-Age=7200; path=/"),
                    ("set-cookie", f"gmailnator_session=sess{n}; expires=Wed, 21 Oct 2099 07:28:00 GMT; path=/; httponly"),
                ],
                text="<html></html>",
            )

        if request.method == "POST":
            if self.post_statuses:
                return httpx.Response(self.post_statuses.pop(0))
            body = json.loads(request.content)
            if request.url.path == "/generate-email":
                return httpx.Response(200, json={"email": [self.address] if self.address else []})
            if request.url.path == "/message-list":
                if "messageID" in body:
                    return httpx.Response(200, text=self.bodies.get(body["messageID"], ""))
                if self.messages is None:
                    return httpx.Response(200, json={})
                return httpx.Response(200, json={"messageData": self.messages})

        return httpx.Response(404)


@pytest.fixture
def fake_service():
    """Fresh fake service per test."""
    return FakeEmailnator()


@pytest.fixture
def http_client(fake_service):
    """httpx client routed to the fake service."""
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_service))


@pytest.fixture
def make_client(http_client):
    """Factory for clients wired to the fake service with fast timings."""
    def factory(**kwargs):
        options = {
            "domain": DOMAIN,
            "http_client": http_client,
            "timeout": 5.0,
            "retry_delay": 0.0,
            "queue_delay": 0.0,
        }
        options.update(kwargs)
        return TmailClient(**options)
    return factory


@pytest.fixture
def sample_messages():
    """Sample message list as returned by /message-list."""
    return [
        {"from": "news@shop.example", "messageID": "MTAwMA", "subject": "Weekly deals"},
        {"from": "no-reply@service.example", "messageID": "MjAwMA", "subject": "Your code"},
        {"from": "ads@other.example", "messageID": "ADSVPN"},
    ]
