"""
Async client for the emailnator disposable inbox service.
"""

from __future__ import annotations
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx

from tmail.auth import CredentialStore, TokenAcquirer
from tmail.errors import EmailNotSet, InvalidResponse, MessageIdNotSet
from tmail.logging import logger, LoggerLike
from tmail.models import ClientState, Message
from tmail.poller import wait_for_message
from tmail.storage.token_cache import FileTokenCache
from tmail.transport import RequestExecutor
from tmail.utils.request_queue import AsyncRequestQueue

DEFAULT_DOMAIN = "https://www.emailnator.com"
#: Address generation strategies requested from the service.
GENERATION_STRATEGIES = ["dotGmail", "googleMail"]
CONTENT_TYPE = "application/json, text/plain, */*"


class TmailClient:
    """
    One disposable inbox plus the session used to reach it.

    Every operation makes sure credentials exist, then runs its HTTP call
    through a paced queue and the retrying executor. Use as an async context
    manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        domain: str = DEFAULT_DOMAIN,
        proxy_url: Optional[str] = None,
        token: Optional[str] = None,
        cookie: Optional[str] = None,
        token_cache_path: Optional[str | Path] = None,
        log: Optional[LoggerLike] = None,
        timeout: Optional[float] = None,
        max_retries: int = 2,
        retry_delay: Optional[float] = None,
        max_concurrent: int = 2,
        queue_delay: float = 0.1,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the client.

        Args:
            domain: Service base URL
            proxy_url: Optional HTTP(S) proxy for all calls
            token: Pre-supplied XSRF token (needs ``cookie`` too)
            cookie: Pre-supplied cookie header (needs ``token`` too)
            token_cache_path: Optional JSON file for credentials across restarts
            log: Logger with debug/info/warning/error; defaults to loguru
            timeout: Per-call timeout in seconds (default: 30, or 45 with a proxy)
            max_retries: Transport-level retries per request (default: 2)
            retry_delay: Seconds between transport retries (default: 10, or 15 with a proxy)
            max_concurrent: Queue concurrency cap (default: 2)
            queue_delay: Pacing delay after each queued call (default: 0.1)
            http_client: Pre-built ``httpx.AsyncClient``; not closed by ``aclose``
            clock: Wall-clock source for cache expiry
        """
        self.domain = domain.rstrip("/")
        self.proxy_url = proxy_url
        self.timeout = timeout if timeout is not None else (45.0 if proxy_url else 30.0)
        self.retry_delay = retry_delay if retry_delay is not None else (15.0 if proxy_url else 10.0)
        self.max_retries = max_retries
        self._log = log or logger

        self._owns_http = http_client is None
        self._http = httpx.AsyncClient(proxy=proxy_url) if http_client is None else http_client

        cache = FileTokenCache(token_cache_path, clock=clock, log=self._log) if token_cache_path else None
        self._credentials = CredentialStore(
            TokenAcquirer(self._http, self.domain, self.timeout),
            cache=cache,
            token=token,
            cookie=cookie,
            clock=clock,
            log=self._log,
        )
        self._executor = RequestExecutor(
            self._http,
            self._credentials,
            timeout=self.timeout,
            max_retries=max_retries,
            retry_delay=self.retry_delay,
            log=self._log,
        )
        self._queue = AsyncRequestQueue(max_concurrent, queue_delay, log=self._log)
        self.email: Optional[str] = None

    async def __aenter__(self) -> "TmailClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = self._credentials.auth_headers()
        headers["content-type"] = CONTENT_TYPE
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        return await self._executor.execute(
            "POST", f"{self.domain}{path}", headers=self._headers(), json=payload
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponse(f"Invalid response: body is not JSON ({e})") from e

    async def generate_email(self) -> str:
        """
        Create a new disposable address and make it the active inbox.

        Returns:
            The generated address

        Raises:
            InvalidResponse: If the service returns no address
        """
        await self._credentials.ensure()

        async def call() -> str:
            response = await self._post("/generate-email", {"email": GENERATION_STRATEGIES})
            data = self._json(response)
            emails = data.get("email") if isinstance(data, dict) else None
            if not isinstance(emails, list) or not emails:
                raise InvalidResponse("Invalid response: no email in body")
            self.email = emails[0]
            self._log.info(f"Email obtained: {self.email}")
            return self.email

        return await self._queue.run(call)

    async def list_messages(self) -> List[Message]:
        """
        List messages currently in the active inbox.

        Raises:
            EmailNotSet: If no address has been generated
        """
        if not self.email:
            raise EmailNotSet("Generate an email first")
        await self._credentials.ensure()
        email = self.email

        async def call() -> List[Message]:
            response = await self._post("/message-list", {"email": email})
            data = self._json(response)
            items = (data.get("messageData") if isinstance(data, dict) else None) or []
            if not isinstance(items, list) or not all(isinstance(m, dict) for m in items):
                raise InvalidResponse("Invalid response: messageData is not a list of messages")
            return [
                {"from": m.get("from"), "messageID": m.get("messageID"), "subject": m.get("subject")}
                for m in items
            ]

        return await self._queue.run(call)

    async def get_message_body(self, message_id: str) -> str:
        """
        Fetch the raw body (usually HTML) of one message, unparsed.

        Raises:
            EmailNotSet: If no address has been generated
            MessageIdNotSet: If ``message_id`` is empty
        """
        if not self.email:
            raise EmailNotSet("Generate an email first")
        if not message_id:
            raise MessageIdNotSet("messageID required")
        await self._credentials.ensure()
        email = self.email

        async def call() -> str:
            response = await self._post("/message-list", {"email": email, "messageID": message_id})
            return response.text

        return await self._queue.run(call)

    async def wait_for_message(
        self,
        expected_from: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> Optional[Message]:
        """
        Poll the inbox until a message (optionally from ``expected_from``) arrives.

        Returns:
            The message, or None if none matched before the deadline
        """
        return await wait_for_message(
            self.list_messages,
            timeout=timeout if timeout is not None else self.timeout,
            poll_interval=poll_interval if poll_interval is not None else self.retry_delay,
            expected_from=expected_from,
            max_attempts=max_attempts,
            log=self._log,
        )

    def reset(self) -> None:
        """Forget the active address. The session is kept."""
        self.email = None

    def clear_token_cache(self) -> None:
        self._credentials.invalidate()

    def get_state(self) -> ClientState:
        return {"email": self.email, "has_credentials": self._credentials.has_credentials}
