"""
Session credential acquisition and lifecycle.

The service hands out an XSRF token via ``Set-Cookie`` on its landing page.
``TokenAcquirer`` scrapes it; ``CredentialStore`` decides when a scrape is
actually needed and makes sure concurrent callers share a single one.
"""

from __future__ import annotations
import asyncio
import random
import time
from typing import Callable, Dict, Optional

import httpx

from tmail.errors import TokenAcquisitionFailed
from tmail.logging import logger, LoggerLike
from tmail.models import Credentials
from tmail.storage.token_cache import CachedCredentials, TokenCache

#: Desktop browser strings rotated per acquisition.
USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

XSRF_COOKIE = "XSRF-TOKEN"
#: The service rejects the raw cookie value; it wants this prefix plus "=".
TOKEN_LENGTH = 339


def pick_user_agent() -> str:
    return random.choice(USER_AGENTS)


def parse_set_cookie(header: str) -> Dict[str, str]:
    """
    Build a name -> value map from a (possibly comma-joined) Set-Cookie header.

    Attributes after the first ``;`` are dropped. Fragments without both a name
    and a value, such as the tail of an ``Expires=Wed, 21 Oct ...`` date, are
    skipped.
    """
    cookies: Dict[str, str] = {}
    for part in header.split(","):
        name_val = part.split(";", 1)[0].strip()
        fields = name_val.split("=")
        if len(fields) < 2:
            continue
        name, value = fields[0], fields[1]
        if name and value:
            cookies[name] = value
    return cookies


def credentials_from_response(response: httpx.Response) -> Credentials:
    """
    Derive the token/cookie pair from the landing-page response.

    Raises:
        TokenAcquisitionFailed: On non-2xx status, missing header, or missing XSRF cookie
    """
    if not response.is_success:
        raise TokenAcquisitionFailed(
            f"Token fetch failed: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    header = response.headers.get("set-cookie")
    if not header:
        raise TokenAcquisitionFailed("No set-cookie in token response")

    cookies = parse_set_cookie(header)
    xsrf = cookies.get(XSRF_COOKIE)
    if not xsrf:
        raise TokenAcquisitionFailed(f"No {XSRF_COOKIE} in response")

    token = xsrf[:TOKEN_LENGTH] + "="
    cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
    return Credentials(token, cookie)


class TokenAcquirer:
    """Performs the single GET that yields fresh credentials. Never retries."""

    def __init__(self, http: httpx.AsyncClient, domain: str, timeout: float) -> None:
        self._http = http
        self.domain = domain.rstrip("/")
        self.timeout = timeout

    async def acquire(self) -> Credentials:
        headers = {
            "User-Agent": pick_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ja,en-US;q=0.9,en;q=0.8",
        }
        # Start from a clean jar so the landing page issues a new session.
        self._http.cookies.clear()
        try:
            response = await self._http.get(f"{self.domain}/", headers=headers, timeout=self.timeout)
        except httpx.TransportError as e:
            raise TokenAcquisitionFailed(f"Token fetch failed: {e}") from e
        return credentials_from_response(response)


class CredentialStore:
    """
    Holds the active token/cookie pair for one client.

    Sources, cheapest first: the pair already held, the in-process cache, the
    durable cache, and finally a fresh acquisition. At most one acquisition is
    in flight at a time; concurrent callers await the same task.
    """

    def __init__(
        self,
        acquirer: TokenAcquirer,
        cache: Optional[TokenCache] = None,
        token: Optional[str] = None,
        cookie: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        log: Optional[LoggerLike] = None,
    ) -> None:
        self._acquirer = acquirer
        self._cache = cache
        self._clock = clock
        self._log = log or logger
        self._credentials: Optional[Credentials] = None
        self._memory: Optional[CachedCredentials] = None
        self._inflight: Optional[asyncio.Task] = None

        if token and cookie:
            self._credentials = Credentials(token, cookie)
        elif token or cookie:
            self._log.warning("Ignoring pre-supplied credentials: token and cookie must be given together")

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    def auth_headers(self) -> Dict[str, str]:
        if self._credentials is None:
            return {}
        return {"x-xsrf-token": self._credentials.token, "cookie": self._credentials.cookie}

    async def ensure(self) -> Credentials:
        """Return valid credentials, acquiring them only if no cache tier can."""
        if self._credentials is not None:
            return self._credentials

        now = self._clock()
        if self._memory is not None and self._memory.is_valid(now):
            self._log.debug("Using in-process cached credentials")
            self._credentials = self._memory.credentials
            return self._credentials

        if self._cache is not None:
            cached = self._cache.load()
            if cached is not None:
                self._log.debug("Using credentials from token cache file")
                self._credentials = cached
                self._memory = CachedCredentials(cached.token, cached.cookie, now)
                return cached

        return await self._acquire_shared()

    async def refresh(self) -> Credentials:
        """Drop every cached copy and acquire a new pair."""
        self.invalidate()
        credentials = await self._acquire_shared()
        self._log.info("Credentials refreshed")
        return credentials

    def invalidate(self) -> None:
        """Clear both cache tiers. The pair currently held is left alone."""
        self._memory = None
        if self._cache is not None:
            self._cache.clear()

    def discard(self) -> None:
        """Forget the held pair and both cache tiers so the next ``ensure`` re-acquires."""
        self._credentials = None
        self.invalidate()

    async def _acquire_shared(self) -> Credentials:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._acquire())
        else:
            self._log.debug("Joining in-flight credential acquisition")
        # shield: one waiter being cancelled must not cancel the shared task
        return await asyncio.shield(self._inflight)

    async def _acquire(self) -> Credentials:
        try:
            credentials = await self._acquirer.acquire()
            self._credentials = credentials
            self._memory = CachedCredentials(credentials.token, credentials.cookie, self._clock())
            if self._cache is not None:
                self._cache.save(credentials)
            self._log.info("Credentials obtained")
            return credentials
        finally:
            self._inflight = None
