"""
HTTP execution with timeout, transient retries and one-shot credential refresh.
"""

from __future__ import annotations
import asyncio
from typing import Any, Dict, Optional

import httpx

from tmail.auth import CredentialStore
from tmail.errors import HttpError, InvalidCredentials, RequestFailed
from tmail.logging import logger, LoggerLike

#: Header fields that carry session material and are rewritten after a refresh.
AUTH_HEADERS = ("x-xsrf-token", "cookie")


class RequestExecutor:
    """
    Runs a single logical request against the service.

    Retry policy, checked in order on every attempt:

    1. Transport failure (timeout, connection error) with retries left:
       sleep ``retry_delay`` and retry with the same credentials.
    2. HTTP 403 and the credential retry is unused: refresh credentials,
       rewrite the auth headers and retry. Only one such retry per request.
    3. HTTP 419: drop the held credentials and raise ``InvalidCredentials``
       at once. The next call acquires a new pair.
    4. Any other non-2xx: raise ``HttpError``.
    5. Transport failure with no retries left: raise ``RequestFailed``.

    The two retry budgets are independent. Each attempt gets its own timeout.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        credentials: CredentialStore,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 10.0,
        log: Optional[LoggerLike] = None,
    ) -> None:
        self._http = http
        self._credentials = credentials
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._log = log or logger

    async def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Send the request, applying the retry policy.

        Returns:
            The successful (2xx) response

        Raises:
            InvalidCredentials: On HTTP 419
            HttpError: On any other non-2xx response
            RequestFailed: When transport retries are exhausted
            TokenAcquisitionFailed: When the 403 refresh cannot obtain credentials
        """
        headers = dict(headers or {})
        transient_attempts = 0
        credential_retry_used = False

        while True:
            try:
                response = await self._http.request(
                    method, url, headers=headers, json=json, timeout=self.timeout
                )
            except httpx.TransportError as e:
                if transient_attempts < self.max_retries:
                    transient_attempts += 1
                    self._log.warning(
                        f"Request failed ({transient_attempts}/{self.max_retries}), retrying: {e!r}"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise RequestFailed(f"Request failed: {e!r}") from e

            if response.status_code == 403 and not credential_retry_used:
                credential_retry_used = True
                self._log.warning("HTTP 403, refreshing credentials and retrying")
                await self._credentials.refresh()
                fresh = self._credentials.auth_headers()
                for name in AUTH_HEADERS:
                    if name in headers:
                        headers[name] = fresh[name]
                continue

            if response.status_code == 419:
                self._credentials.discard()
                raise InvalidCredentials("Invalid or expired XSRF/cookie", status_code=419)

            if not response.is_success:
                raise HttpError(
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    status_code=response.status_code,
                )

            return response
