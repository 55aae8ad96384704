"""
Token cache storage.

Two tiers hold acquired credentials: an in-process entry owned by
``CredentialStore`` and an optional JSON file that survives restarts. The file
tier is best-effort: every I/O or decoding problem is logged and treated as a
cache miss, never raised to the caller.
"""

from __future__ import annotations
import json
import time
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Protocol

from tmail.logging import logger, LoggerLike
from tmail.models import Credentials

#: Credentials are considered stale this long after acquisition.
TOKEN_EXPIRY_SECONDS = 30 * 60


class CachedCredentials(NamedTuple):
    """Credentials stamped with their acquisition time (epoch seconds)."""
    token: str
    cookie: str
    timestamp: float

    def is_valid(self, now: float) -> bool:
        return now < self.timestamp + TOKEN_EXPIRY_SECONDS

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.token, self.cookie)


class TokenCache(Protocol):
    """Durable credential cache interface."""
    def load(self) -> Optional[Credentials]: ...
    def save(self, credentials: Credentials) -> None: ...
    def clear(self) -> None: ...


class FileTokenCache:
    """
    JSON file implementation of ``TokenCache``.

    File format: ``{"token": str, "cookie": str, "timestamp": int}`` where
    ``timestamp`` is epoch milliseconds. No locking; the last writer wins.
    """

    def __init__(
        self,
        path: str | Path,
        clock: Callable[[], float] = time.time,
        log: Optional[LoggerLike] = None,
    ) -> None:
        self.path = Path(path)
        self._clock = clock
        self._log = log or logger

    def load(self) -> Optional[Credentials]:
        """
        Read cached credentials if the file exists and has not expired.

        Returns:
            Credentials, or None on miss, expiry, or any read/parse error
        """
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entry = CachedCredentials(
                token=data["token"],
                cookie=data["cookie"],
                timestamp=float(data["timestamp"]) / 1000.0,
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            self._log.debug(f"Ignoring unreadable token cache {self.path}: {e}")
            return None

        if not isinstance(entry.token, str) or not isinstance(entry.cookie, str):
            self._log.debug(f"Ignoring malformed token cache {self.path}")
            return None
        if not entry.token or not entry.cookie:
            return None
        if not entry.is_valid(self._clock()):
            self._log.debug(f"Token cache {self.path} expired")
            return None
        return entry.credentials

    def save(self, credentials: Credentials) -> None:
        """Write credentials stamped with the current time. Failures are logged only."""
        payload = {
            "token": credentials.token,
            "cookie": credentials.cookie,
            "timestamp": int(self._clock() * 1000),
        }
        try:
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            self._log.debug(f"Saved credentials to {self.path}")
        except OSError as e:
            self._log.warning(f"Could not write token cache {self.path}: {e}")

    def clear(self) -> None:
        """Delete the cache file if present. Failures are logged only."""
        try:
            self.path.unlink()
            self._log.debug(f"Deleted token cache {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self._log.debug(f"Could not delete token cache {self.path}: {e}")
