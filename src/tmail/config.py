"""
Configuration management with validation.
"""

from __future__ import annotations
import os
from typing import Optional, TypedDict

from dotenv import load_dotenv

from tmail.client import DEFAULT_DOMAIN, TmailClient
from tmail.logging import logger


class Config(TypedDict):
    """Typed configuration dictionary."""
    DOMAIN: str
    PROXY_URL: str | None
    TOKEN_CACHE: str | None
    TOKEN: str | None
    COOKIE: str | None
    TIMEOUT: float
    MAX_RETRIES: int
    RETRY_DELAY: float
    MAX_CONCURRENT: int
    QUEUE_DELAY: float
    LOG_LEVEL: str
    LOG_FILE: str | None


def _optional(name: str) -> Optional[str]:
    return os.getenv(name, "").strip() or None


def _float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _load_env() -> Config:
    """
    Load environment variables and return validated configuration.

    All vars are optional:
      - TMAIL_DOMAIN (default: "https://www.emailnator.com")
      - TMAIL_PROXY_URL (default: None)
      - TMAIL_TOKEN_CACHE (default: None, no durable cache)
      - TMAIL_TOKEN, TMAIL_COOKIE (default: None, acquire on first use)
      - TMAIL_TIMEOUT (default: 30, or 45 with a proxy)
      - TMAIL_MAX_RETRIES (default: 2)
      - TMAIL_RETRY_DELAY (default: 10, or 15 with a proxy)
      - TMAIL_MAX_CONCURRENT (default: 2)
      - TMAIL_QUEUE_DELAY (default: 0.1)
      - LOG_LEVEL (default: "INFO")
      - LOG_FILE (default: None)
    """
    load_dotenv()

    domain = os.getenv("TMAIL_DOMAIN", DEFAULT_DOMAIN).strip().rstrip("/")
    proxy_url = _optional("TMAIL_PROXY_URL")

    timeout = _float("TMAIL_TIMEOUT", 45.0 if proxy_url else 30.0)
    retry_delay = _float("TMAIL_RETRY_DELAY", 15.0 if proxy_url else 10.0)
    max_retries = _int("TMAIL_MAX_RETRIES", 2)
    max_concurrent = _int("TMAIL_MAX_CONCURRENT", 2)
    queue_delay = _float("TMAIL_QUEUE_DELAY", 0.1)

    if not domain.startswith(("http://", "https://")):
        raise ValueError(f"TMAIL_DOMAIN must be an http(s) URL, got {domain!r}")

    if timeout <= 0:
        raise ValueError(f"TMAIL_TIMEOUT must be positive, got {timeout}")

    if retry_delay < 0:
        raise ValueError(f"TMAIL_RETRY_DELAY must be non-negative, got {retry_delay}")

    if not (0 <= max_retries <= 10):
        raise ValueError(f"TMAIL_MAX_RETRIES must be between 0 and 10, got {max_retries}")

    if not (1 <= max_concurrent <= 16):
        raise ValueError(f"TMAIL_MAX_CONCURRENT must be between 1 and 16, got {max_concurrent}")

    if queue_delay < 0:
        raise ValueError(f"TMAIL_QUEUE_DELAY must be non-negative, got {queue_delay}")

    token = _optional("TMAIL_TOKEN")
    cookie = _optional("TMAIL_COOKIE")
    if bool(token) != bool(cookie):
        logger.warning("TMAIL_TOKEN and TMAIL_COOKIE must be set together; ignoring both")
        token = cookie = None

    cfg: Config = {
        "DOMAIN": domain,
        "PROXY_URL": proxy_url,
        "TOKEN_CACHE": _optional("TMAIL_TOKEN_CACHE"),
        "TOKEN": token,
        "COOKIE": cookie,
        "TIMEOUT": timeout,
        "MAX_RETRIES": max_retries,
        "RETRY_DELAY": retry_delay,
        "MAX_CONCURRENT": max_concurrent,
        "QUEUE_DELAY": queue_delay,
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        "LOG_FILE": _optional("LOG_FILE"),
    }

    logger.debug(f"Configuration loaded: DOMAIN={domain}, PROXY={'yes' if proxy_url else 'no'}, LOG_LEVEL={cfg['LOG_LEVEL']}")
    return cfg


def _init_client(cfg: Config) -> TmailClient:
    """
    Build a client from configuration.

    Args:
        cfg: Configuration dictionary

    Returns:
        TmailClient owning its own HTTP client
    """
    return TmailClient(
        domain=cfg["DOMAIN"],
        proxy_url=cfg["PROXY_URL"],
        token=cfg["TOKEN"],
        cookie=cfg["COOKIE"],
        token_cache_path=cfg["TOKEN_CACHE"],
        timeout=cfg["TIMEOUT"],
        max_retries=cfg["MAX_RETRIES"],
        retry_delay=cfg["RETRY_DELAY"],
        max_concurrent=cfg["MAX_CONCURRENT"],
        queue_delay=cfg["QUEUE_DELAY"],
    )
