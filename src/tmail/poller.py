"""
Deadline-bounded polling for an incoming message.
"""

from __future__ import annotations
import asyncio
import time
from typing import Awaitable, Callable, List, Optional

from tmail.logging import logger, LoggerLike
from tmail.models import Message


def resolve_max_attempts(timeout: float, poll_interval: float, max_attempts: Optional[int] = None) -> int:
    """Attempts allowed for a poll; never fewer than one."""
    if max_attempts is None:
        if round(poll_interval * 1000) <= 0:
            return 1
        max_attempts = round(timeout * 1000) // round(poll_interval * 1000)
    return max(1, max_attempts)


async def wait_for_message(
    list_messages: Callable[[], Awaitable[List[Message]]],
    *,
    timeout: float,
    poll_interval: float,
    expected_from: Optional[str] = None,
    max_attempts: Optional[int] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log: Optional[LoggerLike] = None,
) -> Optional[Message]:
    """
    Poll ``list_messages`` until a message matches or time runs out.

    Args:
        list_messages: Coroutine function returning the current inbox
        timeout: Overall deadline in seconds, measured from the first attempt
        poll_interval: Sleep between attempts in seconds
        expected_from: Exact sender to match; any message matches when None
        max_attempts: Attempt cap; defaults to whole intervals in ``timeout`` (min 1)
        clock: Monotonic time source
        sleep: Async sleep function

    Returns:
        The first matching message, or None on timeout. Errors raised by
        ``list_messages`` propagate unchanged.
    """
    log = log or logger
    attempts = resolve_max_attempts(timeout, poll_interval, max_attempts)
    deadline = clock() + timeout

    for attempt in range(1, attempts + 1):
        messages = await list_messages()
        for message in messages:
            if expected_from is None or message["from"] == expected_from:
                log.debug(f"Message {message['messageID']} from {message['from']} found on attempt {attempt}")
                return message

        log.debug(f"No matching message (attempt {attempt}/{attempts})")
        if clock() >= deadline:
            break
        await sleep(poll_interval)

    return None
