"""
Basic usage example for tmail.

Generates a disposable address, waits for a message from a given sender and
prints its raw body. Configuration comes from the environment / .env (see
``tmail.config``).
"""

import asyncio
import sys

from tmail.config import _load_env, _init_client
from tmail.errors import TmailError
from tmail.logging import logger, setup_logging


async def main(expected_from: str | None = None) -> int:
    """Example: receive one message on a fresh address."""
    cfg = _load_env()
    setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])

    async with _init_client(cfg) as client:
        try:
            address = await client.generate_email()
            logger.info(f"Send a message to {address}")

            message = await client.wait_for_message(
                expected_from=expected_from,
                timeout=120,
                poll_interval=5,
            )
            if message is None:
                logger.warning("Nothing arrived within 2 minutes")
                return 1

            logger.info(f"Received '{message['subject']}' from {message['from']}")
            body = await client.get_message_body(message["messageID"])
            # Parsing (codes, links) is up to the caller
            print(body)
            return 0
        except TmailError as e:
            logger.error(f"Inbox operation failed [{e.code}]: {e.message}")
            return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
