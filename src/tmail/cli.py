"""
Command-line interface for tmail.
"""

from __future__ import annotations
import sys
import json
import asyncio
import argparse

from tmail.config import _load_env, _init_client
from tmail.logging import logger, setup_logging

#: Exit status when ``wait`` finds no message before the deadline.
EXIT_TIMEOUT = 2


async def _generate(args, cfg) -> int:
    async with _init_client(cfg) as client:
        print(await client.generate_email())
    return 0


async def _wait(args, cfg) -> int:
    async with _init_client(cfg) as client:
        address = await client.generate_email()
        print(address, flush=True)
        message = await client.wait_for_message(
            expected_from=args.sender,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
        )
        if message is None:
            logger.warning(f"No message for {address} before the deadline")
            return EXIT_TIMEOUT
        print(json.dumps(message, ensure_ascii=False))
        if args.body:
            print(await client.get_message_body(message["messageID"]))
    return 0


async def _clear_cache(args, cfg) -> int:
    if not cfg["TOKEN_CACHE"]:
        logger.warning("TMAIL_TOKEN_CACHE is not set; nothing to clear")
        return 0
    async with _init_client(cfg) as client:
        client.clear_token_cache()
    logger.info(f"Token cache {cfg['TOKEN_CACHE']} cleared")
    return 0


def _run(func, args) -> None:
    try:
        cfg = _load_env()
        setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])
        sys.exit(asyncio.run(func(args, cfg)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Command failed: {e}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmail",
        description="tmail - disposable Gmail-style inboxes from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s generate                          Print a fresh address
  %(prog)s wait --from no-reply@example.com  Wait for a message from a sender
  %(prog)s wait --timeout 120 --body         Wait up to 2 minutes and print the body
  %(prog)s clear-cache                       Delete the cached session
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    generate_parser = subparsers.add_parser("generate", help="Generate a disposable address")
    generate_parser.set_defaults(func=_generate)

    wait_parser = subparsers.add_parser("wait", help="Generate an address and wait for mail")
    wait_parser.add_argument("--from", dest="sender", default=None, help="Only accept messages from this sender")
    wait_parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait (default: TMAIL_TIMEOUT)")
    wait_parser.add_argument("--poll-interval", type=float, default=None, help="Seconds between polls (default: TMAIL_RETRY_DELAY)")
    wait_parser.add_argument("--body", action="store_true", help="Also print the raw message body")
    wait_parser.set_defaults(func=_wait)

    clear_parser = subparsers.add_parser("clear-cache", help="Delete the durable token cache")
    clear_parser.set_defaults(func=_clear_cache)

    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _run(args.func, args)


if __name__ == "__main__":
    main()
