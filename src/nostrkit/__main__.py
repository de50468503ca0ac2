"""CLI entry point for nostrkit.

Key management, message signatures, and a small relay listener built on
[RelayPool][nostrkit.core.pool.RelayPool].

Examples:
    ```bash
    python -m nostrkit keygen
    python -m nostrkit convert npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg
    PRIVATE_KEY=nsec1... python -m nostrkit sign-message "hello"
    python -m nostrkit verify-message <npub> "hello" <signature>
    python -m nostrkit listen --config relays.yaml --kind 1 --limit 20
    ```
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from nostrkit.core.logger import Logger, StructuredFormatter
from nostrkit.core.pool import RelayPool
from nostrkit.core.yaml import load_yaml
from nostrkit.exceptions import ConfigurationError, KeyMaterialError
from nostrkit.models.constants import Bech32Prefix
from nostrkit.models.event import Event
from nostrkit.models.filter import Filter
from nostrkit.models.keys import PrivateKey, PublicKey
from nostrkit.nips.nip01 import sign_message, verify_message
from nostrkit.utils.keys import ENV_PRIVATE_KEY, load_keys_from_env


LISTEN_SUBSCRIPTION_ID = "nostrkit-listen"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nostrkit",
        description="Nostr keys, signatures and relay listener",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("keygen", help="Generate a new private key")

    convert = commands.add_parser("convert", help="Show hex and bech32 forms of a key")
    convert.add_argument("key", help="nsec1..., npub1... or 64 hex characters")
    convert.add_argument(
        "--public",
        action="store_true",
        help="Treat a hex key as a public key (default: private)",
    )

    sign = commands.add_parser("sign-message", help="Sign a message with the key from the environment")
    sign.add_argument("message")
    sign.add_argument(
        "--key-env",
        default=ENV_PRIVATE_KEY,
        help=f"Environment variable holding the private key (default: {ENV_PRIVATE_KEY})",
    )

    verify = commands.add_parser("verify-message", help="Verify a message signature")
    verify.add_argument("public_key", help="npub1... or 64 hex characters")
    verify.add_argument("message")
    verify.add_argument("signature", help="128 hex characters")

    listen = commands.add_parser("listen", help="Print events from relays as JSON lines")
    listen.add_argument("--config", type=Path, help="Relay pool YAML config")
    listen.add_argument("--relay", action="append", default=[], help="Relay URL (repeatable)")
    listen.add_argument("--kind", type=int, action="append", default=[], help="Event kind (repeatable)")
    listen.add_argument("--limit", type=int, default=20, help="Stored events per relay (default: 20)")
    listen.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for end of stored events (default: 30)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that output
    from both ``Logger`` and plain ``logging.getLogger()`` calls is unified
    as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


def _print_private(key: PrivateKey) -> None:
    print(f"private_hex: {key.hex}")
    print(f"nsec:        {key.nsec}")
    _print_public(key.public_key)


def _print_public(key: PublicKey) -> None:
    print(f"public_hex:  {key.hex}")
    print(f"npub:        {key.npub}")


def keygen() -> int:
    _print_private(PrivateKey.generate())
    return 0


def convert(value: str, *, public: bool) -> int:
    value = value.strip()
    if value.lower().startswith(Bech32Prefix.NPUB) or public:
        _print_public(PublicKey.parse(value))
    else:
        _print_private(PrivateKey.parse(value))
    return 0


def sign(message: str, key_env: str) -> int:
    key = load_keys_from_env(key_env)
    print(sign_message(message, key))
    return 0


def verify(public_key: str, message: str, signature: str) -> int:
    valid = verify_message(message, signature, PublicKey.parse(public_key))
    print("valid" if valid else "invalid")
    return 0 if valid else 1


async def listen(
    config: dict[str, Any],
    kinds: list[int],
    limit: int,
    timeout: float,  # noqa: ASYNC109
) -> int:
    """Subscribe on every relay and print events until each relay sends EOSE."""
    pool = RelayPool.from_dict(config)
    if not pool.relay_urls:
        logger.error("no_relays", hint="pass --relay or a config with relays")
        return 2

    filters = [Filter(kinds=kinds or None, limit=limit)]
    pending = set(pool.relay_urls)
    seen: set[str] = set()
    done = asyncio.Event()

    def finish(relay: str) -> None:
        pending.discard(relay)
        if not pending:
            done.set()

    def on_event(relay: str, subscription_id: str, event: Event) -> None:
        if event.id in seen:
            return
        seen.add(str(event.id))
        print(event.to_json(), flush=True)

    pool.on_connected(lambda relay: pool.subscribe(LISTEN_SUBSCRIPTION_ID, filters, [relay]))
    pool.on_event(on_event)
    pool.on_eose(lambda relay, subscription_id: finish(relay))
    pool.on_closed(lambda relay, code, reason: finish(relay))
    pool.on_notice(lambda relay, message: logger.info("relay_notice", relay=relay, message=message))

    async with pool:
        try:
            await asyncio.wait_for(done.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning("listen_timeout", pending=len(pending), timeout=timeout)

    logger.info("listen_finished", events=len(seen))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse args and dispatch to the selected command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.command == "keygen":
            return keygen()
        if args.command == "convert":
            return convert(args.key, public=args.public)
        if args.command == "sign-message":
            return sign(args.message, args.key_env)
        if args.command == "verify-message":
            return verify(args.public_key, args.message, args.signature)

        config = load_yaml(args.config) if args.config else {}
        if args.relay:
            config["relays"] = args.relay
        return asyncio.run(listen(config, args.kind, args.limit, args.timeout))
    except (KeyMaterialError, ConfigurationError, FileNotFoundError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        return 1
    except ValueError as e:
        logger.error("invalid_input", command=args.command, error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
