"""CLI entry point for relayauth.

Authenticates against one relay with NIP-42 and, optionally, publishes a
kind 30078 event on the authenticated connection. The signing key is read
from the environment (``PRIVATE_KEY`` by default, see
[KeysConfig][relayauth.utils.keys.KeysConfig]); everything else comes from
an optional YAML file and command-line overrides.

Examples:
    ```bash
    export PRIVATE_KEY=nsec1...
    python -m relayauth auth --relay wss://relay.example.com
    python -m relayauth publish --d-tag settings --tag t=prefs '{"theme": "dark"}'
    python -m relayauth publish --config config/relayauth.yaml --json-logs "hello"
    ```
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from relayauth.core.exceptions import RelayAuthError
from relayauth.core.logger import Logger, StructuredFormatter
from relayauth.core.yaml import load_yaml
from relayauth.session.config import ClientConfig
from relayauth.session.session import RelayAuthSession, SessionStatus
from relayauth.utils.signer import KeysSigner, SignerAdapter


CONFIG_BASE = Path("config")
DEFAULT_CONFIG = CONFIG_BASE / "relayauth.yaml"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="relayauth",
        description="NIP-42 relay authentication client",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Client config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--relay", help="Relay URL (overrides session.relay_url)")
    parser.add_argument(
        "--timeout",
        type=float,
        help="Handshake timeout in seconds (overrides session.timeout)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit one JSON object per log line",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("auth", help="Authenticate and exit")

    publish = commands.add_parser("publish", help="Authenticate and publish a kind 30078 event")
    publish.add_argument("content", help="Event content")
    publish.add_argument("--d-tag", default="", help="Value of the 'd' tag (default: empty)")
    publish.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Extra tag, repeatable",
    )

    return parser.parse_args(argv)


def parse_tag(raw: str) -> list[str]:
    """Turn ``NAME=VALUE`` into a ``[NAME, VALUE]`` tag."""
    name, sep, value = raw.partition("=")
    if not name or not sep:
        raise ValueError(f"Invalid tag {raw!r}: expected NAME=VALUE")
    return [name, value]


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    ``Logger`` output (with ``structured_kv`` extra) and plain
    ``logging.getLogger()`` calls in models/utils share one format:
    ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Merge the YAML file with command-line overrides and validate."""
    config_dict = _load_yaml_dict(args.config)
    session = config_dict.setdefault("session", {})
    if args.relay is not None:
        session["relay_url"] = args.relay
    if args.timeout is not None:
        session["timeout"] = args.timeout
    if args.json_logs is not None:
        config_dict["json_logs"] = args.json_logs
    return ClientConfig.from_dict(config_dict)


async def run(args: argparse.Namespace, config: ClientConfig) -> int:
    """Authenticate (and publish, for the ``publish`` command).

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    cli_logger = Logger("cli", json_output=config.json_logs)
    session = RelayAuthSession(
        config.session,
        SignerAdapter(KeysSigner(config.keys.keys)),
        logger=Logger("session", json_output=config.json_logs),
    )

    def on_status(status: SessionStatus) -> None:
        cli_logger.debug("status", **status.to_dict())

    session.subscribe(on_status)

    try:
        async with session:
            await session.authenticate()
            cli_logger.info(
                "authenticated", relay=config.session.relay_url, pubkey=session.identity
            )
            if args.command == "publish":
                extra_tags = [parse_tag(raw) for raw in args.tags]
                event_id = await session.publish(args.content, args.d_tag, extra_tags)
                cli_logger.info("published", event_id=event_id, d_tag=args.d_tag)
                print(event_id)  # noqa: T201
        return EXIT_OK
    except (RelayAuthError, ValueError) as e:
        cli_logger.error(f"{args.command}_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
    except Exception as e:  # Intentionally broad: CLI error boundary for config and key loading
        logger.error("config_invalid", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE

    try:
        return await run(args, config)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
