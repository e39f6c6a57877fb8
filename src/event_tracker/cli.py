#!/usr/bin/env python3
"""
CLI tool for sending events to a collector.

Usage:
    event-tracker track mod_events ban --payload '{"subreddit": "pics"}'
    event-tracker track mod_events ban --config tracker.yaml
    event-tracker track mod_events ban --debug -v

Credentials come from --config, the flags below, or EVENT_TRACKER_*
environment variables.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import httpx
from colorama import Fore, Style, init as colorama_init

from . import __version__
from .config import (
    TrackerConfig,
    environment_snapshot,
    load_options_file,
    normalize_options,
    resolve_config,
)
from .context import ClientContext, StaticContextProvider
from .errors import ConfigurationError
from .signing import hmac_sha256_hex
from .tracker import Tracker
from .transport import HttpxTransport


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-tracker",
        description="Send events to an event collector",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser("track", help="Track a single event and send it")
    track.add_argument("topic", help="Event topic, e.g. mod_events")
    track.add_argument("type", help="Event type, e.g. ban")
    track.add_argument("--payload", default="{}", help="Event payload as a JSON object")
    track.add_argument("--config", help="YAML or JSON tracker config file")
    track.add_argument("--endpoint", help="Collector URL")
    track.add_argument("--client-key", help="Client key")
    track.add_argument("--client-secret", help="Client secret used to sign batches")
    track.add_argument("--client-name", help="Client name (letters and digits)")
    track.add_argument("--timeout", type=float, default=5.0, help="HTTP timeout in seconds")
    track.add_argument("--debug", action="store_true", help="Log the batch instead of sending it")

    return parser


def load_config(args: argparse.Namespace) -> TrackerConfig:
    """Merge config file, flags and environment; flags win over the file."""
    options: dict = {}
    if args.config:
        options.update(normalize_options(load_options_file(args.config)))

    flags = {
        "endpoint": args.endpoint,
        "client_key": args.client_key,
        "client_secret": args.client_secret,
        "client_name": args.client_name,
    }
    options.update({k: v for k, v in flags.items() if v is not None})

    environ = environment_snapshot()
    if args.debug:
        options["debug_mode"] = True
    elif "EVENT_TRACKER_DEBUG" not in environ:
        # The CLI sends for real unless asked not to
        options.setdefault("debug_mode", False)

    # A single event: send it as soon as it is tracked
    options["buffer_timeout_ms"] = 0
    return resolve_config(options, environ, has_context_provider=True)


def cmd_track(args: argparse.Namespace) -> int:
    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as e:
        print(colorize(f"Invalid --payload JSON: {e}", Fore.RED), file=sys.stderr)
        return 2
    if not isinstance(payload, dict):
        print(colorize("--payload must be a JSON object", Fore.RED), file=sys.stderr)
        return 2

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(colorize(f"Configuration error: {e}", Fore.RED), file=sys.stderr)
        return 2

    failures: list[str] = []

    def on_complete(response: httpx.Response | None, error: Exception | None) -> None:
        if error is not None:
            failures.append(str(error))
        elif response is not None and response.is_error:
            failures.append(f"HTTP {response.status_code}: {response.text[:200]}")
        elif response is not None:
            print(colorize(f"Sent (HTTP {response.status_code})", Fore.GREEN))

    context = StaticContextProvider(ClientContext(user_agent=f"event-tracker-cli/{__version__}"))
    tracker = Tracker(
        config,
        transport=HttpxTransport(timeout=args.timeout),
        calculate_hash=hmac_sha256_hex,
        context_provider=context,
        on_complete=on_complete,
    )

    with tracker:
        envelope = tracker.track(args.topic, args.type, payload)

    label = colorize(f"{envelope.topic}/{envelope.type}", Fore.CYAN)
    print(f"{label} {colorize(envelope.id, Style.DIM)}")

    if tracker.debug_mode:
        print(colorize("Debug mode: event logged, not sent", Fore.YELLOW))
        return 0

    if failures:
        for failure in failures:
            print(colorize(f"Send failed: {failure}", Fore.RED), file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    colorama_init()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "track":
        return cmd_track(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
