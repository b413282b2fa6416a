#!/usr/bin/env python3
"""
Inspect and maintain a bounded store from the command line.

USAGE:
    python3 storectl.py CONFIG COMMAND [ARGS]

SYNOPSIS:
    Reads a YAML configuration file describing the store (mechanism,
    location, size bound) and runs one operation against it.

COMMANDS:
    set KEY VALUE [--ttl SECONDS]       store VALUE (JSON, or raw text)
    get KEY                             print the stored value as JSON
    remove KEY                          delete KEY
    keys                                list keys, oldest first
    collect [--strict]                  remove expired entries
    collect-oversize [--skip-expired] [--strict]
                                        enforce the size bound
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from boundedstore.config import ConfigError, load_config
from boundedstore.exceptions import BoundedStoreError
from boundedstore.utils import create_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    logger.setLevel(level)


def parse_value(raw: str) -> Any:
    """Parse a command line value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storectl.py",
        description="Operate on a bounded store described by a YAML configuration file.",
    )
    parser.add_argument(
        "config",
        type=str,
        help="Path to the YAML configuration file.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    set_cmd = commands.add_parser("set", help="Store a value.")
    set_cmd.add_argument("key")
    set_cmd.add_argument("value")
    set_cmd.add_argument(
        "--ttl",
        type=float,
        default=None,
        help="Seconds until the value expires.",
    )

    get_cmd = commands.add_parser("get", help="Print a stored value.")
    get_cmd.add_argument("key")

    remove_cmd = commands.add_parser("remove", help="Delete a key.")
    remove_cmd.add_argument("key")

    commands.add_parser("keys", help="List keys, oldest first.")

    collect_cmd = commands.add_parser("collect", help="Remove expired entries.")
    collect_cmd.add_argument("--strict", action="store_true", help="Also remove invalid entries.")

    oversize_cmd = commands.add_parser("collect-oversize", help="Enforce the size bound.")
    oversize_cmd.add_argument(
        "--skip-expired",
        action="store_true",
        help="Do not remove expired entries first.",
    )
    oversize_cmd.add_argument("--strict", action="store_true", help="Also remove invalid entries.")

    return parser


def run_command(store, args: argparse.Namespace) -> int:
    """
    Execute the parsed command against a store.

    Args:
        store: BoundedIndexStore instance
        args: Parsed arguments

    Returns:
        Process exit code
    """
    if args.command == "set":
        expiration = None
        if args.ttl is not None:
            expiration = store.base.clock() + int(args.ttl * 1000)
        store.set(args.key, parse_value(args.value), expiration)
        logger.info(f"Stored key: {args.key}")
        return 0

    if args.command == "get":
        wrapper = store.get_wrapper(args.key)
        if wrapper is None:
            logger.error(f"Key not found: {args.key}")
            return 1
        print(json.dumps(wrapper.value))
        return 0

    if args.command == "remove":
        store.remove(args.key)
        logger.info(f"Removed key: {args.key}")
        return 0

    if args.command == "keys":
        for key in store.keys():
            print(key)
        return 0

    if args.command == "collect":
        removed = store.collect_expired(strict=args.strict)
    else:
        removed = store.collect_oversize(skip_expired=args.skip_expired, strict=args.strict)

    for key in removed:
        print(key)
    logger.info(f"Removed {len(removed)} entries")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(config.store.log_level)
    if config.store.mechanism == "memory":
        logger.warning("Store mechanism is 'memory'; nothing persists after this command")

    try:
        store = create_store(config.store)
        sys.exit(run_command(store, args))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except BoundedStoreError as e:
        logger.error(f"Store error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
