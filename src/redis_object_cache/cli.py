#!/usr/bin/env python3
"""
Redis Object Cache - Command line entry point

Small operator tool for inspecting and editing cached entries. Connection
settings come from REDIS_OBJECT_CACHE_* environment variables or --url.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .cache.manager import ObjectCacheManager
from .store.config import StoreConfig
from .utils.errors import NotFoundError, ObjectCacheError
from .utils.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the redis-object-cache command"""
    parser = argparse.ArgumentParser(
        prog="redis-object-cache",
        description="Inspect and edit a status-tagged Redis object cache"
    )
    parser.add_argument("--url", help="Redis URL, e.g. redis://localhost:6379/0")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check that Redis is reachable")

    p = sub.add_parser("set", help="Store a plain string")
    p.add_argument("key")
    p.add_argument("value")

    p = sub.add_parser("get", help="Read a plain string")
    p.add_argument("key")

    p = sub.add_parser("delete", help="Delete a plain key or a tagged object")
    p.add_argument("key")
    p.add_argument("--object", action="store_true", help="Also remove the status tag")

    p = sub.add_parser("put", help="Store a JSON object with a status tag")
    p.add_argument("key")
    p.add_argument("json", help="JSON document")

    p = sub.add_parser("show", help="Print a tagged object and its status")
    p.add_argument("key")

    p = sub.add_parser("check", help="Mark an object (or group member) as checked")
    p.add_argument("key")
    p.add_argument("--id", type=int, help="Member ID when KEY is a group")

    p = sub.add_parser("group", help="List the records of a group")
    p.add_argument("key")

    p = sub.add_parser("quarantine", help="Move a group member into tmp/ with an expiry")
    p.add_argument("key")
    p.add_argument("id", type=int)
    p.add_argument("--ttl", type=int, help="Seconds before the member expires")

    return parser


def run_command(cache: ObjectCacheManager, args: argparse.Namespace) -> dict:
    """Execute one parsed command and return a JSON-friendly result"""
    command = args.command

    if command == "ping":
        return {"ok": cache.ping()}
    if command == "set":
        cache.set(args.key, args.value)
        return {"key": args.key, "stored": True}
    if command == "get":
        return {"key": args.key, "value": cache.get(args.key)}
    if command == "delete":
        removed = cache.delete_object(args.key) if args.object else cache.delete(args.key)
        return {"key": args.key, "deleted": removed}
    if command == "put":
        try:
            value = json.loads(args.json)
        except ValueError as e:
            raise SystemExit(f"Invalid JSON document: {e}")
        status = cache.put(args.key, value)
        return {"key": args.key, "status": status.name}
    if command == "show":
        value, status = cache.get_object(args.key)
        return {"key": args.key, "status": status.name, "value": value}
    if command == "check":
        if args.id is None:
            cache.mark_checked(args.key)
        else:
            cache.mark_member_checked(args.key, args.id)
        return {"key": args.key, "id": args.id, "status": "CHECKED"}
    if command == "group":
        return {
            "key": args.key,
            "records": cache.get_many(args.key),
            "quarantined": cache.quarantined_ids(args.key),
        }
    if command == "quarantine":
        cache.quarantine(args.key, args.id, ttl=args.ttl)
        return {"key": args.key, "id": args.id, "quarantined": True}

    raise SystemExit(f"Unknown command: {command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the redis-object-cache command"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level or None)
    logger = logging.getLogger(__name__)

    try:
        config = StoreConfig.from_url(args.url) if args.url else StoreConfig.from_env()
        with ObjectCacheManager(config) as cache:
            result = run_command(cache, args)
    except NotFoundError as e:
        print(json.dumps(e.to_dict()), file=sys.stdout)
        return 2
    except ObjectCacheError as e:
        logger.error(f"Command {args.command} failed: {e}")
        print(json.dumps(e.to_dict()), file=sys.stdout)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130

    print(json.dumps(result, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
