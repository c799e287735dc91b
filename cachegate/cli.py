"""Command line entry point for inspecting and clearing the cache.

Configuration comes from ``CACHE_*`` environment variables or a ``.env`` file;
``--driver``/``--dir``/``--enable`` override them for a single run.
"""
import argparse
import json
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from cachegate.cache import Cache
from cachegate.config import reload_settings
from cachegate.drivers import list_known
from cachegate.errors import UnknownDriverError
from cachegate.utils.logger import log_error, log_info, set_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cachegate", description="Inspect and manage the cache.")
    parser.add_argument('--driver', type=str, help='Driver name (overrides CACHE_DRIVER).')
    parser.add_argument('--dir', type=str, help='Cache directory (overrides CACHE_DIR).')
    parser.add_argument('--enable', action='store_true', help='Enable the cache for this run.')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('drivers', help='List drivers and whether they are available.')
    sub.add_parser('status', help='Show the active driver, status and stats.')

    clear = sub.add_parser('clear', help='Delete all cache entries and the cache directory.')
    clear.add_argument('--routes-only', action='store_true', help='Only clear the route cache.')

    get = sub.add_parser('get', help='Print a cached value as JSON.')
    get.add_argument('key')

    put = sub.add_parser('set', help='Store a string value.')
    put.add_argument('key')
    put.add_argument('value')
    put.add_argument('--ttl', type=int, help='TTL in minutes (default: CACHE_TTL_MINUTES).')

    delete = sub.add_parser('delete', help='Delete a cached value.')
    delete.add_argument('key')

    return parser


def _apply_overrides(args: argparse.Namespace) -> None:
    if args.driver is not None:
        os.environ['CACHE_DRIVER'] = args.driver
    if args.dir is not None:
        os.environ['CACHE_DIR'] = args.dir
    if args.enable:
        os.environ['CACHE_ENABLED'] = 'true'


def run(args: argparse.Namespace) -> int:
    settings = reload_settings()
    set_level(settings.log_level)

    issues = settings.validate_configuration()
    for issue in issues:
        log_error("Configuration issue", issue=issue)

    cache = Cache.from_settings(settings)

    if args.command == 'drivers':
        supported = cache.get_supported_drivers()
        for name in list_known():
            marker = "available" if name in supported else "missing client library"
            print(f"{name:<12} {marker}")
        return 0

    if args.command == 'status':
        print(json.dumps({
            "driver": cache.get_driver_name(),
            "enabled": cache.get_status(),
            "cache_dir": cache.get_cache_dir(),
            "default_ttl_minutes": cache.get_default_ttl(),
            "route_cache": cache.has_route_cache(),
            "stats": cache.get_stats(),
        }, indent=2, default=str))
        return 0

    if args.command == 'clear':
        ok = cache.clear_route_cache() if args.routes_only else cache.clear()
        log_info("Clear finished", routes_only=args.routes_only, success=ok)
        return 0 if ok else 1

    if args.command == 'get':
        value = cache.fetch(args.key)
        if value is None:
            return 1
        print(json.dumps(value, indent=2, default=str))
        return 0

    if args.command == 'set':
        return 0 if cache.save(args.key, args.value, args.ttl) else 1

    if args.command == 'delete':
        return 0 if cache.delete(args.key) else 1

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    _apply_overrides(args)

    try:
        return run(args)
    except UnknownDriverError as e:
        log_error("Cache driver not valid", driver=e.driver, details=e.details)
        print(f"❌ {e.message}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"❌ Invalid cache configuration:\n{e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
