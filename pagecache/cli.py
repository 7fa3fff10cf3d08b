"""Command-line access to the page cache.

Reads settings from the environment (and a local .env file), so the same
PAGECACHE_* variables used by the application select the backend here.
"""
import argparse
import asyncio
import json
import os
import sys
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from pagecache.cache import Cache
from pagecache.config import reload_config
from pagecache.errors import BackendError, NoValidEntry
from pagecache.utils.logger import log_error, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pagecache", description="Inspect and manage cached pages.")
    parser.add_argument('--client', choices=['redis', 'disk', 'memory'], help='Primary cache backend.')
    parser.add_argument('--redis-url', type=str, help='Redis connection URL.')
    parser.add_argument('--cache-dir', type=str, help='Directory for the disk backend.')
    parser.add_argument('--duration', type=int, help='Cache duration in milliseconds.')
    parser.add_argument('--prefix', type=str, help='Key prefix.')

    sub = parser.add_subparsers(dest='command', required=True)

    get_cmd = sub.add_parser('get', help='Print the cached entry for a path.')
    get_cmd.add_argument('path')
    get_cmd.add_argument('--suffix', default='', help='Facet suffix, e.g. "pdf".')

    set_cmd = sub.add_parser('set', help='Cache content for a path.')
    set_cmd.add_argument('path')
    set_cmd.add_argument('content', help='JSON value, or a plain string if it is not valid JSON.')
    set_cmd.add_argument('--suffix', default='', help='Facet suffix, e.g. "pdf".')

    clear_cmd = sub.add_parser('clear', help='Remove the cached entry for a path.')
    clear_cmd.add_argument('path')
    clear_cmd.add_argument('--suffix', default='', help='Facet suffix, e.g. "pdf".')

    sub.add_parser('health', help='Probe the active backend.')
    return parser


def _apply_overrides(args: argparse.Namespace) -> None:
    overrides = {
        'PAGECACHE_CACHE_CLIENT': args.client,
        'PAGECACHE_REDIS_URL': args.redis_url,
        'PAGECACHE_CACHE_DIR': args.cache_dir,
        'PAGECACHE_CACHE_DURATION': args.duration,
        'PAGECACHE_CACHE_PREFIX': args.prefix,
    }
    for name, value in overrides.items():
        if value is not None:
            os.environ[name] = str(value)


def parse_content(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


async def run(args: argparse.Namespace) -> int:
    try:
        config = reload_config()
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"]) or "<settings>"
            print(f"invalid configuration: {field}: {err['msg']}", file=sys.stderr)
        return 1
    setup_logging(config.log_level, config.log_format)
    config.log_configuration()
    for issue in config.validate_configuration():
        print(f"warning: {issue}", file=sys.stderr)

    async with Cache(config) as cache:
        try:
            if args.command == 'get':
                entry = await cache.get(args.path, args.suffix)
                print(entry.model_dump_json(indent=2))
            elif args.command == 'set':
                await cache.set(args.path, parse_content(args.content), args.suffix)
                print("ok")
            elif args.command == 'clear':
                await cache.clear(args.path, args.suffix)
                print("ok")
            elif args.command == 'health':
                report = await cache.check_health()
                print(json.dumps(report, indent=2))
                return 0 if report["healthy"] else 1
        except NoValidEntry as e:
            print(f"no valid entry: {e}", file=sys.stderr)
            return 1
        except BackendError as e:
            log_error("Cache backend failed", command=args.command, error=str(e))
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    _apply_overrides(args)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
