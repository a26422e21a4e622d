"""
Pollution proxy entry point.

Runs a single city query against the upstream API and prints the cleaned page
as JSON:

    python main.py PL --page 1 --limit 10
"""

import argparse
import asyncio
import sys

from loguru import logger

from pollution_proxy.services.city_query import (
    close_city_query_service,
    get_city_query_service,
)
from pollution_proxy.services.errors import ServiceError


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query cleaned city pollution data")
    parser.add_argument("country", help="Country filter passed to the upstream API")
    parser.add_argument("--page", type=positive_int, default=1)
    parser.add_argument("--limit", type=positive_int, default=10)
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    service = get_city_query_service()

    try:
        result = await service.get_cities(args.country, args.page, args.limit)
        print(result.model_dump_json(indent=2))
        return 0
    except ServiceError as e:
        logger.error(f"Query failed ({e.http_status}): {e}")
        return 1
    finally:
        await close_city_query_service()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
