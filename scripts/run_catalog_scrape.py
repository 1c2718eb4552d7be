"""
Run a catalog scrape from CLI.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict

from catalog_scraper.scraping.logging_utils import configure_logging
from catalog_scraper.scraping.storage import create_schema
from catalog_scraper.scraping.types import OperationType
from catalog_scraper.services import get_catalog_scraping_service
from db.session import get_engine


def main() -> int:
    parser = argparse.ArgumentParser(description="Run catalog brand and product scraping.")
    parser.add_argument(
        "--mode",
        choices=OperationType.ALL,
        default=OperationType.FULL_REFRESH,
        help="Operation type recorded in scraping metadata.",
    )
    parser.add_argument(
        "--brand",
        dest="brands",
        action="append",
        default=None,
        help="Brand slug to scrape; repeatable. Skips brand discovery.",
    )
    parser.add_argument(
        "--brand-limit",
        type=int,
        default=None,
        help="Scrape at most this many brands.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create catalog tables before scraping.",
    )
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL.")
    args = parser.parse_args()

    configure_logging(args.log_level)
    if args.create_schema:
        create_schema(get_engine())

    service = get_catalog_scraping_service()
    summary = service.run(mode=args.mode, brands=args.brands, brand_limit=args.brand_limit)
    print(json.dumps(asdict(summary), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
