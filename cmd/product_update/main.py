"""
Product Update Entry Point.

Writes prices and stock quantities from a JSON file to products and all
their localizations.

Usage:
    python cmd/product_update/main.py <updates.json> [--locale uk]
"""
import argparse
import asyncio
import json
import os
import sys
import uuid
from decimal import InvalidOperation
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv(f".env.{os.getenv('APP_ENV', 'development')}")
load_dotenv()

from config.settings import Settings, get_settings
from internal.domain.entities import ProductFieldUpdate
from internal.domain.errors import DomainError
from internal.domain.value_objects import Locale
from internal.infrastructure.cms.client import CMSClient
from internal.usecase.update_product_fields import UpdateProductFields
from pkg.logger.logger import get_logger, set_run_id, setup_logging


logger = get_logger(__name__)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments; exits with status 2 on bad arguments."""
    parser = argparse.ArgumentParser(
        description="Write prices and stock to products and their localizations.",
    )
    parser.add_argument("updates", help="JSON file with a list of {part_number, retail, in_stock}")
    parser.add_argument("--locale", help="locale products are looked up in (default: SOURCE_LOCALE)")
    return parser.parse_args(argv)


def load_updates(path: str) -> list[ProductFieldUpdate]:
    """
    Load updates from a JSON file.

    Raises:
        ValueError: If the file is not a JSON list of valid updates.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("updates file must contain a JSON list")
    try:
        return [ProductFieldUpdate.from_dict(item) for item in data]
    except (DomainError, InvalidOperation, TypeError, AttributeError) as e:
        raise ValueError(f"invalid update: {e}") from e


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """
    Run the update.

    Returns:
        Process exit code.
    """
    try:
        updates = load_updates(args.updates)
        locale = Locale.parse(args.locale or settings.source_locale)
    except (OSError, ValueError) as e:
        logger.error("Cannot load updates", path=args.updates, error=str(e))
        return EXIT_USAGE
    except DomainError as e:
        logger.error("Invalid locale", error=e.message)
        return EXIT_USAGE

    if not settings.cms_api_token:
        logger.error("CMS_API_TOKEN is required")
        return EXIT_FATAL

    async with CMSClient(
        settings.cms_url,
        settings.cms_api_token,
        timeout=settings.cms_timeout_seconds,
    ) as client:
        use_case = UpdateProductFields(client, locale, progress_every=settings.progress_every)
        result = await use_case.execute(updates)

    logger.info("Product update finished", path=args.updates, **result.to_dict())
    return result.exit_code


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        log_file=settings.log_file,
    )
    set_run_id(uuid.uuid4().hex[:12])
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
