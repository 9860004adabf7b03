"""
Product Import Entry Point.

Imports product drafts from a JSON file into the source locale, uploads
their media archives and localizes them.

Usage:
    python cmd/product_import/main.py <drafts.json> [--folder path]
"""
import argparse
import asyncio
import json
import os
import sys
import uuid
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv(f".env.{os.getenv('APP_ENV', 'development')}")
load_dotenv()

from config.settings import Settings, get_settings
from internal.domain.entities import ProductDraft
from internal.domain.errors import DomainError
from internal.domain.text import TermOverrides
from internal.domain.value_objects import LocalePair
from internal.infrastructure.cache.localization_cache import LocalizationCache
from internal.infrastructure.cms.client import CMSClient
from internal.infrastructure.storage.s3_uploader import S3MediaUploader
from internal.infrastructure.translation.factory import create_translation_provider
from internal.usecase.import_products import ImportProducts
from internal.usecase.reconciliation import ReconciliationEngine
from internal.usecase.translation_gateway import TranslationGateway
from pkg.logger.logger import get_logger, set_run_id, setup_logging
from pkg.resilience.throttle import Throttle


logger = get_logger(__name__)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments; exits with status 2 on bad arguments."""
    parser = argparse.ArgumentParser(description="Import product drafts into the catalog.")
    parser.add_argument("drafts", help="JSON file with a list of product drafts")
    parser.add_argument("--folder", help="media folder in the bucket (default: MEDIA_FOLDER)")
    return parser.parse_args(argv)


def load_drafts(path: str) -> list[ProductDraft]:
    """
    Load drafts from a JSON file.

    Raises:
        ValueError: If the file is not a JSON list of valid drafts.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("drafts file must contain a JSON list")
    try:
        return [ProductDraft.from_dict(item) for item in data]
    except (DomainError, KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"invalid draft: {e}") from e


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """
    Run the import.

    Returns:
        Process exit code.
    """
    try:
        drafts = load_drafts(args.drafts)
    except (OSError, ValueError) as e:
        logger.error("Cannot load drafts", path=args.drafts, error=str(e))
        return EXIT_USAGE

    try:
        locales = LocalePair.of(settings.source_locale, settings.target_locale)
    except DomainError as e:
        logger.error("Invalid locale pair", error=e.message)
        return EXIT_FATAL

    if not settings.cms_api_token:
        logger.error("CMS_API_TOKEN is required")
        return EXIT_FATAL

    try:
        provider = create_translation_provider(
            settings.translation_provider,
            openai_api_key=settings.openai_api_key,
            openai_model=settings.openai_model,
            glossary=settings.term_overrides.get(locales.target.value),
            google_project_id=settings.google_cloud_project_id,
            google_location=settings.google_cloud_location,
        )
    except ValueError as e:
        logger.error("Translation provider misconfigured", error=str(e))
        return EXIT_FATAL

    gateway = TranslationGateway(
        provider,
        overrides=TermOverrides(settings.term_overrides),
        throttle=Throttle(min_interval=settings.translation_delay_seconds, name="translation"),
        max_retries=settings.translation_max_retries,
        default_source=locales.source,
    )

    uploader = None
    if settings.aws_bucket_name:
        uploader = S3MediaUploader(
            bucket=settings.aws_bucket_name,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            public_base_url=settings.media_public_base_url,
        )
    else:
        logger.warning("AWS_BUCKET_NAME is not set, drafts with media will fail")

    async with CMSClient(
        settings.cms_url,
        settings.cms_api_token,
        timeout=settings.cms_timeout_seconds,
    ) as client:
        engine = ReconciliationEngine(client, gateway, LocalizationCache(), locales)
        use_case = ImportProducts(
            engine,
            uploader,
            locales,
            media_folder=args.folder or settings.media_folder,
            progress_every=settings.progress_every,
        )
        result = await use_case.execute(drafts)

    logger.info("Product import finished", path=args.drafts, **result.to_dict())
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
