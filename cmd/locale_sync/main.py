"""
Locale Sync Entry Point.

Creates the missing localization peers of catalog records and relinks
their relations, or audits which records lack a peer.

Usage:
    python cmd/locale_sync/main.py <job> [--source uk] [--target ru]

Jobs: parameter-types, parameter-values, products, product-parameters,
product-relations, all, audit.
"""
import argparse
import asyncio
import os
import sys
import uuid
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv(f".env.{os.getenv('APP_ENV', 'development')}")
load_dotenv()

from config.settings import Settings, get_settings
from internal.domain.errors import DomainError
from internal.domain.text import TermOverrides
from internal.domain.value_objects import LocalePair
from internal.infrastructure.cache.localization_cache import LocalizationCache
from internal.infrastructure.cms.client import CMSClient
from internal.infrastructure.translation.factory import create_translation_provider
from internal.usecase.batch_driver import JOBS, BatchDriver, RunResult
from internal.usecase.localization_audit import LocalizationAudit
from internal.usecase.reconciliation import ReconciliationEngine
from internal.usecase.translation_gateway import TranslationGateway
from pkg.logger.logger import get_logger, set_run_id, setup_logging
from pkg.resilience.throttle import Throttle


logger = get_logger(__name__)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2

COMMANDS = [*JOBS, "all", "audit"]


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments; exits with status 2 on bad arguments."""
    parser = argparse.ArgumentParser(
        description="Create missing localization peers of catalog records.",
    )
    parser.add_argument("job", choices=COMMANDS, help="job to run")
    parser.add_argument("--source", help="source locale (default: SOURCE_LOCALE)")
    parser.add_argument("--target", help="target locale (default: TARGET_LOCALE)")
    return parser.parse_args(argv)


def build_gateway(settings: Settings, locales: LocalePair) -> TranslationGateway:
    """
    Build the translation gateway for a locale pair.

    Raises:
        ValueError: If the translation provider is misconfigured.
    """
    provider = create_translation_provider(
        settings.translation_provider,
        openai_api_key=settings.openai_api_key,
        openai_model=settings.openai_model,
        glossary=settings.term_overrides.get(locales.target.value),
        google_project_id=settings.google_cloud_project_id,
        google_location=settings.google_cloud_location,
    )
    return TranslationGateway(
        provider,
        overrides=TermOverrides(settings.term_overrides),
        throttle=Throttle(min_interval=settings.translation_delay_seconds, name="translation"),
        max_retries=settings.translation_max_retries,
        default_source=locales.source,
    )


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """
    Run a job.

    Returns:
        Process exit code.
    """
    try:
        locales = LocalePair.of(
            args.source or settings.source_locale,
            args.target or settings.target_locale,
        )
    except DomainError as e:
        logger.error("Invalid locale pair", error=e.message)
        return EXIT_USAGE

    if not settings.cms_api_token:
        logger.error("CMS_API_TOKEN is required")
        return EXIT_FATAL

    logger.info(
        "Locale sync started",
        job=args.job,
        source_locale=locales.source.value,
        target_locale=locales.target.value,
        env=settings.app_env,
    )

    async with CMSClient(
        settings.cms_url,
        settings.cms_api_token,
        timeout=settings.cms_timeout_seconds,
    ) as client:
        try:
            if args.job == "audit":
                audit = LocalizationAudit(client, locales, page_size=settings.page_size)
                for report in await audit.run_all():
                    logger.info("Audit report", **report.to_dict())
                return EXIT_OK

            try:
                gateway = build_gateway(settings, locales)
            except ValueError as e:
                logger.error("Translation provider misconfigured", error=str(e))
                return EXIT_FATAL

            engine = ReconciliationEngine(client, gateway, LocalizationCache(), locales)
            driver = BatchDriver(
                client,
                engine,
                locales,
                page_size=settings.page_size,
                progress_every=settings.progress_every,
                max_concurrency=settings.max_concurrency,
            )
            result: RunResult = (
                await driver.run_all() if args.job == "all" else await driver.run(args.job)
            )
        except DomainError as e:
            logger.error("Locale sync aborted", job=args.job, error=e.message)
            return EXIT_FATAL

    logger.info(
        "Locale sync finished",
        job=args.job,
        translation_calls=gateway.provider_calls,
        **result.to_dict(),
    )
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
