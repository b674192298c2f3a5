"""
Entry point for the crawler.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dependency_injector import providers

from .application.exceptions import CrawlerError
from .infrastructure.containers import Container
from .settings import build_settings

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _overrides(args: argparse.Namespace) -> dict:
    """Maps command line flags to dotted settings keys."""
    overrides = {}
    if args.max_requests is not None:
        overrides["crawler.max_simultaneous_requests"] = args.max_requests
    if getattr(args, "target", None) is not None:
        overrides["crawler.target_download_count"] = args.target
    if getattr(args, "load_cache", False):
        overrides["crawler.load_cache_on_start"] = True
    if args.no_progress:
        overrides["crawler.show_progress"] = False
    return overrides


def _install_signal_handlers(service):
    def on_signal(sig: signal.Signals):
        try:
            service.stop(f"received {sig.name}")
        except CrawlerError as e:
            logger.error(f"Shutdown error: {e}")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal, sig)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass


async def run_application(args: argparse.Namespace):
    """Wires and runs the application using the DI container."""

    container = Container()
    try:
        settings = build_settings(overrides=_overrides(args))
    except CrawlerError as e:
        logging.basicConfig()
        logger.error(f"An application error occurred: {e}")
        sys.exit(1)

    container.config.override(providers.Object(settings))
    setup_logging(level=settings.logging.level)
    service = container.crawler_service()
    _install_signal_handlers(service)

    try:
        if args.command == "crawl":
            await service.crawl()
        else:
            await service.download_list(Path(args.url_file))
    except CrawlerError as e:
        logger.error(f"An application error occurred: {e}")
        sys.exit(1)
    finally:
        await container.http_client().aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalyst_crawler",
        description="Catalyst asset bundle crawler",
    )
    parser.add_argument(
        "--max-requests",
        type=int,
        help="Maximum number of simultaneous requests.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bars.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    crawl = commands.add_parser(
        "crawl", help="Crawl a catalog snapshot and download its asset bundles."
    )
    crawl.add_argument(
        "--target",
        type=int,
        help="Stop after this many asset bundles were downloaded.",
    )
    crawl.add_argument(
        "--load-cache",
        action="store_true",
        help="Skip assets recorded in the cache file of a previous run.",
    )

    url_list = commands.add_parser(
        "list", help="Download every distinct URL of a newline-delimited file."
    )
    url_list.add_argument("url_file", help="Path to the URL list.")

    return parser


def main():
    cli_args = build_parser().parse_args()

    asyncio.run(run_application(cli_args))


if __name__ == "__main__":
    main()
