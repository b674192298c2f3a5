"""
The core application service.

This module defines the orchestrator (CrawlerService) that owns the lifecycle
of one run: it resets the shared counters, optionally restores the content
cache, drives either the crawl pipeline or the flat list downloader, and
persists the cache at teardown.
"""

import logging
from pathlib import Path
from typing import Callable, Dict

from tqdm.contrib.logging import logging_redirect_tqdm

from .cache import ContentCache
from .cancellation import CancellationScope
from .domain import Counters
from .exceptions import ConfigurationError
from .flat_list import FlatListDownloader, parse_url_list
from .pipeline import CrawlPipeline

logger = logging.getLogger(__name__)


class CrawlerService:
    """Runs a crawl or a flat list download and reports aggregate progress."""

    def __init__(
        self,
        pipeline_factory: Callable[[], CrawlPipeline],
        flat_downloader_factory: Callable[[], FlatListDownloader],
        cache: ContentCache,
        scope: CancellationScope,
        counters: Counters,
        load_cache_on_start: bool = False,
    ):
        """Initializes the service with its shared run state."""
        self.pipeline_factory = pipeline_factory
        self.flat_downloader_factory = flat_downloader_factory
        self.cache = cache
        self.scope = scope
        self.counters = counters
        self.load_cache_on_start = load_cache_on_start

    def _start(self):
        self.counters.reset()
        if self.load_cache_on_start:
            self.cache.load()

    def stop(self, reason: str = "stopped"):
        """Persist the cache, then signal cancellation to every stage."""
        self.cache.save()
        self.scope.cancel(reason)
        logger.info(f"Download finished for {self.counters.total_downloaded}")

    async def crawl(self) -> Dict[str, int]:
        """Executes the snapshot-driven crawl and returns the counters."""

        self._start()
        logger.info(f"Starting crawl with {len(self.cache)} cached assets.")

        try:
            with logging_redirect_tqdm():
                await self.pipeline_factory().run()
        finally:
            self.cache.save()

        summary = self.counters.summary()
        logger.info(f"Crawl completed: {summary}")
        return summary

    async def download_list(self, source: Path) -> Dict[str, int]:
        """Downloads every distinct URL listed in a text file."""

        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read URL list {source}: {e}") from e

        self._start()
        urls = parse_url_list(text)
        logger.info(f"Read {len(urls)} distinct URLs from {source}")

        with logging_redirect_tqdm():
            await self.flat_downloader_factory().run(urls)

        summary = self.counters.summary()
        logger.info(f"List download completed: {summary}")
        return summary
