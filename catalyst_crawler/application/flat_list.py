"""Batched download of a plain list of URLs."""

import asyncio
import logging
from typing import Iterator, List, Sequence

from tqdm.asyncio import tqdm_asyncio

from .cancellation import CancellationScope
from .domain import Counters, OutcomeStatus, PlainRequest
from .fetcher import Fetcher


def parse_url_list(text: str) -> List[str]:
    """Split newline-delimited text into unique URLs, keeping first occurrences."""
    lines = (line.strip() for line in text.split("\n"))
    return list(dict.fromkeys(line for line in lines if line))


def iter_batches(items: Sequence[str], batch_size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), batch_size):
        yield items[start:start + batch_size]


class FlatListDownloader:
    """
    Drives a URL list through the fetcher in fixed-size batches.

    The throttle gate bounds how many requests are in flight; the batch size
    bounds how many are outstanding before the downloader waits for all of
    them and reports progress.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        scope: CancellationScope,
        counters: Counters,
        asset_host_prefix: str,
        batch_size: int = 100,
        show_progress: bool = True,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.fetcher = fetcher
        self.scope = scope
        self.counters = counters
        self.asset_host_prefix = asset_host_prefix
        self.batch_size = batch_size
        self.show_progress = show_progress

    def _request_for(self, url: str) -> PlainRequest:
        return PlainRequest(url=url, binary=url.startswith(self.asset_host_prefix))

    async def _download(self, url: str):
        self.counters.attempted += 1
        outcome = await self.fetcher.fetch(self._request_for(url))

        if outcome.ok:
            self.counters.succeeded += 1
            self.logger.info(
                f"Successfully completed request: {url} "
                f"{self.counters.completed_downloads}"
            )
        elif outcome.status is OutcomeStatus.CANCELLED:
            self.counters.cancelled += 1
        else:
            self.counters.failed += 1
            self.logger.error(f"Failed to complete request: {url} Error: {outcome.message}")

    async def run(self, urls: Sequence[str]):
        """Download every URL, one batch at a time."""

        self.logger.info(
            f"Downloading {len(urls)} URLs in batches of {self.batch_size}..."
        )

        for number, batch in enumerate(iter_batches(urls, self.batch_size), 1):
            if self.scope.cancelled:
                self.logger.info("Cancelled, no further batches dispatched.")
                break

            tasks = [asyncio.create_task(self._download(url)) for url in batch]
            self.logger.info(f"Waiting for batch {number} ({len(tasks)} requests)")
            await tqdm_asyncio.gather(
                *tasks,
                desc=f"Batch {number}",
                unit="request",
                disable=not self.show_progress,
            )

        self.logger.info(
            f"Completed requests: {self.counters.succeeded} succeeded, "
            f"{self.counters.failed} failed."
        )
