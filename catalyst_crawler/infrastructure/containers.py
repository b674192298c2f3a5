"""
Dependency Injection container for the crawler.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration. Run-scoped state (counters, the
cancellation scope, the throttle gate and the content cache) is provided as
singletons so that every stage of a run shares the same instances.
"""

from dependency_injector import containers, providers
import httpx

from ..application.cache import ContentCache
from ..application.cancellation import CancellationScope
from ..application.domain import *
from ..application.fetcher import Fetcher
from ..application.flat_list import FlatListDownloader
from ..application.pipeline import CrawlPipeline
from ..application.policy import CrawlPolicy
from ..application.service import CrawlerService
from ..application.throttle import ThrottleGate
from ..settings import build_settings

from .catalog import CatalystCatalog
from .storage import FileArtifactStore, JsonCacheStorage
from .transport import HttpTransport


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    config = providers.Singleton(build_settings)

    crawler = config.provided.crawler
    endpoints = config.provided.endpoints
    transport_settings = config.provided.transport
    paths = config.provided.paths

    http_client = providers.Singleton(
        httpx.AsyncClient,
        follow_redirects=True,
        headers=providers.Dict({"User-Agent": transport_settings.user_agent}),
    )

    counters = providers.Singleton(Counters)

    scope = providers.Singleton(CancellationScope)

    gate = providers.Singleton(
        ThrottleGate,
        limit=crawler.max_simultaneous_requests,
    )

    transport: providers.Factory[Transport] = providers.Factory(
        HttpTransport,
        client=http_client,
        timeout=transport_settings.timeout,
        retry_attempts=transport_settings.retry_attempts,
    )

    artifact_store: providers.Singleton[ArtifactStore] = providers.Singleton(
        FileArtifactStore,
        root=paths.artifact_dir,
    )

    cache_storage: providers.Factory[CacheStorage] = providers.Factory(
        JsonCacheStorage,
        path=paths.cache_file,
    )

    cache = providers.Singleton(ContentCache, storage=cache_storage)

    fetcher = providers.Singleton(
        Fetcher,
        transport=transport,
        gate=gate,
        scope=scope,
        counters=counters,
        artifact_store=artifact_store,
    )

    catalog: providers.Factory[CatalogSource] = providers.Factory(
        CatalystCatalog,
        fetcher=fetcher,
        catalyst_url=endpoints.catalyst_url,
        cdn_url=endpoints.cdn_url,
    )

    policy = providers.Factory(
        CrawlPolicy,
        target_kind=crawler.target_entity_kind,
        version_cutoff=crawler.manifest_version_cutoff,
        platform_suffix=crawler.platform_suffix_filter,
    )

    pipeline = providers.Factory(
        CrawlPipeline,
        catalog=catalog,
        fetcher=fetcher,
        cache=cache,
        policy=policy,
        scope=scope,
        counters=counters,
        snapshot_band=crawler.snapshot_entity_band,
        entity_batch_size=crawler.entity_batch_size,
        target_download_count=crawler.target_download_count,
        show_progress=crawler.show_progress,
    )

    flat_downloader = providers.Factory(
        FlatListDownloader,
        fetcher=fetcher,
        scope=scope,
        counters=counters,
        asset_host_prefix=endpoints.asset_host_prefix,
        batch_size=crawler.flat_batch_size,
        show_progress=crawler.show_progress,
    )

    crawler_service = providers.Factory(
        CrawlerService,
        pipeline_factory=pipeline.provider,
        flat_downloader_factory=flat_downloader.provider,
        cache=cache,
        scope=scope,
        counters=counters,
        load_cache_on_start=crawler.load_cache_on_start,
    )
