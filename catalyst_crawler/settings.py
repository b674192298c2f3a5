"""
Initializes the Dynaconf settings object for the crawler.
This module is the single source of truth for all configuration.

Values come from ``config/settings.toml`` and can be overridden with
``CATALYST_CRAWLER_<SECTION>__<KEY>`` environment variables. Every key has a
validated default, so a missing settings file still yields a usable object.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from dynaconf import Dynaconf
from dynaconf.validator import ValidationError, Validator

from .application.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).parent.parent

SETTINGS_FILES = ["config/settings.toml"]

VALIDATORS = [
    Validator("crawler.max_simultaneous_requests", default=15, gte=1, is_type_of=int),
    Validator("crawler.flat_batch_size", default=100, gte=1, is_type_of=int),
    Validator("crawler.entity_batch_size", default=20, gte=1, is_type_of=int),
    Validator("crawler.target_download_count", default=13_000, gte=1, is_type_of=int),
    Validator("crawler.snapshot_entity_band", default=[19_000, 22_000], len_eq=2),
    Validator("crawler.manifest_version_cutoff", default=25, is_type_of=int),
    Validator("crawler.platform_suffix_filter", default="windows", is_type_of=str),
    Validator("crawler.target_entity_kind", default="wearable", is_type_of=str),
    Validator("crawler.load_cache_on_start", default=False, is_type_of=bool),
    Validator("crawler.show_progress", default=True, is_type_of=bool),
    Validator("endpoints.catalyst_url", default="https://peer.decentraland.org"),
    Validator("endpoints.cdn_url", default="https://ab-cdn.decentraland.org"),
    Validator(
        "endpoints.asset_host_prefix", default="https://ab-cdn.decentraland.org/v"
    ),
    Validator("transport.timeout", default=30, gt=0),
    Validator("transport.retry_attempts", default=1, gte=1, is_type_of=int),
    Validator("transport.user_agent", default="catalyst-crawler/0.1"),
    Validator("paths.cache_file", default="data/asset_cache.json"),
    Validator("paths.artifact_dir", default="data/artifacts"),
    Validator("logging.level", default="INFO"),
]


def validate(settings: Dynaconf):
    """
    Re-runs every validator, e.g. after command line overrides.

    Raises:
        ConfigurationError: If a value is missing or out of range.
    """
    try:
        settings.validators.validate()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    low, high = settings.crawler.snapshot_entity_band
    if low > high:
        raise ConfigurationError(
            f"snapshot_entity_band lower bound {low} exceeds upper bound {high}"
        )


def build_settings(
    settings_files: Optional[Sequence[str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dynaconf:
    """
    Loads and validates the settings.

    Args:
        settings_files: Files relative to the project root; defaults to
                        ``config/settings.toml``.
        overrides: Dotted keys to set on top of files and environment.

    Raises:
        ConfigurationError: If validation fails.
    """

    settings = Dynaconf(
        root_path=PROJECT_ROOT,
        settings_files=list(settings_files or SETTINGS_FILES),
        envvar_prefix="CATALYST_CRAWLER",
        environments=False,
        load_dotenv=False,
    )
    settings.validators.register(*VALIDATORS)

    for key, value in (overrides or {}).items():
        settings.set(key, value)

    validate(settings)
    return settings
