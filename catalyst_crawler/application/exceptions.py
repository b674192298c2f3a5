"""
Core business exceptions for the crawler application.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Per-item failures
(an entity, a manifest, an asset) are caught at that item's boundary and
treated as a skip; only the snapshot stage escalates.
"""


class CrawlerError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(CrawlerError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(CrawlerError):
    """Base class for errors related to external systems (network, disk)."""
    pass


class TransportFailure(InfrastructureError):
    """Raised for connection-level failures (DNS, refused, timeout)."""
    pass


class ProtocolFailure(InfrastructureError):
    """Raised when a request completes with a non-success status code."""
    pass


class CacheError(InfrastructureError):
    """Raised when the durable cache file cannot be read or written."""
    pass


class ArtifactStoreError(InfrastructureError):
    """Raised when a downloaded artifact cannot be written to disk."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(CrawlerError):
    """Base class for errors related to business logic failures."""
    pass


class ParseFailure(DomainError):
    """Raised when a listing, entity or manifest body is malformed."""
    pass


class PolicyExclusion(DomainError):
    """Raised for valid items that are intentionally skipped."""
    pass


class SnapshotUnavailableError(DomainError):
    """Raised when no catalog snapshot can be chosen; aborts the crawl."""
    pass


# --- Cooperative shutdown ---

class FetchCancelled(CrawlerError):
    """Raised when work is short-circuited by a cancelled scope."""
    pass
