"""
The single entry point for network retrieval.

Every request goes through the throttle gate and comes back as a
``FetchOutcome``; transport faults and non-success statuses are classified,
never raised, so callers always branch on the outcome.
"""

import logging

from .cancellation import CancellationScope
from .domain import (
    ArtifactStore,
    Counters,
    FetchOutcome,
    FetchRequest,
    IntegrityRequest,
    Transport,
)
from .exceptions import ArtifactStoreError, TransportFailure
from .throttle import ThrottleGate


class Fetcher:
    """Performs throttled, classified retrievals."""

    def __init__(
        self,
        transport: Transport,
        gate: ThrottleGate,
        scope: CancellationScope,
        counters: Counters,
        artifact_store: ArtifactStore,
    ):
        """Initializes the fetcher with its shared collaborators."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.transport = transport
        self.gate = gate
        self.scope = scope
        self.counters = counters
        self.artifact_store = artifact_store

    async def fetch(self, request: FetchRequest) -> FetchOutcome:
        """
        Retrieve one resource and classify the result.

        An integrity request whose artifact is already stored locally is
        answered without touching the network. The gate slot is returned
        exactly once whatever happens during the transport call.

        Args:
            request: A PlainRequest or an IntegrityRequest.

        Returns:
            A FetchOutcome; SUCCESS carries text for plain text requests
            and bytes otherwise.
        """

        if self.scope.cancelled:
            return FetchOutcome.cancelled()

        integrity = isinstance(request, IntegrityRequest)
        if integrity and self.artifact_store.contains(request.fingerprint):
            self.logger.debug(f"Artifact {request.fingerprint} already stored")
            return FetchOutcome.success(b"", from_store=True)

        async with self.gate.slot():
            if self.scope.cancelled:
                return FetchOutcome.cancelled()
            return await self._execute(request, integrity)

    async def _execute(self, request: FetchRequest, integrity: bool) -> FetchOutcome:
        self.counters.request_started()
        self.logger.debug(
            f"Active requests {self.counters.active_requests}: {request.url}"
        )
        try:
            response = await self.transport.get(request.url)
        except TransportFailure as e:
            self.logger.error(f"Request failed: {e} {request.url}")
            return FetchOutcome.connection_error(str(e))
        finally:
            self.counters.request_finished()

        if not response.is_success:
            message = f"HTTP {response.status_code} {response.reason}".strip()
            self.logger.error(f"Request error: {message} {request.url}")
            return FetchOutcome.protocol_error(message)

        if integrity:
            return await self._store(request, response.content)

        if request.binary:
            return FetchOutcome.success(response.content)
        return FetchOutcome.success(response.text)

    async def _store(self, request: IntegrityRequest, payload: bytes) -> FetchOutcome:
        if not payload:
            self.logger.error(f"Empty payload for {request.url}")
            return FetchOutcome.protocol_error("Empty payload")
        try:
            await self.artifact_store.store(request.fingerprint, payload)
        except ArtifactStoreError as e:
            self.logger.error(f"Could not store {request.url}: {e}")
            return FetchOutcome.protocol_error(str(e))
        return FetchOutcome.success(payload)
