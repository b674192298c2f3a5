"""HTTP implementation of the Transport port."""

import logging

import httpx

from ..application.domain import Transport, TransportResponse
from ..application.exceptions import ConfigurationError, TransportFailure

from .decorators import retry_on_transport_failure, with_attempts


class HttpTransport(Transport):
    """A transport that issues GET requests through a shared httpx client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float,
        retry_attempts: int = 1,
    ):
        """
        Initializes the transport adapter.

        Args:
            client: An instance of httpx.AsyncClient.
            timeout: Per-request timeout in seconds.
            retry_attempts: Total attempts for connection-level failures.

        Raises:
            ConfigurationError: If retry_attempts is below one.
        """

        if retry_attempts < 1:
            raise ConfigurationError(
                f"retry_attempts must be at least 1, got {retry_attempts}"
            )

        self.client = client
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.logger = logging.getLogger(self.__class__.__name__)

    @retry_on_transport_failure
    async def _execute_get(self, url: str) -> TransportResponse:
        """Executes the raw HTTP GET request."""
        try:
            response = await self.client.get(url, timeout=self.timeout)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportFailure(f"{type(e).__name__}: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            content=response.content,
            reason=response.reason_phrase,
        )

    async def get(self, url: str) -> TransportResponse:
        """
        Retrieve a URL, retrying connection-level failures.

        Non-success status codes are returned, not raised; classifying them
        is the fetcher's job.

        Raises:
            TransportFailure: If the server cannot be reached after every
                              attempt.
        """

        execute = with_attempts(self._execute_get, self.retry_attempts)
        return await execute(self, url)
