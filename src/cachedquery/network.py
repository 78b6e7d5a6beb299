"""Network reachability probes."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from cachedquery.duration import parse_duration
from cachedquery.types import Duration

DEFAULT_PROBE_URL = "https://clients3.google.com/generate_204"


class NetworkUnavailableError(Exception):
    """Raised (or returned) when a read is refused because the device is offline."""

    def __init__(self, message: str = "Network connection unavailable") -> None:
        super().__init__(message)


@runtime_checkable
class NetworkProbe(Protocol):
    """Answers "can we reach the backend right now?" on demand."""

    async def is_available(self) -> bool:
        """Probe connectivity. May raise when the probe itself fails."""
        ...

    async def aclose(self) -> None:
        """Release probe resources."""
        ...


class HttpNetworkProbe:
    """Probe connectivity with a lightweight HTTP HEAD request.

    Any HTTP response, whatever its status, proves the network path works.
    A refused or unroutable connection means offline. Timeouts and other
    failures are raised so the caller's fail-open policy can decide.
    """

    def __init__(
        self,
        url: str = DEFAULT_PROBE_URL,
        *,
        timeout: Duration = "3s",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=parse_duration(timeout) / 1000,
                follow_redirects=False,
            )
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def is_available(self) -> bool:
        try:
            await self._client.head(self._url)
        except httpx.ConnectError:
            return False
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class StaticNetworkProbe:
    """Probe with a fixed, settable answer (forced offline mode, tests)."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls = 0

    async def is_available(self) -> bool:
        self.calls += 1
        return self.available

    async def aclose(self) -> None:
        pass
