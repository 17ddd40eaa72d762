"""Pooled httpx clients for the LLM backends.

The core never opens its own connections: the factory asks this pool for
one client per backend ("anthropic", "ollama", "lmstudio") and hands it to
the adapter, so concurrent analyses against one backend share keep-alive
connections.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx
import structlog

from logwatch_ai.config import Settings, get_settings

logger = structlog.get_logger()

CONNECT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class ClientSpec:
    """Options a pooled client was built with."""

    timeout: float
    proxy: Optional[str] = None


class HttpClientPool:
    """One ``httpx.AsyncClient`` per backend, rebuilt when its options change.

    Usable as an async context manager that closes every client on exit.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._specs: Dict[str, ClientSpec] = {}
        # Superseded clients adapters may still hold; closed with the pool
        self._retired: List[httpx.AsyncClient] = []

    async def __aenter__(self) -> "HttpClientPool":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close_all()

    @property
    def limits(self) -> httpx.Limits:
        max_connections = self._settings.http_max_connections
        return httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max(max_connections // 2, 1),
            keepalive_expiry=self._settings.http_keepalive_expiry,
        )

    def get_client(
        self,
        key: str,
        timeout: float,
        proxy: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.AsyncClient:
        """Return the pooled client for ``key``, creating it if needed.

        A closed client, or one built with a different timeout or proxy, is
        replaced. The old one stays open for adapters still holding it and is
        closed by :meth:`close_all`.

        Args:
            key: Backend name.
            timeout: Whole-request timeout in seconds; connecting is capped at 10s.
            proxy: Optional http(s) proxy URL, already validated.
            headers: Default headers for the new client.
        """
        spec = ClientSpec(timeout=float(timeout), proxy=proxy or None)
        client = self._clients.get(key)

        if client is not None and not client.is_closed and self._specs.get(key) == spec:
            return client
        if client is not None and not client.is_closed:
            self._retired.append(client)

        client = httpx.AsyncClient(
            limits=self.limits,
            timeout=httpx.Timeout(spec.timeout, connect=CONNECT_TIMEOUT_SECONDS),
            proxy=spec.proxy,
            headers=headers,
        )
        self._clients[key] = client
        self._specs[key] = spec
        logger.debug("http_client_created", backend=key, timeout=spec.timeout, proxied=bool(proxy))
        return client

    async def close_client(self, key: str) -> None:
        """Close and forget the client for ``key``; unknown keys are ignored."""
        client = self._clients.pop(key, None)
        self._specs.pop(key, None)
        if client is not None and not client.is_closed:
            await client.aclose()
            logger.debug("http_client_closed", backend=key)

    async def close_all(self) -> None:
        for key in list(self._clients):
            await self.close_client(key)
        retired, self._retired = self._retired, []
        for client in retired:
            if not client.is_closed:
                await client.aclose()

    @property
    def active_clients(self) -> int:
        """Number of pooled clients that are still open."""
        return sum(1 for client in self._clients.values() if not client.is_closed)


_client_pool: Optional[HttpClientPool] = None


def get_http_client_pool() -> HttpClientPool:
    """Process-wide pool, built from the cached settings on first use."""
    global _client_pool
    if _client_pool is None:
        _client_pool = HttpClientPool()
    return _client_pool


async def close_http_client_pool() -> None:
    """Close every client of the process-wide pool and drop it."""
    global _client_pool
    if _client_pool is not None:
        await _client_pool.close_all()
        _client_pool = None
