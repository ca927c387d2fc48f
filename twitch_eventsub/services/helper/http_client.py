import asyncio
import logging
from typing import Optional

import httpx
import sentry_sdk

from twitch_eventsub.constants import USER_AGENT

logger = logging.getLogger(__name__)

POOL_LIMITS = httpx.Limits(
    max_keepalive_connections=20, max_connections=50, keepalive_expiry=30.0
)
TIMEOUTS = httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0)


class HttpClientManager:
    """Pooled HTTP/2 client for the identity and Helix endpoints.

    One manager per EventSubClient. The underlying httpx client is built on
    first use and rebuilt after close(). Pass a transport to route every
    request somewhere other than the network.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._client: Optional[httpx.AsyncClient] = None
        self._transport = transport
        self._lock = asyncio.Lock()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            limits=POOL_LIMITS,
            timeout=TIMEOUTS,
            http2=True,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = self._build_client()
                    logger.info("Twitch HTTP client initialized")
        return self._client

    async def close(self) -> None:
        async with self._lock:
            if self._client is None:
                return
            await self._client.aclose()
            self._client = None
            logger.info("Twitch HTTP client closed")

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        data: Optional[dict] = None,
    ) -> httpx.Response:
        """Send a request; transport failures are reported and re-raised."""
        client = await self.get_client()
        try:
            response = await client.request(
                method, url, headers=headers, params=params, json=json, data=data
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            sentry_sdk.capture_exception(e)
            raise
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response
