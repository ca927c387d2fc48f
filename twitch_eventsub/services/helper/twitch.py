import asyncio
import logging
from typing import Any, Awaitable, Callable, Literal, Optional, TypeVar

import httpx

from twitch_eventsub.errors import InternalError, UnauthorizedError
from twitch_eventsub.services.helper.http_client import HttpClientManager
from twitch_eventsub.services.token_manager import TwitchTokenManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

Method = Literal["GET", "POST", "DELETE"]


async def retry_api_call(
    func: Callable[..., Awaitable[T]], *args, max_retries=3, delay=1, **kwargs
) -> T:
    """Retry API calls with exponential backoff for connection issues."""
    for attempt in range(max_retries):
        try:
            return await func(*args, **kwargs)
        except InternalError as e:
            if attempt == max_retries - 1:
                raise e
            wait_time = delay * (2**attempt)
            logger.warning(
                f"Connection error on attempt {attempt + 1}, retrying in {wait_time}s: {e}"
            )
            await asyncio.sleep(wait_time)
    raise RuntimeError("max_retries must be at least 1")


class TwitchApi:
    """Authenticated requests against Helix."""

    def __init__(
        self,
        client_id: str,
        token_manager: TwitchTokenManager,
        http_client: HttpClientManager,
    ) -> None:
        self._client_id = client_id
        self._token_manager = token_manager
        self._http = http_client

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Client-ID": self._client_id,
            "Authorization": f"Bearer {token}",
        }

    async def _make_http_request(
        self,
        method: Method,
        url: str,
        token: str,
        params: Optional[dict[str, Any]],
        json: Optional[dict[str, Any]],
    ) -> httpx.Response:
        try:
            return await self._http.request(
                method, url, headers=self._headers(token), params=params, json=json
            )
        except Exception as e:
            raise InternalError(f"Could not send {method} {url}", e) from e

    async def call_twitch(
        self,
        method: Method,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        token = self._token_manager.token
        response = await self._make_http_request(method, url, token, params, json)
        if response.status_code != 401:
            return response

        if self._token_manager.external_token:
            raise UnauthorizedError(response.text)

        # Internally managed token went stale between refresh rounds. Calls
        # that failed with the same token share one regeneration.
        logger.warning("Unauthorized request, refreshing token...")
        token = await self._token_manager.renew(token)
        response = await self._make_http_request(method, url, token, params, json)
        if response.status_code == 401:
            raise UnauthorizedError(response.text)
        return response
