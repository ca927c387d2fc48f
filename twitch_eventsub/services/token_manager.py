import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from twitch_eventsub.constants import TOKEN_REFRESH_INTERVAL, TOKEN_URL, VALIDATE_URL
from twitch_eventsub.errors import (
    EventSubError,
    InternalError,
    MalformedResponseError,
    UnauthorizedError,
    UnhandledStatusError,
)
from twitch_eventsub.models import AuthResponse
from twitch_eventsub.services.helper.helper import handle_error
from twitch_eventsub.services.helper.http_client import HttpClientManager

logger = logging.getLogger(__name__)


class TwitchTokenManager:
    """Owns the app access token used for every Helix call.

    In internal mode the token is generated from the client credentials and
    revalidated on a fixed interval by a background task, which swaps in a
    fresh token once Twitch reports the old one invalid. In external mode
    the caller owns the token: it is validated once on start and replaced
    only through set_token.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http_client: HttpClientManager,
        token: str = "",
        external_token: bool = False,
        refresh_interval: float = TOKEN_REFRESH_INTERVAL,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._http = http_client
        self._token = token
        self._external_token = external_token
        self._refresh_interval = refresh_interval
        self._acquire_lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def token(self) -> str:
        return self._token

    @property
    def external_token(self) -> bool:
        return self._external_token

    @property
    def running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def set_token(self, token: str) -> None:
        self._token = token

    async def generate_token(self) -> str:
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        try:
            response = await self._http.request("POST", TOKEN_URL, data=data)
        except Exception as e:
            raise InternalError("Could not send token request", e) from e

        if response.status_code == 401:
            raise UnauthorizedError(response.text)
        if response.status_code != 200:
            logger.error(f"Token generation failed with status={response.status_code}")
            raise UnhandledStatusError(response.status_code, response.text)

        try:
            auth_response = AuthResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError("Could not parse token response", e) from e

        if auth_response.token_type.lower() != "bearer":
            logger.error(f"Unexpected token type received: {auth_response.token_type}")
            raise MalformedResponseError(
                f"Unexpected token type: {auth_response.token_type}"
            )

        logger.info(f"Generated app access token, expires in {auth_response.expires_in}s")
        return auth_response.access_token

    async def acquire(self) -> str:
        """Generate a new token and make it the current one."""
        async with self._acquire_lock:
            token = await self.generate_token()
            self._token = token
            return token

    async def renew(self, stale_token: str) -> str:
        """Replace stale_token unless another caller already has."""
        async with self._acquire_lock:
            if self._token != stale_token:
                return self._token
            token = await self.generate_token()
            self._token = token
            return token

    async def validate_token(self, token: Optional[str] = None) -> bool:
        headers = {"Authorization": f"Bearer {self._token if token is None else token}"}
        try:
            response = await self._http.request("GET", VALIDATE_URL, headers=headers)
        except Exception as e:
            raise InternalError("Could not send validation request", e) from e
        return response.status_code == 200

    async def refresh(self) -> bool:
        """Run one validation round. Returns True if the token was replaced."""
        try:
            valid = await self.validate_token()
        except InternalError as e:
            logger.warning(f"Could not validate token, retrying next interval: {e}")
            return False

        if valid:
            return False

        logger.info("Token invalid, generating a new one")
        try:
            await self.acquire()
        except EventSubError as e:
            handle_error(e, "Failed to regenerate app access token")
            return False
        return True

    async def start(self) -> None:
        """Make a usable token available and start the refresh loop.

        Raises UnauthorizedError when Twitch rejects the credentials or the
        externally supplied token.
        """
        if self._external_token:
            logger.info("Using external token store")
            if not await self.validate_token():
                raise UnauthorizedError("External token is invalid")
            return

        logger.info("Using internal token store")
        await self.acquire()
        if not self.running:
            self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._refresh_interval)
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                handle_error(e, "Error in token refresh loop")
