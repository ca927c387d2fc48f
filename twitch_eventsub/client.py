import logging
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter
from pydantic import BaseModel

from twitch_eventsub.constants import DEFAULT_WEBHOOK_PATH
from twitch_eventsub.controller import create_webhook_router
from twitch_eventsub.models import ClientConfig, Condition, Subscription
from twitch_eventsub.services import (
    EventDispatcher,
    HttpClientManager,
    NotificationLedger,
    SubscriptionService,
    TwitchApi,
    TwitchTokenManager,
    VerificationHandshake,
)
from twitch_eventsub.services.dispatcher import DecodeErrorHook, EventCallback

logger = logging.getLogger(__name__)

RevocationCallback = Callable[[Subscription], Any]


class EventSubClient:
    """EventSub over the webhook transport.

    Register callbacks with on(), mount router() in a FastAPI app at the
    path of config.webhook_url, await start(), then subscribe(). subscribe
    waits for the verification request to reach the router, so the server
    must already be serving and subscribe must not be awaited from inside
    a request to the webhook endpoint.

        client = EventSubClient(ClientConfig.from_env())
        app.include_router(client.router())

        @client.on("stream.online")
        async def stream_online(event: StreamOnlineEvent) -> None:
            ...

        await client.start()
        await client.subscribe("stream.online", "1", Condition(broadcaster_user_id="1234"))
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._http = HttpClientManager(transport)
        self.token_manager = TwitchTokenManager(
            config.client_id,
            config.client_secret,
            self._http,
            token=config.token,
            external_token=config.external_token,
            refresh_interval=config.token_refresh_interval,
        )
        self.api = TwitchApi(config.client_id, self.token_manager, self._http)
        self.subscriptions = SubscriptionService(
            self.api, config.webhook_url, config.webhook_secret
        )
        self.handshake = VerificationHandshake(
            self.subscriptions, config.verification_timeout
        )
        self.ledger = NotificationLedger(config.dedup_retention)
        self.dispatcher = EventDispatcher()
        # Fired whenever Twitch revokes a subscription; the status carries the reason
        self.on_revocation: Optional[RevocationCallback] = None

    @property
    def webhook_secret(self) -> str:
        return self.config.webhook_secret

    @property
    def token(self) -> str:
        return self.token_manager.token

    @property
    def on_decode_error(self) -> Optional[DecodeErrorHook]:
        return self.dispatcher.on_decode_error

    @on_decode_error.setter
    def on_decode_error(self, hook: Optional[DecodeErrorHook]) -> None:
        self.dispatcher.on_decode_error = hook

    def on(
        self,
        type: str,
        callback: Optional[EventCallback] = None,
        model: Optional[type[BaseModel]] = None,
    ) -> Any:
        """Assign the callback for an event type, e.g. "stream.online".

        Works as a plain call or as a decorator.
        """
        if callback is not None:
            self.dispatcher.on(type, callback, model)
            return callback

        def decorator(func: EventCallback) -> EventCallback:
            self.dispatcher.on(type, func, model)
            return func

        return decorator

    def set_token(self, token: str) -> None:
        """Replace an externally managed token."""
        self.token_manager.set_token(token)

    def router(self, path: Optional[str] = None) -> APIRouter:
        """Webhook router, mounted at the path of the callback URL unless
        another path is given."""
        if path is None:
            path = urlparse(self.config.webhook_url).path or DEFAULT_WEBHOOK_PATH
        return create_webhook_router(self, path)

    async def start(self) -> None:
        await self.token_manager.start()

    async def close(self) -> None:
        await self.token_manager.stop()
        await self.dispatcher.join()
        await self._http.close()

    async def __aenter__(self) -> "EventSubClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def subscribe(
        self,
        type: str,
        version: str,
        condition: Condition | dict[str, Any],
    ) -> Subscription:
        """Create a subscription and block until Twitch verifies it, or
        raise VerificationTimeoutError after the configured timeout."""
        if isinstance(condition, dict):
            condition = Condition.model_validate(condition)
        return await self.handshake.subscribe(type, version, condition)

    async def remove_subscription(self, subscription_id: str) -> None:
        await self.subscriptions.remove_subscription(subscription_id)

    async def remove_subscriptions_by_type(
        self, type: str, condition: Condition | dict[str, Any]
    ) -> List[str]:
        if isinstance(condition, dict):
            condition = Condition.model_validate(condition)
        return await self.subscriptions.remove_subscriptions_by_type(type, condition)

    async def get_subscriptions(self) -> List[Subscription]:
        return await self.subscriptions.get_subscriptions()

    async def get_subscriptions_by_type(self, type: str) -> List[Subscription]:
        return await self.subscriptions.get_subscriptions_by_type(type)

    async def get_subscriptions_by_status(self, status: str) -> List[Subscription]:
        return await self.subscriptions.get_subscriptions_by_status(status)
