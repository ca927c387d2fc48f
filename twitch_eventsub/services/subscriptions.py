import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from twitch_eventsub.constants import SUBSCRIPTIONS_URL
from twitch_eventsub.errors import (
    DuplicateSubscriptionError,
    MalformedResponseError,
    SubscriptionNotFoundError,
    UnhandledStatusError,
)
from twitch_eventsub.models import Condition, Subscription, SubscriptionResponse
from twitch_eventsub.services.helper.twitch import TwitchApi, retry_api_call

logger = logging.getLogger(__name__)


def _parse_subscriptions(response: httpx.Response) -> SubscriptionResponse:
    try:
        return SubscriptionResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise MalformedResponseError("Could not parse subscriptions response", e) from e


class SubscriptionService:
    """Create, list and delete EventSub subscriptions over Helix."""

    def __init__(self, api: TwitchApi, webhook_url: str, webhook_secret: str) -> None:
        self._api = api
        self._webhook_url = webhook_url
        self._webhook_secret = webhook_secret

    async def create_subscription(
        self, type: str, version: str, condition: Condition
    ) -> Subscription:
        """Send the create request. The subscription starts out pending
        verification; see VerificationHandshake for the rest."""
        body = {
            "type": type,
            "version": version,
            "condition": condition.populated(),
            "transport": {
                "method": "webhook",
                "callback": self._webhook_url,
                "secret": self._webhook_secret,
            },
        }
        # Not retried: a lost response would otherwise create a duplicate.
        response = await self._api.call_twitch("POST", SUBSCRIPTIONS_URL, json=body)

        if response.status_code == 409:
            raise DuplicateSubscriptionError(type, condition)
        if response.status_code != 202:
            logger.warning(
                f"Failed to subscribe to {type} event: {response.status_code} {response.text}"
            )
            raise UnhandledStatusError(response.status_code, response.text)

        subscription_response = _parse_subscriptions(response)
        if not subscription_response.data:
            raise MalformedResponseError("Create response contained no subscription")
        # The returned data is a list holding the single new subscription
        subscription = subscription_response.data[0]
        logger.info(
            f"Created subscription {subscription.id} for {type}, status={subscription.status}"
        )
        return subscription

    async def remove_subscription(self, subscription_id: str) -> None:
        response = await retry_api_call(
            self._api.call_twitch,
            "DELETE",
            SUBSCRIPTIONS_URL,
            {"id": subscription_id},
        )
        if response.status_code == 204:
            logger.info(f"Removed subscription {subscription_id}")
            return
        if response.status_code == 404:
            raise SubscriptionNotFoundError(subscription_id)
        raise UnhandledStatusError(response.status_code, response.text)

    async def remove_subscriptions_by_type(
        self, type: str, condition: Condition
    ) -> List[str]:
        """Remove every subscription of the type whose condition matches.

        Returns the ids that were removed.
        """
        removed: List[str] = []
        for subscription in await self.get_subscriptions_by_type(type):
            if subscription.condition != condition:
                continue
            logger.info(f"Removing subscription {subscription.id}")
            await self.remove_subscription(subscription.id)
            removed.append(subscription.id)
        return removed

    async def _fetch_subscriptions(
        self, filters: Optional[dict[str, Any]] = None
    ) -> List[Subscription]:
        all_subscriptions: List[Subscription] = []
        cursor: Optional[str] = None
        page = 1

        while True:
            logger.debug(f"Fetching page {page} of subscriptions")
            params = dict(filters or {})
            if cursor:
                params["after"] = cursor

            response = await retry_api_call(
                self._api.call_twitch, "GET", SUBSCRIPTIONS_URL, params
            )
            if response.status_code != 200:
                logger.warning(
                    f"Error fetching subscriptions: {response.status_code} {response.text}"
                )
                raise UnhandledStatusError(response.status_code, response.text)

            subscription_response = _parse_subscriptions(response)
            all_subscriptions.extend(subscription_response.data)

            cursor = subscription_response.pagination.cursor
            if not cursor:
                break
            page += 1

        return all_subscriptions

    async def get_subscriptions(self) -> List[Subscription]:
        """All subscriptions, including revoked ones."""
        return await self._fetch_subscriptions()

    async def get_subscriptions_by_type(self, type: str) -> List[Subscription]:
        return await self._fetch_subscriptions({"type": type})

    async def get_subscriptions_by_status(self, status: str) -> List[Subscription]:
        return await self._fetch_subscriptions({"status": status})
