import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from threading import Lock
from typing import Callable

import pendulum
from pendulum import DateTime

from twitch_eventsub.constants import VERIFICATION_TIMEOUT
from twitch_eventsub.errors import VerificationConflictError, VerificationTimeoutError
from twitch_eventsub.models import Condition, Subscription
from twitch_eventsub.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass
class PendingVerification:
    subscription_id: str
    future: asyncio.Future
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))


def _resolve(future: asyncio.Future, subscription_id: str) -> None:
    if not future.done():
        future.set_result(subscription_id)


class VerificationHandshake:
    """Joins a create-subscription call with the verification request that
    Twitch sends to the webhook endpoint.

    Each subscribe registers its own waiter under the new subscription id
    and the endpoint resolves exactly that waiter. Twitch may deliver the
    verification before the create response has been read, so
    confirmations for unknown ids are parked for one timeout window and
    picked up on registration. Confirmations for a subscribe that already
    timed out are dropped.
    """

    def __init__(
        self,
        subscriptions: SubscriptionService,
        timeout: float = VERIFICATION_TIMEOUT,
        clock: Callable[[], DateTime] = lambda: pendulum.now("UTC"),
    ) -> None:
        self._subscriptions = subscriptions
        self._timeout = timeout
        self._clock = clock
        self._pending: dict[str, PendingVerification] = {}
        self._early: dict[str, DateTime] = {}
        self._abandoned: dict[str, DateTime] = {}
        self._lock = Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    async def subscribe(
        self, type: str, version: str, condition: Condition
    ) -> Subscription:
        """Create a subscription and wait until Twitch has verified it.

        Must not run on the task serving the webhook endpoint, since the
        confirmation arrives through a separate request to it.
        """
        subscription = await self._subscriptions.create_subscription(
            type, version, condition
        )
        pending = self.register(subscription)
        await self.wait(pending, subscription)
        logger.info(f"Subscription verified: {subscription.id}")
        return subscription

    def register(self, subscription: Subscription) -> PendingVerification:
        subscription_id = subscription.id
        future = asyncio.get_running_loop().create_future()
        pending = PendingVerification(subscription_id, future, self._clock())
        with self._lock:
            self._prune(pending.created_at)
            if subscription_id in self._pending:
                raise VerificationConflictError(subscription)
            if self._early.pop(subscription_id, None) is not None:
                logger.debug(f"Verification for {subscription_id} arrived early")
                future.set_result(subscription_id)
            self._pending[subscription_id] = pending
        return pending

    async def wait(
        self, pending: PendingVerification, subscription: Subscription
    ) -> None:
        try:
            await asyncio.wait_for(pending.future, self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Never received confirmation of subscription: {pending.subscription_id}"
            )
            with self._lock:
                self._abandoned[pending.subscription_id] = self._clock()
            raise VerificationTimeoutError(subscription) from None
        finally:
            self.discard(pending)

    def discard(self, pending: PendingVerification) -> None:
        with self._lock:
            if self._pending.get(pending.subscription_id) is pending:
                del self._pending[pending.subscription_id]

    def confirm(self, subscription_id: str) -> bool:
        """Resolve the waiter for a verified subscription.

        Safe to call from any thread. Returns True if a waiter was resolved.
        """
        now = self._clock()
        with self._lock:
            self._prune(now)
            pending = self._pending.pop(subscription_id, None)
            if pending is None:
                if self._abandoned.pop(subscription_id, None) is not None:
                    logger.info(
                        f"Verification for {subscription_id} arrived after timeout, dropping"
                    )
                else:
                    self._early[subscription_id] = now
                return False

        loop = pending.future.get_loop()
        try:
            loop.call_soon_threadsafe(_resolve, pending.future, subscription_id)
        except RuntimeError:
            # Waiter's loop already closed
            logger.debug(f"Waiter for {subscription_id} is gone")
            return False
        return True

    def _prune(self, now: DateTime) -> None:
        cutoff = now - timedelta(seconds=self._timeout)
        for parked in (self._early, self._abandoned):
            for subscription_id in [
                key for key, parked_at in parked.items() if parked_at <= cutoff
            ]:
                del parked[subscription_id]
