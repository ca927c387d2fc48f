from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from twitch_eventsub.models import Condition, Subscription


class EventSubError(Exception):
    """Base class for every error raised by twitch_eventsub."""


class UnauthorizedError(EventSubError):
    """Twitch rejected the client id, client secret or token (HTTP 401)."""

    def __init__(self, body: str = "") -> None:
        super().__init__("Twitch returned 401 Unauthorized")
        self.body = body


class InternalError(EventSubError):
    """Network failure while talking to Twitch."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(f"{message}: {original_error}")
        self.message = message
        self.original_error = original_error


class ProtocolError(EventSubError):
    """Twitch answered, but not in a way we know how to handle."""


class UnhandledStatusError(ProtocolError):
    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"Twitch returned unhandled status code {status}")
        self.status = status
        self.body = body


class MalformedResponseError(ProtocolError):
    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(
            f"{message}: {original_error}" if original_error else message
        )
        self.original_error = original_error


class DuplicateSubscriptionError(EventSubError):
    """A subscription with the same type and condition already exists."""

    def __init__(self, type: str, condition: "Condition") -> None:
        super().__init__(f"Duplicate subscription for {type}")
        self.type = type
        self.condition = condition


class SubscriptionNotFoundError(EventSubError):
    def __init__(self, subscription_id: str = "") -> None:
        super().__init__(f"Could not find subscription {subscription_id}".strip())
        self.subscription_id = subscription_id


class VerificationTimeoutError(EventSubError):
    """The verification request for a new subscription never arrived."""

    def __init__(self, subscription: "Subscription") -> None:
        super().__init__(
            f"Subscription {subscription.id} was not verified within timeout duration"
        )
        self.subscription = subscription


class SignatureRejectedError(EventSubError):
    def __init__(self) -> None:
        super().__init__("Signature does not match")


class VerificationConflictError(EventSubError):
    """A waiter is already registered for this subscription id. The
    subscription exists on Twitch and is left for the caller to remove."""

    def __init__(self, subscription: "Subscription") -> None:
        super().__init__(f"Already waiting on subscription {subscription.id}")
        self.subscription = subscription
