from .auth.auth_response import AuthResponse
from .config import ClientConfig
from .twitch_api_responses.subscription import (
    Condition,
    Pagination,
    Subscription,
    SubscriptionResponse,
    Transport,
)
from .twitch_event_subs import EVENT_MODELS, WebhookPayload

__all__ = [
    "AuthResponse",
    "ClientConfig",
    "Condition",
    "EVENT_MODELS",
    "Pagination",
    "Subscription",
    "SubscriptionResponse",
    "Transport",
    "WebhookPayload",
]
