from .client import EventSubClient
from .constants import MessageType, SubscriptionStatus
from .errors import (
    DuplicateSubscriptionError,
    EventSubError,
    InternalError,
    MalformedResponseError,
    ProtocolError,
    SignatureRejectedError,
    SubscriptionNotFoundError,
    UnauthorizedError,
    UnhandledStatusError,
    VerificationConflictError,
    VerificationTimeoutError,
)
from .models import ClientConfig, Condition, Subscription

__all__ = [
    "ClientConfig",
    "Condition",
    "DuplicateSubscriptionError",
    "EventSubClient",
    "EventSubError",
    "InternalError",
    "MalformedResponseError",
    "MessageType",
    "ProtocolError",
    "SignatureRejectedError",
    "Subscription",
    "SubscriptionNotFoundError",
    "SubscriptionStatus",
    "UnauthorizedError",
    "UnhandledStatusError",
    "VerificationConflictError",
    "VerificationTimeoutError",
]
