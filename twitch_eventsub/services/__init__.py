from .dispatcher import EventDispatcher, EventHandler
from .handshake import PendingVerification, VerificationHandshake
from .helper.helper import get_error_details, handle_error
from .helper.http_client import HttpClientManager
from .helper.twitch import TwitchApi, retry_api_call
from .ledger import NotificationLedger
from .signature import (
    get_hmac,
    get_hmac_message,
    sign,
    verify_message,
    verify_signature,
)
from .subscriptions import SubscriptionService
from .token_manager import TwitchTokenManager

__all__ = [
    "EventDispatcher",
    "EventHandler",
    "HttpClientManager",
    "NotificationLedger",
    "PendingVerification",
    "SubscriptionService",
    "TwitchApi",
    "TwitchTokenManager",
    "VerificationHandshake",
    "get_error_details",
    "get_hmac",
    "get_hmac_message",
    "handle_error",
    "retry_api_call",
    "sign",
    "verify_message",
    "verify_signature",
]
