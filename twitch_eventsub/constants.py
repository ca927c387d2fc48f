from enum import Enum
from typing import TypedDict

TWITCH_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
TWITCH_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"
TWITCH_MESSAGE_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
TWITCH_MESSAGE_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HMAC_PREFIX = "sha256="

HELIX_URL = "https://api.twitch.tv/helix"
SUBSCRIPTIONS_URL = f"{HELIX_URL}/eventsub/subscriptions"
OAUTH_URL = "https://id.twitch.tv/oauth2"
TOKEN_URL = f"{OAUTH_URL}/token"
VALIDATE_URL = f"{OAUTH_URL}/validate"

DEFAULT_WEBHOOK_PATH = "/webhook/twitch"
USER_AGENT = "twitch-eventsub/0.1.0"

VERIFICATION_TIMEOUT = 10.0
TOKEN_REFRESH_INTERVAL = 3600.0


class MessageType(str, Enum):
    Notification = "notification"
    Verification = "webhook_callback_verification"
    Revocation = "revocation"


class SubscriptionStatus(str, Enum):
    Enabled = "enabled"
    VerificationPending = "webhook_callback_verification_pending"
    VerificationFailed = "webhook_callback_verification_failed"
    NotificationFailuresExceeded = "notification_failures_exceeded"
    AuthorizationRevoked = "authorization_revoked"
    ModeratorRemoved = "moderator_removed"
    UserRemoved = "user_removed"
    VersionRemoved = "version_removed"


class ErrorDetails(TypedDict):
    type: str
    message: str
    args: tuple
    traceback: str
