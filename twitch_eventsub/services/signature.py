import hashlib
import hmac
from typing import Optional

import sentry_sdk

from twitch_eventsub.constants import HMAC_PREFIX


def get_hmac_message(
    twitch_message_id: str, twitch_message_timestamp: str, body: bytes | str
) -> bytes:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return (
        twitch_message_id.encode("utf-8")
        + twitch_message_timestamp.encode("utf-8")
        + body
    )


def get_hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_message(hmac_str: str, verify_signature: str) -> bool:
    return hmac.compare_digest(
        hmac_str.encode("utf-8"), verify_signature.encode("utf-8")
    )


def sign(
    secret: str, twitch_message_id: str, twitch_message_timestamp: str, body: bytes | str
) -> str:
    """Build the value Twitch sends in the message signature header."""
    message = get_hmac_message(twitch_message_id, twitch_message_timestamp, body)
    return HMAC_PREFIX + get_hmac(secret, message)


@sentry_sdk.trace()
def verify_signature(
    twitch_message_id: Optional[str],
    twitch_message_timestamp: Optional[str],
    body: bytes | str,
    secret: str,
    twitch_message_signature: Optional[str],
) -> bool:
    """Check an inbound EventSub request against the webhook secret.

    Missing headers count as empty strings, which simply fails to match.
    Never raises for malformed input.
    """
    expected = sign(
        secret or "",
        twitch_message_id or "",
        twitch_message_timestamp or "",
        body or b"",
    )
    return verify_message(expected, twitch_message_signature or "")
