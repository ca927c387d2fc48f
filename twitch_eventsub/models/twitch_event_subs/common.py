from typing import Any, Optional

from pydantic import BaseModel

from ..twitch_api_responses.subscription import Subscription


class WebhookPayload(BaseModel):
    challenge: Optional[str] = None
    subscription: Subscription
    event: Optional[dict[str, Any]] = None
