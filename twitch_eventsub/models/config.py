import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from twitch_eventsub.constants import (
    DEFAULT_WEBHOOK_PATH,
    TOKEN_REFRESH_INTERVAL,
    VERIFICATION_TIMEOUT,
)


class ClientConfig(BaseModel):
    client_id: str
    # Client secret of the Twitch application. Not the webhook secret.
    client_secret: str = ""
    # Token generated elsewhere; required when external_token is set.
    token: str = ""
    # Used to sign every event Twitch sends us, 10-100 characters.
    webhook_secret: str = Field(min_length=10, max_length=100)
    # Full callback URL, e.g. https://mydomain.com/webhook/twitch
    webhook_url: str
    external_token: bool = False
    verification_timeout: float = Field(default=VERIFICATION_TIMEOUT, gt=0)
    token_refresh_interval: float = Field(default=TOKEN_REFRESH_INTERVAL, gt=0)
    # Seconds a delivery id is remembered for deduplication. None keeps
    # every id for the lifetime of the process.
    dedup_retention: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_credentials(self) -> "ClientConfig":
        if self.external_token and not self.token:
            raise ValueError("token is required when external_token is set")
        if not self.external_token and not self.client_secret:
            raise ValueError("client_secret is required to generate tokens")
        return self

    @classmethod
    def from_env(cls) -> "ClientConfig":
        load_dotenv()

        token = os.getenv("TWITCH_ACCESS_TOKEN", "")
        webhook_url = os.getenv("TWITCH_WEBHOOK_URL") or (
            f"{os.getenv('APP_URL', '').rstrip('/')}{DEFAULT_WEBHOOK_PATH}"
        )
        retention = os.getenv("TWITCH_DEDUP_RETENTION")
        return cls(
            client_id=os.getenv("TWITCH_CLIENT_ID", ""),
            client_secret=os.getenv("TWITCH_CLIENT_SECRET", ""),
            token=token,
            webhook_secret=os.getenv("TWITCH_WEBHOOK_SECRET", ""),
            webhook_url=webhook_url,
            external_token=bool(token),
            dedup_retention=float(retention) if retention else None,
        )
