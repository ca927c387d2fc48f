"""Shared fixtures: a fake Twitch backend behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import httpx
import pytest

from twitch_eventsub.constants import (
    TWITCH_MESSAGE_ID,
    TWITCH_MESSAGE_SIGNATURE,
    TWITCH_MESSAGE_TIMESTAMP,
    TWITCH_MESSAGE_TYPE,
)
from twitch_eventsub.models import ClientConfig
from twitch_eventsub.services import sign

CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
WEBHOOK_SECRET = "supersecretwebhooksecret"
WEBHOOK_URL = "https://example.com/webhook/twitch"
TIMESTAMP = "2026-10-19T12:00:00.000000000Z"


class FakeTwitch:
    """Minimal stand-in for id.twitch.tv and the Helix subscriptions API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_statuses: list[int] = []
        self.issued_tokens = 0
        self.valid_tokens: set[str] = set()
        self.validate_error: Optional[Exception] = None
        self.create_status = 202
        self.page_size = 100
        self.subscriptions: list[dict[str, Any]] = []
        self._next_id = 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path: str, method: Optional[str] = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.path == path and (method is None or r.method == method)
        ]

    def add_subscription(
        self,
        type: str,
        condition: dict[str, Any],
        status: str = "enabled",
    ) -> dict[str, Any]:
        subscription = {
            "id": f"sub-{self._next_id}",
            "status": status,
            "type": type,
            "version": "1",
            "cost": 1,
            "condition": condition,
            "transport": {"method": "webhook", "callback": WEBHOOK_URL},
            "created_at": "2026-10-19T12:00:00Z",
        }
        self._next_id += 1
        self.subscriptions.append(subscription)
        return subscription

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/oauth2/token":
            return self._token(request)
        if path == "/oauth2/validate":
            if self.validate_error is not None:
                raise self.validate_error
            return httpx.Response(200 if self._authorized(request) else 401)
        if path == "/helix/eventsub/subscriptions":
            if not self._authorized(request):
                return httpx.Response(401, json={"message": "Invalid OAuth token"})
            if request.method == "POST":
                return self._create(request)
            if request.method == "DELETE":
                return self._delete(request)
            return self._list(request)
        return httpx.Response(404)

    def _authorized(self, request: httpx.Request) -> bool:
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        return token in self.valid_tokens

    def _token(self, request: httpx.Request) -> httpx.Response:
        status = self.token_statuses.pop(0) if self.token_statuses else 200
        if status != 200:
            return httpx.Response(status, json={"status": status, "message": "nope"})
        self.issued_tokens += 1
        token = f"token-{self.issued_tokens}"
        self.valid_tokens.add(token)
        return httpx.Response(
            200,
            json={"access_token": token, "expires_in": 5011271, "token_type": "bearer"},
        )

    def _create(self, request: httpx.Request) -> httpx.Response:
        if self.create_status != 202:
            return httpx.Response(self.create_status, json={"message": "rejected"})
        body = json.loads(request.content)
        subscription = self.add_subscription(
            body["type"],
            body["condition"],
            status="webhook_callback_verification_pending",
        )
        return httpx.Response(
            202,
            json={"data": [subscription], "total": 1, "total_cost": 1, "max_total_cost": 10000},
        )

    def _delete(self, request: httpx.Request) -> httpx.Response:
        subscription_id = request.url.params.get("id")
        for subscription in self.subscriptions:
            if subscription["id"] == subscription_id:
                self.subscriptions.remove(subscription)
                return httpx.Response(204)
        return httpx.Response(404)

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        matches = [
            s
            for s in self.subscriptions
            if ("type" not in params or s["type"] == params["type"])
            and ("status" not in params or s["status"] == params["status"])
        ]
        start = int(params.get("after", "0"))
        end = start + self.page_size
        pagination = {"cursor": str(end)} if end < len(matches) else {}
        return httpx.Response(
            200,
            json={"data": matches[start:end], "total": len(matches), "pagination": pagination},
        )


def make_config(**overrides: Any) -> ClientConfig:
    values: dict[str, Any] = {
        "client_id": CLIENT_ID,
        "client_secret": CLIENT_SECRET,
        "webhook_secret": WEBHOOK_SECRET,
        "webhook_url": WEBHOOK_URL,
    }
    values.update(overrides)
    return ClientConfig(**values)


def signed_headers(
    body: bytes,
    message_type: str,
    message_id: str = "m1",
    timestamp: str = TIMESTAMP,
    secret: str = WEBHOOK_SECRET,
) -> dict[str, str]:
    return {
        TWITCH_MESSAGE_ID: message_id,
        TWITCH_MESSAGE_TIMESTAMP: timestamp,
        TWITCH_MESSAGE_SIGNATURE: sign(secret, message_id, timestamp, body),
        TWITCH_MESSAGE_TYPE: message_type,
        "Content-Type": "application/json",
    }


def subscription_payload(
    subscription_id: str = "sub-1",
    type: str = "stream.online",
    status: str = "enabled",
    condition: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return {
        "id": subscription_id,
        "status": status,
        "type": type,
        "version": "1",
        "cost": 1,
        "condition": condition or {"broadcaster_user_id": "1337"},
        "transport": {"method": "webhook", "callback": WEBHOOK_URL},
        "created_at": "2026-10-19T12:00:00Z",
    }


async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition never became true")


@pytest.fixture
def fake_twitch() -> FakeTwitch:
    return FakeTwitch()
