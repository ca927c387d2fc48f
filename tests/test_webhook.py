"""End to end tests for the EventSub webhook endpoint."""

import asyncio
import json

import httpx
import pytest
from fastapi import FastAPI

from tests.conftest import (
    FakeTwitch,
    make_config,
    signed_headers,
    subscription_payload,
    wait_until,
)
from twitch_eventsub import EventSubClient, VerificationTimeoutError
from twitch_eventsub.constants import TWITCH_MESSAGE_SIGNATURE
from twitch_eventsub.models.twitch_event_subs import StreamOnlineEvent

WEBHOOK_PATH = "/webhook/twitch"

STREAM_ONLINE = {
    "id": "9001",
    "broadcaster_user_id": "1337",
    "broadcaster_user_login": "cool_user",
    "broadcaster_user_name": "Cool_User",
    "type": "live",
    "started_at": "2026-10-19T12:00:00Z",
}


def _setup(fake: FakeTwitch, **overrides) -> tuple[EventSubClient, httpx.AsyncClient]:
    fake.valid_tokens.add("token-ext")
    config = make_config(
        client_secret="", token="token-ext", external_token=True, **overrides
    )
    client = EventSubClient(config, transport=fake.transport)
    app = FastAPI()
    app.include_router(client.router())
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    return client, http


def _notification(message_id: str = "m1") -> tuple[bytes, dict[str, str]]:
    body = json.dumps(
        {"subscription": subscription_payload(), "event": STREAM_ONLINE}
    ).encode()
    return body, signed_headers(body, "notification", message_id=message_id)


def _verification(subscription_id: str, challenge: str) -> tuple[bytes, dict[str, str]]:
    body = json.dumps(
        {
            "challenge": challenge,
            "subscription": subscription_payload(
                subscription_id, status="webhook_callback_verification_pending"
            ),
        }
    ).encode()
    return body, signed_headers(
        body, "webhook_callback_verification", message_id=f"v-{subscription_id}"
    )


class TestVerification:
    @pytest.mark.asyncio
    async def test_challenge_echoed_and_subscribe_released(self, fake_twitch):
        client, http = _setup(fake_twitch)
        async with http:
            task = asyncio.create_task(
                client.subscribe("stream.online", "1", {"broadcaster_user_id": "1337"})
            )
            await wait_until(lambda: client.handshake.pending_count == 1)

            body, headers = _verification("sub-1", "abc123")
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)

            assert response.status_code == 200
            assert response.text == "abc123"
            assert response.headers["content-type"].startswith("text/plain")
            subscription = await task
            assert subscription.id == "sub-1"
        await client.close()

    @pytest.mark.asyncio
    async def test_minimal_verification_body(self, fake_twitch):
        client, http = _setup(fake_twitch)
        async with http:
            task = asyncio.create_task(
                client.subscribe("stream.online", "1", {"broadcaster_user_id": "1337"})
            )
            await wait_until(lambda: client.handshake.pending_count == 1)

            body = b'{"challenge":"abc123","subscription":{"id":"sub-1"}}'
            headers = signed_headers(body, "webhook_callback_verification")
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)

            assert response.status_code == 200
            assert response.text == "abc123"
            assert (await task).id == "sub-1"
        await client.close()

    @pytest.mark.asyncio
    async def test_late_verification_still_answered(self, fake_twitch):
        client, http = _setup(fake_twitch, verification_timeout=0.05)
        async with http:
            with pytest.raises(VerificationTimeoutError):
                await client.subscribe("stream.online", "1", {"broadcaster_user_id": "1337"})

            body, headers = _verification("sub-1", "late-challenge")
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)

            assert response.status_code == 200
            assert response.text == "late-challenge"
        await client.close()

    @pytest.mark.asyncio
    async def test_verification_is_not_recorded_in_ledger(self, fake_twitch):
        client, http = _setup(fake_twitch)
        async with http:
            body, headers = _verification("sub-9", "abc")
            await http.post(WEBHOOK_PATH, content=body, headers=headers)
        assert len(client.ledger) == 0
        await client.close()


class TestSignature:
    @pytest.mark.asyncio
    async def test_bad_signature_rejected(self, fake_twitch):
        client, http = _setup(fake_twitch)
        received = []

        async def callback(event):
            received.append(event)

        client.on("stream.online", callback)
        body, headers = _notification()
        headers[TWITCH_MESSAGE_SIGNATURE] = "sha256=" + "0" * 64
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        await client.dispatcher.join()

        assert response.status_code == 403
        assert response.content == b""
        assert received == []
        assert len(client.ledger) == 0
        await client.close()

    @pytest.mark.asyncio
    async def test_wrong_secret_rejected(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body = json.dumps({"subscription": subscription_payload(), "event": STREAM_ONLINE}).encode()
        headers = signed_headers(body, "notification", secret="someoneelsessecret")
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        assert response.status_code == 403
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_headers_rejected(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body, _ = _notification()
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body)
        assert response.status_code == 403
        await client.close()


class TestNotification:
    @pytest.mark.asyncio
    async def test_dispatched_once(self, fake_twitch):
        client, http = _setup(fake_twitch)
        received = []

        @client.on("stream.online")
        async def stream_online(event):
            received.append(event)

        body, headers = _notification("m1")
        async with http:
            first = await http.post(WEBHOOK_PATH, content=body, headers=headers)
            replay = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        await client.dispatcher.join()

        assert first.status_code == 204
        assert replay.status_code == 204
        assert len(received) == 1
        assert isinstance(received[0], StreamOnlineEvent)
        assert received[0].broadcaster_user_id == "1337"
        await client.close()

    @pytest.mark.asyncio
    async def test_distinct_ids_both_dispatched(self, fake_twitch):
        client, http = _setup(fake_twitch)
        received = []
        client.on("stream.online", lambda event: received.append(event))

        async with http:
            for message_id in ("m1", "m2"):
                body, headers = _notification(message_id)
                await http.post(WEBHOOK_PATH, content=body, headers=headers)
        await client.dispatcher.join()

        assert len(received) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_without_handler_acknowledged(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body, headers = _notification()
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        assert response.status_code == 204
        await client.close()

    @pytest.mark.asyncio
    async def test_undecodable_event_reported(self, fake_twitch):
        client, http = _setup(fake_twitch)
        errors = []
        client.on("stream.online", lambda event: None)
        client.on_decode_error = lambda type, event, exc: errors.append(type)

        body = json.dumps(
            {"subscription": subscription_payload(), "event": {"id": "9001"}}
        ).encode()
        headers = signed_headers(body, "notification")
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)

        assert response.status_code == 204
        assert errors == ["stream.online"]
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_body_is_server_error(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body = b"{not json"
        headers = signed_headers(body, "notification")
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        assert response.status_code == 500
        assert response.content == b""
        await client.close()


class TestRevocation:
    @pytest.mark.asyncio
    async def test_callback_gets_reason(self, fake_twitch):
        client, http = _setup(fake_twitch)
        revoked = []

        async def on_revocation(subscription):
            revoked.append(subscription)

        client.on_revocation = on_revocation
        body = json.dumps(
            {"subscription": subscription_payload(status="authorization_revoked")}
        ).encode()
        headers = signed_headers(body, "revocation")
        async with http:
            response = await http.post(WEBHOOK_PATH, content=body, headers=headers)
        await client.dispatcher.join()

        assert response.status_code == 204
        assert len(revoked) == 1
        assert revoked[0].id == "sub-1"
        assert revoked[0].status == "authorization_revoked"
        await client.close()

    @pytest.mark.asyncio
    async def test_without_callback(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body = json.dumps(
            {"subscription": subscription_payload(status="user_removed")}
        ).encode()
        async with http:
            response = await http.post(
                WEBHOOK_PATH, content=body, headers=signed_headers(body, "revocation")
            )
        assert response.status_code == 204
        await client.close()


class TestUnknownType:
    @pytest.mark.asyncio
    async def test_acknowledged(self, fake_twitch):
        client, http = _setup(fake_twitch)
        body = json.dumps({"subscription": subscription_payload()}).encode()
        async with http:
            response = await http.post(
                WEBHOOK_PATH, content=body, headers=signed_headers(body, "mystery")
            )
        assert response.status_code == 204
        await client.close()
