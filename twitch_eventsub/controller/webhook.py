import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response

from twitch_eventsub.constants import (
    DEFAULT_WEBHOOK_PATH,
    TWITCH_MESSAGE_ID,
    TWITCH_MESSAGE_SIGNATURE,
    TWITCH_MESSAGE_TIMESTAMP,
    TWITCH_MESSAGE_TYPE,
    MessageType,
)
from twitch_eventsub.errors import SignatureRejectedError
from twitch_eventsub.models import WebhookPayload
from twitch_eventsub.services import handle_error, verify_signature

if TYPE_CHECKING:
    from twitch_eventsub.client import EventSubClient

logger = logging.getLogger(__name__)


async def validate_call(client: "EventSubClient", request: Request) -> bytes:
    """Read the body and check its signature. Nothing in an unverified
    request may be trusted, so the body is never logged here."""
    body = await request.body()
    headers = request.headers
    if not verify_signature(
        headers.get(TWITCH_MESSAGE_ID),
        headers.get(TWITCH_MESSAGE_TIMESTAMP),
        body,
        client.webhook_secret,
        headers.get(TWITCH_MESSAGE_SIGNATURE),
    ):
        raise SignatureRejectedError()
    return body


def _handle_notification(
    client: "EventSubClient", message_id: str, payload: WebhookPayload
) -> Response:
    subscription_type = payload.subscription.type
    if client.ledger.seen(message_id):
        logger.info(f"Got duplicate delivery {message_id} for {subscription_type}, ignoring...")
        return Response(status_code=204)

    logger.info(f"Received event for {subscription_type}")
    client.dispatcher.dispatch(subscription_type, payload.event)
    return Response(status_code=204)


def _handle_verification(client: "EventSubClient", payload: WebhookPayload) -> Response:
    logger.info(f"Got challenge request for {payload.subscription.id}")
    client.handshake.confirm(payload.subscription.id)
    # Twitch only activates the subscription if the challenge comes back verbatim
    return Response(payload.challenge or "", status_code=200, media_type="text/plain")


def _handle_revocation(client: "EventSubClient", payload: WebhookPayload) -> Response:
    subscription = payload.subscription
    logger.warning(
        f"Twitch revoked subscription {subscription.id} ({subscription.type}) because {subscription.status}"
    )
    if client.on_revocation is not None:
        client.dispatcher.spawn(
            client.on_revocation, subscription, context="Error in revocation callback"
        )
    return Response(status_code=204)


async def process_webhook(client: "EventSubClient", request: Request) -> Response:
    try:
        body = await validate_call(client, request)
        payload = WebhookPayload.model_validate_json(body)

        message_type = request.headers.get(TWITCH_MESSAGE_TYPE, "").lower()
        if message_type == MessageType.Notification.value:
            return _handle_notification(
                client, request.headers.get(TWITCH_MESSAGE_ID, ""), payload
            )
        if message_type == MessageType.Verification.value:
            return _handle_verification(client, payload)
        if message_type == MessageType.Revocation.value:
            return _handle_revocation(client, payload)

        logger.warning(f"Unknown message type {message_type!r}, ignoring")
        return Response(status_code=204)
    except SignatureRejectedError:
        logger.warning("403: Forbidden. Signature does not match.")
        return Response(status_code=403)
    except Exception as e:
        handle_error(e, "500: Internal server error on EventSub webhook")
        return Response(status_code=500)


def create_webhook_router(
    client: "EventSubClient", path: str = DEFAULT_WEBHOOK_PATH
) -> APIRouter:
    """Router with the single endpoint Twitch delivers EventSub messages to.

    Mount it at the path the subscriptions' callback URL points at.
    """
    router = APIRouter()

    @router.post(path)
    async def eventsub_webhook(request: Request) -> Response:
        return await process_webhook(client, request)

    return router
