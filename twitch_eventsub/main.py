import truststore

truststore.inject_into_ssl()


import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import sentry_sdk
from dotenv import load_dotenv
from fastapi import FastAPI, Response
from rich.logging import RichHandler

from twitch_eventsub import ClientConfig, Condition, EventSubClient, EventSubError
from twitch_eventsub.models import Subscription
from twitch_eventsub.services import handle_error

load_dotenv()


logging.basicConfig(
    level=logging.INFO, format="%(message)s", datefmt="[%X]", handlers=[RichHandler()]
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)


SENTRY_DSN = os.getenv("SENTRY_DSN")
TWITCH_BROADCASTER_ID = os.getenv("TWITCH_BROADCASTER_ID")

if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, traces_sample_rate=0.1)


async def log_event(event: Any) -> None:
    logger.info(f"Event: {event}")


async def log_revocation(subscription: Subscription) -> None:
    logger.warning(f"Subscription {subscription.id} revoked: {subscription.status}")


async def subscribe_to_broadcaster(client: EventSubClient, broadcaster_id: str) -> None:
    # Runs once the server is accepting requests so verifications can land
    condition = Condition(broadcaster_user_id=broadcaster_id)
    for sub_type in ("stream.online", "stream.offline"):
        try:
            await client.subscribe(sub_type, "1", condition)
        except EventSubError as e:
            handle_error(e, f"Failed to subscribe to {sub_type} for {broadcaster_id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    client: EventSubClient = app.state.client
    await client.start()
    app.state.subscribe_task = None
    if TWITCH_BROADCASTER_ID:
        app.state.subscribe_task = asyncio.create_task(
            subscribe_to_broadcaster(client, TWITCH_BROADCASTER_ID)
        )
    yield
    task: Optional[asyncio.Task] = app.state.subscribe_task
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await client.close()


def create_app(client: EventSubClient) -> FastAPI:
    app = FastAPI(lifespan=lifespan)
    app.state.client = client
    app.include_router(client.router())

    @app.get("/")
    @app.get("/health")
    async def root_or_health() -> Response:
        return Response(status_code=204)

    return app


def build_client() -> EventSubClient:
    client = EventSubClient(ClientConfig.from_env())
    client.on("stream.online", log_event)
    client.on("stream.offline", log_event)
    client.on_revocation = log_revocation
    return client


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(build_client()),
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
        access_log=True,
        log_config=None,
    )
