import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from twitch_eventsub.models import EVENT_MODELS
from twitch_eventsub.services.helper.helper import handle_error

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], Optional[Awaitable[None]]]
DecodeErrorHook = Callable[[str, Any, Exception], None]


@dataclass(frozen=True)
class EventHandler:
    callback: EventCallback
    model: Optional[type[BaseModel]] = None

    def decode(self, event: Any) -> Any:
        if self.model is None:
            return event
        return self.model.model_validate(event)


class EventDispatcher:
    """Routes notification events to the callback registered for their type.

    Every callback runs on its own task with no ordering guarantee.
    Coroutine functions are awaited, plain functions run in a worker
    thread. Events that fail to decode are dropped and reported to
    on_decode_error when one is set.
    """

    def __init__(self, on_decode_error: Optional[DecodeErrorHook] = None) -> None:
        self._handlers: dict[str, EventHandler] = {}
        self._tasks: set[asyncio.Task] = set()
        self.on_decode_error = on_decode_error

    def on(
        self,
        type: str,
        callback: EventCallback,
        model: Optional[type[BaseModel]] = None,
    ) -> None:
        """Register the callback for a subscription type, replacing any
        previous one. Without a model the built-in shape for the type is
        used, or the raw event dict if there is none."""
        self._handlers[type] = EventHandler(callback, model or EVENT_MODELS.get(type))

    def remove(self, type: str) -> None:
        self._handlers.pop(type, None)

    def has_handler(self, type: str) -> bool:
        return type in self._handlers

    def dispatch(self, type: str, event: Any) -> bool:
        """Decode the event and schedule its callback.

        Returns True if a callback was scheduled.
        """
        handler = self._handlers.get(type)
        if handler is None:
            logger.info(f"No handler for event {type}")
            return False

        try:
            decoded = handler.decode(event)
        except ValidationError as e:
            logger.warning(f"Could not decode {type} event: {e}")
            self._report_decode_error(type, event, e)
            return False

        self.spawn(handler.callback, decoded, context=f"Error in {type} event callback")
        return True

    def spawn(self, callback: Callable[..., Any], *args: Any, context: str) -> None:
        task = asyncio.create_task(self._run(callback, args, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def join(self) -> None:
        """Wait for every callback scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(
        self, callback: Callable[..., Any], args: tuple, context: str
    ) -> None:
        try:
            if inspect.iscoroutinefunction(callback):
                await callback(*args)
            else:
                result = await asyncio.to_thread(callback, *args)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            handle_error(e, context)

    def _report_decode_error(self, type: str, event: Any, error: Exception) -> None:
        if self.on_decode_error is None:
            return
        try:
            self.on_decode_error(type, event, error)
        except Exception as e:
            handle_error(e, "Error in decode error hook")
