import logging
import traceback

import sentry_sdk

from twitch_eventsub.constants import ErrorDetails

logger = logging.getLogger(__name__)


def get_error_details(e: BaseException) -> ErrorDetails:
    return {
        "type": type(e).__name__,
        "message": str(e),
        "args": e.args,
        "traceback": "".join(
            traceback.format_exception(type(e), e, e.__traceback__)
        ),
    }


def handle_error(e: BaseException, context: str) -> None:
    """Log an error raised off the request path and report it to Sentry."""
    error_details = get_error_details(e)
    error_msg = f"{context} - Type: {error_details['type']}, Message: {error_details['message']}, Args: {error_details['args']}"
    logger.error(f"{error_msg}\nTraceback:\n{error_details['traceback']}")
    sentry_sdk.capture_exception(e)
