from .webhook import create_webhook_router, process_webhook

__all__ = ["create_webhook_router", "process_webhook"]
