"""Shared FastAPI dependencies.

Long-lived services (LLM provider, conversation router, LINE client,
event dispatcher) are created once during the FastAPI lifespan and stored
on app.state. Request handlers retrieve them via Depends(), never by
direct import.
"""

from fastapi import Request

from yourtranslator.core.config import settings
from yourtranslator.services.line.dispatcher import EventDispatcher


def get_channel_secret() -> str:
    """LINE channel secret used to verify webhook signatures."""
    return settings.line_channel_secret


def get_event_dispatcher(request: Request) -> EventDispatcher:
    """Return the singleton EventDispatcher from app state."""
    return request.app.state.event_dispatcher
