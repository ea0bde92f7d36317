"""FastAPI application entrypoint.

All routes prefixed /v1. The LINE platform posts webhook batches to
/v1/line/webhook.

The LLM provider (OpenAI primary, Gemini fallback when a key is configured),
the conversation router and the LINE client are created once during the
lifespan and stored on app.state for injection via Depends().
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from yourtranslator.api.v1.health import router as health_router
from yourtranslator.api.v1.webhook import router as webhook_router
from yourtranslator.core.config import settings
from yourtranslator.core.exceptions import TranslatorError
from yourtranslator.db.postgres import async_session_factory, close_postgres
from yourtranslator.db.redis import close_redis, get_redis
from yourtranslator.services.conversation.locks import UserLockManager
from yourtranslator.services.conversation.router import ConversationRouter
from yourtranslator.services.line.client import LineMessagingClient
from yourtranslator.services.line.dispatcher import EventDispatcher
from yourtranslator.services.llm.base import LLMProvider
from yourtranslator.services.llm.client import GenerationClient
from yourtranslator.services.llm.fallback import FallbackLLMProvider
from yourtranslator.services.llm.gemini import GeminiProvider
from yourtranslator.services.llm.openai_provider import OpenAIProvider
from yourtranslator.services.profile.store import SqlProfileStore


def _configure_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


_configure_logging()

logger = structlog.get_logger(__name__)


def _build_llm_provider() -> LLMProvider:
    primary = OpenAIProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.generation_timeout_seconds,
    )
    if not settings.gemini_api_key:
        return primary
    gemini = GeminiProvider(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout_seconds=settings.generation_timeout_seconds,
    )
    return FallbackLLMProvider(primary=primary, secondary=gemini)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    # --- Startup ---
    logger.info(
        "app_startup",
        env=settings.app_env,
        redis_enabled=bool(settings.redis_url),
        failure_policy=settings.profile_store_failure_policy,
    )

    app.state.llm_provider = _build_llm_provider()
    router = ConversationRouter(
        store=SqlProfileStore(async_session_factory),
        generation=GenerationClient(app.state.llm_provider),
        locks=UserLockManager(
            redis=get_redis(),
            ttl_seconds=settings.user_lock_ttl_seconds,
            timeout_seconds=settings.user_lock_timeout_seconds,
        ),
        failure_policy=settings.profile_store_failure_policy,
    )
    line_client = LineMessagingClient(
        access_token=settings.line_channel_access_token,
        base_url=settings.line_api_base_url,
    )
    app.state.line_client = line_client
    app.state.event_dispatcher = EventDispatcher(router=router, line=line_client)

    logger.info("app_providers_ready")
    yield

    # --- Shutdown ---
    logger.info("app_shutdown")

    await line_client.aclose()
    await close_redis()
    await close_postgres()


app = FastAPI(
    title="YourTranslator: LINE Translation Bot",
    description="Japanese ↔ English translation assistant for LINE.",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(TranslatorError)
async def translator_error_handler(request: Request, exc: TranslatorError) -> JSONResponse:
    """Structured error response for all YourTranslator exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


# Mount all v1 routers
app.include_router(health_router, prefix="/v1")
app.include_router(webhook_router, prefix="/v1")
