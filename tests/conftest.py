"""Shared pytest fixtures for the YourTranslator test suite.

Provides:
  - mock_llm: Mock LLMProvider returning configurable responses
  - FakeProfileStore: in-memory ProfileStore with failure injection
  - make_router: ConversationRouter wired to the fakes above

All external service calls are faked in every test; no network, no Redis,
no PostgreSQL.
"""

from __future__ import annotations

from typing import Any

import pytest

from yourtranslator.core.exceptions import ProfileNotFoundError, StoreUnavailableError
from yourtranslator.schemas.profile import ProfilePatch, UserProfile
from yourtranslator.services.conversation.locks import UserLockManager
from yourtranslator.services.conversation.router import ConversationRouter
from yourtranslator.services.llm.base import LLMProvider, LLMResponse, ResponseFormat
from yourtranslator.services.llm.client import GenerationClient
from yourtranslator.services.profile.store import ProfileStore


# ---------------------------------------------------------------------------
# Mock LLM Provider
# ---------------------------------------------------------------------------


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing.

    Replies are taken from ``responses`` in order; once exhausted every call
    returns ``generate_text``. When ``error`` is set every call raises it.
    """

    def __init__(
        self,
        generate_text: str = "Mock response",
        responses: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._generate_text = generate_text
        self._responses = list(responses or [])
        self.error = error
        self.generate_calls: list[dict[str, Any]] = []

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        response_format: ResponseFormat = "text",
    ) -> LLMResponse:
        self.generate_calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "response_format": response_format,
            }
        )
        if self.error is not None:
            raise self.error
        text = self._responses.pop(0) if self._responses else self._generate_text
        return LLMResponse(text=text, input_tokens=50, output_tokens=10)


# ---------------------------------------------------------------------------
# Fake Profile Store
# ---------------------------------------------------------------------------


class FakeProfileStore(ProfileStore):
    """In-memory ProfileStore. Set ``fail_reads``/``fail_writes`` to simulate outages."""

    def __init__(self) -> None:
        self.profiles: dict[str, UserProfile] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.update_calls: list[tuple[str, dict[str, Any]]] = []

    def seed(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.user_id] = profile
        return profile

    async def get_or_create(self, user_id: str) -> UserProfile:
        if self.fail_reads:
            raise StoreUnavailableError("simulated read outage")
        if user_id not in self.profiles:
            self.profiles[user_id] = UserProfile.defaults(user_id)
        return self.profiles[user_id]

    async def update(self, user_id: str, patch: ProfilePatch) -> UserProfile:
        if self.fail_writes:
            raise StoreUnavailableError("simulated write outage")
        if user_id not in self.profiles:
            raise ProfileNotFoundError(f"No profile for user {user_id}")
        changes = patch.changes()
        self.update_calls.append((user_id, changes))
        updated = self.profiles[user_id].model_copy(update=changes)
        self.profiles[user_id] = updated
        return updated


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    """Mock LLM provider fixture."""
    return MockLLMProvider()


@pytest.fixture
def profile_store() -> FakeProfileStore:
    """In-memory profile store fixture."""
    return FakeProfileStore()


@pytest.fixture
def sample_user_id() -> str:
    """LINE-style user id for testing."""
    return "U0123456789abcdef0123456789abcdef"


@pytest.fixture
def make_router(profile_store: FakeProfileStore):
    """Factory building a ConversationRouter around a given mock LLM."""

    def _make(
        llm: LLMProvider,
        failure_policy: str = "degrade",
        locks: UserLockManager | None = None,
    ) -> ConversationRouter:
        return ConversationRouter(
            store=profile_store,
            generation=GenerationClient(llm),
            locks=locks or UserLockManager(timeout_seconds=5.0),
            failure_policy=failure_policy,
        )

    return _make
