"""User profile store: get-or-create and partial update by LINE user id.

The conversation router only sees the ``ProfileStore`` interface.
``SqlProfileStore`` is the PostgreSQL implementation; it opens one short
session per operation so concurrent events never share a session.
Uniqueness of ``line_user_id`` is enforced by the database: a lost insert
race is resolved by re-reading the winner's row.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from yourtranslator.core.exceptions import (
    ProfileNotFoundError,
    StoreConflictError,
    StoreUnavailableError,
)
from yourtranslator.models.user import User
from yourtranslator.schemas.profile import (
    LevelScheme,
    Mode,
    ProfilePatch,
    StyleVariant,
    Tone,
    UsageScene,
    UserProfile,
)

logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=Enum)

# Domain field → users table column.
_COLUMNS: dict[str, str] = {
    "level_scheme": "level_type",
    "level_value": "level_value",
    "usage_scene": "usage_default",
    "tone_default": "tone_default",
    "style_variant": "english_style",
    "last_source_text": "last_source_ja",
    "last_generated_output": "last_output_en",
    "last_reverse_source_text": "last_source_en",
    "last_reverse_output": "last_output_ja",
    "last_mode": "last_mode",
}


class ProfileStore(ABC):
    """Abstract per-user profile persistence."""

    @abstractmethod
    async def get_or_create(self, user_id: str) -> UserProfile:
        """Return the profile for ``user_id``, creating it with defaults.

        Raises:
            StoreUnavailableError: If the backing store cannot be reached.
        """
        ...

    @abstractmethod
    async def update(self, user_id: str, patch: ProfilePatch) -> UserProfile:
        """Write the fields set on ``patch`` in one unit and return the result.

        Raises:
            StoreUnavailableError: If the backing store cannot be reached.
            ProfileNotFoundError: If no profile exists for ``user_id``.
        """
        ...


def _coerce(enum_cls: type[E], raw: str | None, default: E | None) -> E | None:
    """Read a stored enum value, tolerating legacy upper-case values."""
    if raw is None:
        return default
    try:
        return enum_cls(raw.lower())
    except ValueError:
        logger.warning("profile_unknown_enum_value", field=enum_cls.__name__, value=raw)
        return default


class SqlProfileStore(ProfileStore):
    """SQLAlchemy async implementation backed by the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _to_domain(model: User) -> UserProfile:
        return UserProfile(
            user_id=model.line_user_id,
            level_scheme=_coerce(LevelScheme, model.level_type, LevelScheme.EIKEN),
            level_value=model.level_value,
            usage_scene=_coerce(UsageScene, model.usage_default, UsageScene.CHAT_FRIEND),
            tone_default=_coerce(Tone, model.tone_default, Tone.POLITE),
            style_variant=_coerce(StyleVariant, model.english_style, StyleVariant.NEUTRAL),
            last_source_text=model.last_source_ja,
            last_generated_output=model.last_output_en,
            last_reverse_source_text=model.last_source_en,
            last_reverse_output=model.last_output_ja,
            last_mode=_coerce(Mode, model.last_mode, None),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    async def _select(session: AsyncSession, user_id: str) -> User | None:
        result = await session.execute(
            select(User).where(User.line_user_id == user_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def _insert(self, session: AsyncSession, user_id: str) -> User:
        defaults = UserProfile.defaults(user_id)
        model = User(
            line_user_id=user_id,
            level_type=defaults.level_scheme.value,
            level_value=defaults.level_value,
            usage_default=defaults.usage_scene.value,
            tone_default=defaults.tone_default.value,
            english_style=defaults.style_variant.value,
            created_at=defaults.created_at,
            updated_at=defaults.updated_at,
        )
        session.add(model)
        try:
            await session.commit()
        except IntegrityError:
            # Another event for the same user inserted first.
            await session.rollback()
            logger.info("user_insert_race_lost", user_id=user_id)
            existing = await self._select(session, user_id)
            if existing is None:
                raise StoreConflictError(
                    f"User {user_id} conflicted on insert but could not be read back"
                )
            return existing
        logger.info("user_created", user_id=user_id)
        return model

    async def get_or_create(self, user_id: str) -> UserProfile:
        try:
            async with self._session_factory() as session:
                model = await self._select(session, user_id)
                if model is None:
                    model = await self._insert(session, user_id)
                return self._to_domain(model)
        except SQLAlchemyError as e:
            logger.error("profile_get_or_create_failed", user_id=user_id, error=str(e))
            raise StoreUnavailableError(f"Profile read failed: {e}") from e

    async def update(self, user_id: str, patch: ProfilePatch) -> UserProfile:
        changes = patch.changes()
        try:
            async with self._session_factory() as session:
                model = await self._select(session, user_id)
                if model is None:
                    raise ProfileNotFoundError(f"No profile for user {user_id}")
                for field, value in changes.items():
                    if isinstance(value, Enum):
                        value = value.value
                    setattr(model, _COLUMNS[field], value)
                model.updated_at = datetime.now(timezone.utc)
                await session.commit()
                logger.debug(
                    "profile_updated", user_id=user_id, fields=sorted(changes)
                )
                return self._to_domain(model)
        except SQLAlchemyError as e:
            logger.error("profile_update_failed", user_id=user_id, error=str(e))
            raise StoreUnavailableError(f"Profile update failed: {e}") from e
