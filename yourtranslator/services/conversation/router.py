"""Conversation state machine: decides what to do with each message.

Every decision is a function of (message text, stored profile). The router
keeps no state between calls; the last forward pair
(last_source_text, last_generated_output) and the last reverse pair live in
the profile store and are always written together in one update.

Turn flow:
  parse_command → lock user → load profile → handler → persist → replies

Failures never escape ``handle``: they become a user-visible message and
the profile is left as it was before the turn.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Literal

import structlog

from yourtranslator.core.exceptions import (
    GenerationError,
    ProfileNotFoundError,
    StoreConflictError,
    StoreUnavailableError,
    UserLockTimeoutError,
)
from yourtranslator.schemas.generation import ReverseResult, UpgradeSuggestion
from yourtranslator.schemas.messages import OutboundMessage
from yourtranslator.schemas.profile import Mode, ProfilePatch, UserProfile
from yourtranslator.services.conversation import formatter
from yourtranslator.services.conversation.commands import (
    AcceptOutput,
    ChangeTone,
    ForcedTranslation,
    FreeText,
    InvalidSetting,
    Navigate,
    Navigation,
    OpenMenu,
    SetLevel,
    SetStyleVariant,
    SetToneDefault,
    SetUsageScene,
    parse_command,
    resolve_tone,
)
from yourtranslator.services.conversation.locks import UserLockManager
from yourtranslator.services.conversation.prompts import (
    build_forward_prompt,
    build_reverse_prompt,
    build_upgrade_prompt,
)
from yourtranslator.services.language.detector import LanguageClass, detect
from yourtranslator.services.llm.client import GenerationClient, ParseFailure
from yourtranslator.services.profile.store import ProfileStore

logger = structlog.get_logger(__name__)

Handler = Callable[[UserProfile, Any], Awaitable[list[OutboundMessage]]]
FailurePolicy = Literal["degrade", "fail"]


class ConversationRouter:
    """Routes one inbound text message to exactly one handler."""

    def __init__(
        self,
        store: ProfileStore,
        generation: GenerationClient,
        locks: UserLockManager,
        failure_policy: FailurePolicy = "degrade",
    ) -> None:
        self._store = store
        self._generation = generation
        self._locks = locks
        self._failure_policy = failure_policy
        self._handlers: dict[type, Handler] = {
            ForcedTranslation: self._handle_forced_translation,
            Navigate: self._handle_navigate,
            OpenMenu: self._handle_open_menu,
            SetLevel: self._handle_set_level,
            SetUsageScene: self._handle_set_usage_scene,
            SetToneDefault: self._handle_set_tone_default,
            SetStyleVariant: self._handle_set_style_variant,
            InvalidSetting: self._handle_invalid_setting,
            ChangeTone: self._handle_change_tone,
            AcceptOutput: self._handle_accept,
            FreeText: self._handle_free_text,
        }

    async def handle(self, user_id: str, text: str) -> list[OutboundMessage]:
        """Process one message and return the replies, in send order."""
        command = parse_command(text.strip())
        command_name = type(command).__name__
        try:
            async with self._locks.acquire(user_id):
                profile = await self._load_profile(user_id)
                messages = await self._handlers[type(command)](profile, command)
        except UserLockTimeoutError:
            logger.warning("conversation_user_busy", user_id=user_id, command=command_name)
            return [formatter.busy_message()]
        except GenerationError as e:
            logger.warning(
                "conversation_generation_failed",
                user_id=user_id,
                command=command_name,
                error=str(e),
            )
            return [formatter.generation_failed_message()]
        except (StoreUnavailableError, StoreConflictError, ProfileNotFoundError) as e:
            logger.error(
                "conversation_store_failed",
                user_id=user_id,
                command=command_name,
                error_code=e.code,
                error=str(e),
            )
            return [formatter.store_failed_message()]
        except Exception as e:
            logger.error(
                "conversation_turn_crashed",
                user_id=user_id,
                command=command_name,
                error=str(e),
                exc_info=True,
            )
            return [formatter.unexpected_error_message()]

        logger.info(
            "conversation_turn_complete",
            user_id=user_id,
            command=command_name,
            message_count=len(messages),
        )
        return messages

    async def _load_profile(self, user_id: str) -> UserProfile:
        try:
            return await self._store.get_or_create(user_id)
        except (StoreUnavailableError, StoreConflictError) as e:
            if self._failure_policy != "degrade":
                raise
            logger.warning("profile_degraded_to_defaults", user_id=user_id, error=str(e))
            return UserProfile.defaults(user_id)

    # ── Navigation and settings ─────────────────────────────────────

    async def _handle_navigate(
        self, profile: UserProfile, command: Navigate
    ) -> list[OutboundMessage]:
        if command.target == Navigation.HOME:
            return [formatter.home_message(profile)]
        if command.target == Navigation.USAGE_GUIDE:
            return [formatter.usage_guide_message()]
        return [formatter.help_message()]

    async def _handle_open_menu(
        self, profile: UserProfile, command: OpenMenu
    ) -> list[OutboundMessage]:
        return [formatter.menu_message(command.menu)]

    async def _handle_invalid_setting(
        self, profile: UserProfile, command: InvalidSetting
    ) -> list[OutboundMessage]:
        logger.info("setting_value_rejected", user_id=profile.user_id, menu=command.menu.value)
        return [formatter.invalid_setting_message(command.menu)]

    async def _handle_set_level(
        self, profile: UserProfile, command: SetLevel
    ) -> list[OutboundMessage]:
        updated = await self._store.update(
            profile.user_id,
            ProfilePatch(level_scheme=command.scheme, level_value=command.value),
        )
        return [formatter.level_set_message(updated)]

    async def _handle_set_usage_scene(
        self, profile: UserProfile, command: SetUsageScene
    ) -> list[OutboundMessage]:
        updated = await self._store.update(
            profile.user_id, ProfilePatch(usage_scene=command.scene)
        )
        return [formatter.usage_scene_set_message(updated)]

    async def _handle_set_tone_default(
        self, profile: UserProfile, command: SetToneDefault
    ) -> list[OutboundMessage]:
        updated = await self._store.update(
            profile.user_id, ProfilePatch(tone_default=command.tone)
        )
        return [formatter.tone_default_set_message(updated)]

    async def _handle_set_style_variant(
        self, profile: UserProfile, command: SetStyleVariant
    ) -> list[OutboundMessage]:
        updated = await self._store.update(
            profile.user_id, ProfilePatch(style_variant=command.style)
        )
        return [formatter.style_set_message(updated)]

    # ── Follow-ups on the last artifact ─────────────────────────────

    async def _handle_change_tone(
        self, profile: UserProfile, command: ChangeTone
    ) -> list[OutboundMessage]:
        source = profile.last_source_text
        if not source:
            return [formatter.tone_change_guidance_message()]

        tone = resolve_tone(command.label, profile.tone_default)
        english = await self._generation.generate(
            build_forward_prompt(profile, source, tone_override=tone)
        )
        await self._store.update(
            profile.user_id,
            ProfilePatch(
                last_source_text=source,
                last_generated_output=english,
                last_mode=Mode.JA_TO_EN,
            ),
        )
        logger.debug("tone_changed", user_id=profile.user_id, tone=tone.value)
        return [formatter.forward_result_message(english)]

    async def _handle_accept(
        self, profile: UserProfile, command: AcceptOutput
    ) -> list[OutboundMessage]:
        english = profile.last_generated_output
        if not english:
            return [formatter.accept_guidance_message()]

        copy_message = formatter.copy_ready_message(english)
        try:
            result = await self._generation.generate_structured(
                build_upgrade_prompt(profile, english), UpgradeSuggestion
            )
        except GenerationError as e:
            logger.warning("upgrade_lesson_failed", user_id=profile.user_id, error=str(e))
            return [copy_message, formatter.lesson_unavailable_message()]

        if isinstance(result, ParseFailure):
            return [copy_message, formatter.lesson_unavailable_message()]
        return [copy_message, formatter.lesson_message(result.value)]

    # ── Free text ───────────────────────────────────────────────────

    async def _handle_forced_translation(
        self, profile: UserProfile, command: ForcedTranslation
    ) -> list[OutboundMessage]:
        if not command.text:
            return [formatter.empty_forced_text_message()]
        if command.mode == Mode.JA_TO_EN:
            return await self._forward(profile, command.text)
        return await self._reverse(profile, command.text)

    async def _handle_free_text(
        self, profile: UserProfile, command: FreeText
    ) -> list[OutboundMessage]:
        language = detect(command.text)
        logger.debug("language_detected", user_id=profile.user_id, language=language.value)

        if language == LanguageClass.SOURCE:
            return await self._forward(profile, command.text)
        if language == LanguageClass.TARGET_LIKE:
            return await self._reverse(profile, command.text)
        if language == LanguageClass.MIXED:
            return [formatter.mixed_message(command.text)]
        return [formatter.unsupported_language_message()]

    async def _forward(self, profile: UserProfile, text: str) -> list[OutboundMessage]:
        """Japanese → English; remembers the pair for tone change and accept."""
        english = await self._generation.generate(build_forward_prompt(profile, text))
        await self._store.update(
            profile.user_id,
            ProfilePatch(
                last_source_text=text,
                last_generated_output=english,
                last_mode=Mode.JA_TO_EN,
            ),
        )
        return [formatter.forward_result_message(english)]

    async def _reverse(self, profile: UserProfile, text: str) -> list[OutboundMessage]:
        """English → Japanese with glossary.

        A plain-text reply that is not JSON at all is shown as the translation.
        JSON of the wrong shape is never shown: its translation field is used
        when present, otherwise the turn fails with the apology.
        """
        result = await self._generation.generate_structured(
            build_reverse_prompt(profile, text), ReverseResult
        )
        if isinstance(result, ParseFailure):
            translation, glossary = _salvage_translation(result.raw), []
        else:
            translation, glossary = result.value.translation, result.value.glossary
        if not translation.strip():
            raise GenerationError("Reverse translation came back empty")

        await self._store.update(
            profile.user_id,
            ProfilePatch(
                last_reverse_source_text=text,
                last_reverse_output=translation,
                last_mode=Mode.EN_TO_JA,
            ),
        )
        return [formatter.reverse_result_message(translation, glossary)]


def _salvage_translation(raw: str) -> str:
    """Best-effort translation text from a reply that failed validation."""
    try:
        decoded = json.loads(raw)
    except ValueError:
        return raw
    if not isinstance(decoded, (dict, list)):
        return raw
    if isinstance(decoded, dict):
        for key in ("translation", "ja"):
            value = decoded.get(key)
            if isinstance(value, str) and value.strip():
                logger.info("reverse_translation_salvaged", key=key)
                return value
    raise GenerationError("Reverse reply was JSON without a usable translation")
