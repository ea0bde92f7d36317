"""Integration tests for ConversationRouter: full turns against fakes.

Tests cover:
  - Dispatch precedence scenarios (help, forward, tone change, mixed, reverse)
  - Guard clauses on fresh profiles (no backend calls, no writes)
  - Accept flow with lesson, parse failure and backend failure
  - Settings menus and leaves
  - Store failures under the degrade and fail policies
  - Busy user, unexpected errors, concurrent turns for one user
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from tests.conftest import FakeProfileStore, MockLLMProvider
from yourtranslator.schemas.profile import LevelScheme, Mode, Tone, UserProfile
from yourtranslator.services.conversation import formatter
from yourtranslator.services.conversation.commands import Menu
from yourtranslator.services.conversation.locks import UserLockManager
from yourtranslator.services.llm.base import LLMProvider, LLMResponse

USER = "U-router-test"
FORWARD_SOURCE = "明日のミーティングをリスケしたいです。"


class EchoLLMProvider(LLMProvider):
    """Returns 'EN:<last prompt line>' after yielding to the event loop."""

    def __init__(self) -> None:
        self.generate_calls: list[str] = []

    async def generate(self, prompt, system_prompt, max_tokens=1000, temperature=0.3, response_format="text"):
        self.generate_calls.append(prompt)
        await asyncio.sleep(0.01)
        return LLMResponse(text="EN:" + prompt.splitlines()[-1])


class TestDispatchScenarios:
    @pytest.mark.asyncio
    async def test_help_makes_no_generation_call(self, make_router) -> None:
        llm = MockLLMProvider()
        messages = await make_router(llm).handle(USER, "ヘルプ")

        assert messages == [formatter.help_message()]
        assert llm.generate_calls == []

    @pytest.mark.asyncio
    async def test_japanese_text_runs_forward_once(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider("I'd like to reschedule tomorrow's meeting.")
        messages = await make_router(llm).handle(USER, FORWARD_SOURCE)

        assert len(llm.generate_calls) == 1
        assert messages == [
            formatter.forward_result_message("I'd like to reschedule tomorrow's meeting.")
        ]
        profile = profile_store.profiles[USER]
        assert profile.last_source_text == FORWARD_SOURCE
        assert profile.last_generated_output == "I'd like to reschedule tomorrow's meeting."
        assert profile.last_mode == Mode.JA_TO_EN

    @pytest.mark.asyncio
    async def test_input_is_trimmed(self, make_router, profile_store: FakeProfileStore) -> None:
        llm = MockLLMProvider("Hello.")
        await make_router(llm).handle(USER, "  こんにちは \n")
        assert profile_store.profiles[USER].last_source_text == "こんにちは"

    @pytest.mark.asyncio
    async def test_tone_change_regenerates_from_stored_source(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider(
            responses=[
                "I'd like to reschedule tomorrow's meeting.",
                "Can we move tomorrow's meeting?",
            ]
        )
        router = make_router(llm)
        await router.handle(USER, FORWARD_SOURCE)
        messages = await router.handle(USER, "トーン:カジュアル")

        assert len(llm.generate_calls) == 2
        tone_prompt = llm.generate_calls[1]["prompt"]
        assert tone_prompt.endswith(FORWARD_SOURCE)
        assert "Tone: casual" in tone_prompt
        assert "トーン" not in tone_prompt
        assert messages == [formatter.forward_result_message("Can we move tomorrow's meeting?")]

        profile = profile_store.profiles[USER]
        assert profile.last_source_text == FORWARD_SOURCE
        assert profile.last_generated_output == "Can we move tomorrow's meeting?"
        assert profile.tone_default == Tone.POLITE

    @pytest.mark.asyncio
    async def test_mixed_text_offers_both_directions(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider()
        text = "明日の meeting どう"
        messages = await make_router(llm).handle(USER, text)

        assert llm.generate_calls == []
        assert len(messages) == 1
        payloads = [o.payload for o in messages[0].options]
        assert f"TRANSLATE_TO_EN:::{text}" in payloads
        assert f"TRANSLATE_TO_JA:::{text}" in payloads
        assert profile_store.update_calls == []

    @pytest.mark.asyncio
    async def test_unparseable_reverse_reply_shown_as_translation(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider("明日までに送ります。")
        messages = await make_router(llm).handle(USER, "I'll send it by tomorrow.")

        assert len(messages) == 1
        assert messages[0].text == "明日までに送ります。"
        assert formatter.GLOSSARY_HEADER not in messages[0].text
        profile = profile_store.profiles[USER]
        assert profile.last_reverse_source_text == "I'll send it by tomorrow."
        assert profile.last_reverse_output == "明日までに送ります。"
        assert profile.last_mode == Mode.EN_TO_JA

    @pytest.mark.asyncio
    async def test_reverse_with_glossary(self, make_router) -> None:
        llm = MockLLMProvider(
            '{"translation": "会議を延期しましょう。", "glossary": ['
            '{"term": "reschedule", "meaning": "延期する", "note": ""},'
            '{"term": "", "meaning": "x"}]}'
        )
        messages = await make_router(llm).handle(USER, "Let's reschedule the meeting.")

        assert llm.generate_calls[0]["response_format"] == "json_object"
        assert messages[0].text == (
            "会議を延期しましょう。\n\n"
            "◆チェックしておきたい単語・表現\n"
            "reschedule: 延期する"
        )

    @pytest.mark.asyncio
    async def test_null_glossary_meaning_keeps_translation(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider(
            '{"translation": "会議を延期しましょう。", '
            '"glossary": [{"term": "reschedule", "meaning": null}]}'
        )
        messages = await make_router(llm).handle(USER, "Let's reschedule the meeting.")

        assert len(messages) == 1
        assert messages[0].text == (
            "会議を延期しましょう。\n\n"
            "◆チェックしておきたい単語・表現\n"
            "reschedule"
        )
        assert profile_store.profiles[USER].last_reverse_output == "会議を延期しましょう。"

    @pytest.mark.asyncio
    async def test_json_without_translation_is_apology(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider('{"translation": "", "glossary": []}')
        messages = await make_router(llm).handle(USER, "Let's reschedule the meeting.")

        assert messages == [formatter.generation_failed_message()]
        assert profile_store.update_calls == []

    @pytest.mark.asyncio
    async def test_wrongly_shaped_json_uses_translation_field(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider('{"ja": "了解です", "glossary": 3, "translation": 42}')
        messages = await make_router(llm).handle(USER, "Roger that.")

        assert messages[0].text == "了解です"
        assert profile_store.profiles[USER].last_reverse_output == "了解です"

    @pytest.mark.asyncio
    async def test_reverse_does_not_touch_forward_pair(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider(responses=["See you.", '{"translation": "了解"}'])
        router = make_router(llm)
        await router.handle(USER, "またね")
        await router.handle(USER, "Roger that.")

        profile = profile_store.profiles[USER]
        assert profile.last_source_text == "またね"
        assert profile.last_generated_output == "See you."
        assert profile.last_mode == Mode.EN_TO_JA

    @pytest.mark.asyncio
    async def test_unsupported_language(self, make_router) -> None:
        llm = MockLLMProvider()
        messages = await make_router(llm).handle(USER, "👍👍")

        assert messages == [formatter.unsupported_language_message()]
        assert llm.generate_calls == []

    @pytest.mark.asyncio
    async def test_forced_translation_uses_chosen_direction(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider("Shall we have the meeting tomorrow?")
        await make_router(llm).handle(USER, "TRANSLATE_TO_EN:::明日 meeting する？")

        assert llm.generate_calls[0]["response_format"] == "text"
        assert profile_store.profiles[USER].last_source_text == "明日 meeting する？"

    @pytest.mark.asyncio
    async def test_forced_translation_without_text(self, make_router) -> None:
        llm = MockLLMProvider()
        messages = await make_router(llm).handle(USER, "TRANSLATE_TO_JA:::")

        assert messages == [formatter.empty_forced_text_message()]
        assert llm.generate_calls == []


class TestGuards:
    @pytest.mark.asyncio
    async def test_tone_change_twice_on_fresh_profile(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider()
        router = make_router(llm)

        first = await router.handle(USER, "トーン:カジュアル")
        second = await router.handle(USER, "トーン：ビジネス")

        assert first == second == [formatter.tone_change_guidance_message()]
        assert llm.generate_calls == []
        assert profile_store.update_calls == []
        assert profile_store.profiles[USER].last_generated_output is None

    @pytest.mark.asyncio
    async def test_accept_on_fresh_profile(self, make_router) -> None:
        llm = MockLLMProvider()
        messages = await make_router(llm).handle(USER, "この英文でOK")

        assert messages == [formatter.accept_guidance_message()]
        assert llm.generate_calls == []


class TestAccept:
    @pytest.mark.asyncio
    async def test_copy_ready_then_lesson(self, make_router) -> None:
        llm = MockLLMProvider(
            responses=[
                "Thanks for your help.",
                '{"upgraded": "I really appreciate your help.", "explanation": "感謝が強まります"}',
            ]
        )
        router = make_router(llm)
        await router.handle(USER, "手伝ってくれてありがとう")
        messages = await router.handle(USER, "この英文でOK")

        assert len(messages) == 2
        assert messages[0].text == "Thanks for your help."
        assert messages[0].options is None
        assert "I really appreciate your help." in messages[1].text
        assert "感謝が強まります" in messages[1].text
        assert llm.generate_calls[1]["prompt"].endswith("Thanks for your help.")

    @pytest.mark.asyncio
    async def test_malformed_lesson_degrades(self, make_router) -> None:
        llm = MockLLMProvider(responses=["Thanks.", "Better: Many thanks."])
        router = make_router(llm)
        await router.handle(USER, "ありがとう")
        messages = await router.handle(USER, "この英文でOK")

        assert messages == [
            formatter.copy_ready_message("Thanks."),
            formatter.lesson_unavailable_message(),
        ]

    @pytest.mark.asyncio
    async def test_lesson_backend_failure_still_sends_copy(self, make_router) -> None:
        llm = MockLLMProvider("Thanks.")
        router = make_router(llm)
        await router.handle(USER, "ありがとう")
        llm.error = RuntimeError("backend down")
        messages = await router.handle(USER, "この英文でOK")

        assert messages == [
            formatter.copy_ready_message("Thanks."),
            formatter.lesson_unavailable_message(),
        ]


class TestSettings:
    @pytest.mark.asyncio
    async def test_menu_opens_without_generation(self, make_router) -> None:
        llm = MockLLMProvider()
        messages = await make_router(llm).handle(USER, "[設定] 用途")

        payloads = [o.payload for o in messages[0].options]
        assert "SET_USAGE_MAIL_INTERNAL" in payloads
        assert llm.generate_calls == []

    @pytest.mark.asyncio
    async def test_level_leaf_updates_profile(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        messages = await make_router(MockLLMProvider()).handle(USER, "SET_LEVEL_TOEIC_700")

        profile = profile_store.profiles[USER]
        assert profile.level_scheme == LevelScheme.TOEIC
        assert profile.level_value == "700"
        assert "TOEIC 700点台" in messages[0].text

    @pytest.mark.asyncio
    async def test_tone_default_leaf_updates_one_field(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        await make_router(MockLLMProvider()).handle(USER, "SET_TONE_CASUAL")

        assert profile_store.update_calls == [(USER, {"tone_default": Tone.CASUAL})]

    @pytest.mark.asyncio
    async def test_invalid_leaf_reshows_menu(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        messages = await make_router(MockLLMProvider()).handle(USER, "SET_TONE_ANGRY")

        assert messages == [formatter.invalid_setting_message(Menu.TONE)]
        assert profile_store.update_calls == []

    @pytest.mark.asyncio
    async def test_home_reflects_stored_settings(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        profile_store.seed(UserProfile(user_id=USER, tone_default=Tone.BUSINESS))
        messages = await make_router(MockLLMProvider()).handle(USER, "ホーム")
        assert "デフォルト文体: ビジネス" in messages[0].text


class TestFailures:
    @pytest.mark.asyncio
    async def test_generation_failure_leaves_profile_unchanged(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider(error=RuntimeError("timeout"))
        messages = await make_router(llm).handle(USER, FORWARD_SOURCE)

        assert messages == [formatter.generation_failed_message()]
        assert profile_store.update_calls == []
        assert profile_store.profiles[USER].last_source_text is None

    @pytest.mark.asyncio
    async def test_reverse_backend_failure_is_apology(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = MockLLMProvider(error=RuntimeError("timeout"))
        messages = await make_router(llm).handle(USER, "How are you?")

        assert messages == [formatter.generation_failed_message()]
        assert profile_store.update_calls == []

    @pytest.mark.asyncio
    async def test_read_failure_degrades_to_defaults(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        profile_store.fail_reads = True
        messages = await make_router(MockLLMProvider(), failure_policy="degrade").handle(
            USER, "ホーム"
        )
        assert messages == [formatter.home_message(UserProfile.defaults(USER))]

    @pytest.mark.asyncio
    async def test_read_failure_with_fail_policy(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        profile_store.fail_reads = True
        llm = MockLLMProvider()
        messages = await make_router(llm, failure_policy="fail").handle(USER, FORWARD_SOURCE)

        assert messages == [formatter.store_failed_message()]
        assert llm.generate_calls == []

    @pytest.mark.asyncio
    async def test_write_failure_reports_retry(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        profile_store.fail_writes = True
        messages = await make_router(MockLLMProvider("Hi.")).handle(USER, "やあ")

        assert messages == [formatter.store_failed_message()]
        assert profile_store.profiles[USER].last_generated_output is None

    @pytest.mark.asyncio
    async def test_busy_user(self, make_router) -> None:
        locks = UserLockManager(timeout_seconds=0.05)
        router = make_router(MockLLMProvider(), locks=locks)

        async with locks.acquire(USER):
            messages = await router.handle(USER, "ヘルプ")

        assert messages == [formatter.busy_message()]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        profile_store.get_or_create = AsyncMock(side_effect=ValueError("corrupt row"))
        messages = await make_router(MockLLMProvider()).handle(USER, "ヘルプ")
        assert messages == [formatter.unexpected_error_message()]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_turns_keep_forward_pair_consistent(
        self, make_router, profile_store: FakeProfileStore
    ) -> None:
        llm = EchoLLMProvider()
        router = make_router(llm)

        await asyncio.gather(
            router.handle(USER, "おはよう"),
            router.handle(USER, "こんばんは"),
            router.handle(USER, "ありがとう"),
        )

        profile = profile_store.profiles[USER]
        assert len(llm.generate_calls) == 3
        assert profile.last_generated_output == "EN:" + profile.last_source_text
