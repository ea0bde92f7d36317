"""Prompt builders for each transformation the bot performs.

Pure functions: no I/O, no profile mutation, and the same inputs always give
the same StructuredPrompt.
"""

from __future__ import annotations

from yourtranslator.schemas.profile import LevelScheme, Tone, UsageScene, UserProfile
from yourtranslator.services.llm.client import StructuredPrompt

_FORWARD_USAGE = {
    UsageScene.CHAT_FRIEND: "chat with friends or colleagues",
    UsageScene.MAIL_INTERNAL: "internal business email",
    UsageScene.MAIL_EXTERNAL: "external business email with clients",
}

_UPGRADE_USAGE = {
    UsageScene.CHAT_FRIEND: "casual chat with friends or colleagues (chat apps, DMs, etc.)",
    UsageScene.MAIL_INTERNAL: "polite but not overly formal internal business emails",
    UsageScene.MAIL_EXTERNAL: "formal and polite external business emails with clients",
}

_EIKEN_GRADES = {
    "5": "5",
    "4": "4",
    "3": "3",
    "pre2": "Pre-2",
    "2": "2",
    "pre1": "Pre-1",
    "1": "1",
}

_FORWARD_SYSTEM = """
You are an English writing assistant for Japanese users.
- The user sends Japanese. Translate or rewrite it into natural English.
- Consider the user's level, usage scene, tone, and English style.
- Output ONLY the English sentence(s). No Japanese. No explanations. No quotes.
""".strip()

_REVERSE_SYSTEM = """
You are an English-to-Japanese translator and tutor for Japanese learners.
- First, translate the English text into natural Japanese.
- Then, pick up 0-5 words or expressions that are probably difficult for the user.
- The user level will be provided.
- Return ONLY a JSON object with this shape:

{
  "translation": "自然な日本語訳",
  "glossary": [
    { "term": "英単語や表現", "meaning": "日本語の意味", "note": "やさしい日本語での補足（なければ省略）" }
  ]
}

No extra text. No comments. No Markdown. No backticks.
""".strip()

_UPGRADE_SYSTEM_TEMPLATE = """
You are an English coach for Japanese learners.
The user has just decided to use the English sentence they send, in this context:
- Usage: {usage}

Your task:
1. Suggest ONE upgraded version of the sentence.
2. Keep the SAME tone and level of formality that is appropriate for the given usage.
3. Do NOT make the sentence more casual than necessary.
4. Do NOT turn it into a completely different tone (e.g. casual -> very formal, or formal -> too casual).
5. Avoid a paraphrase that is almost identical to the original; the difference should be noticeable.

Return ONLY a JSON object with this shape:

{{
  "upgraded": "<upgraded English sentence>",
  "explanation": "どこをどう良くしたか、ニュアンスの違い（日本語で1〜3行。フレンドリーだが、なれなれしくしない）"
}}

No extra text. No Markdown. No backticks.
""".strip()


def describe_level(profile: UserProfile) -> str:
    """English description of the user's level for prompts."""
    if profile.level_scheme == LevelScheme.EIKEN:
        grade = _EIKEN_GRADES.get(profile.level_value, profile.level_value)
        return f"EIKEN Grade {grade}"
    if profile.level_scheme == LevelScheme.TOEIC:
        if profile.level_value.isdigit():
            low = int(profile.level_value)
            return f"TOEIC score range {low}-{low + 95}"
        return f"TOEIC score {profile.level_value}"
    return f"rough level: {profile.level_value}"


def build_forward_prompt(
    profile: UserProfile,
    source_text: str,
    tone_override: Tone | None = None,
) -> StructuredPrompt:
    """Japanese → English rewrite. Output contract: English only."""
    tone = tone_override or profile.tone_default
    user = (
        f"User level: {describe_level(profile)}\n"
        f"Usage scene: {_FORWARD_USAGE[profile.usage_scene]}\n"
        f"Tone: {tone.value}\n"
        f"English style: {profile.style_variant.value} (neutral = globally understandable)\n"
        "Source language: Japanese\n\n"
        f"Japanese text:\n{source_text}"
    )
    return StructuredPrompt(system=_FORWARD_SYSTEM, user=user, temperature=0.3)


def build_reverse_prompt(profile: UserProfile, target_text: str) -> StructuredPrompt:
    """English → Japanese translation plus glossary, as JSON."""
    user = (
        f"User level: {describe_level(profile)}\n\n"
        f"English text:\n{target_text}"
    )
    return StructuredPrompt(
        system=_REVERSE_SYSTEM,
        user=user,
        temperature=0.3,
        response_format="json_object",
    )


def build_upgrade_prompt(profile: UserProfile, accepted_text: str) -> StructuredPrompt:
    """One alternative phrasing of accepted text, register pinned to the usage scene."""
    system = _UPGRADE_SYSTEM_TEMPLATE.format(usage=_UPGRADE_USAGE[profile.usage_scene])
    return StructuredPrompt(
        system=system,
        user=f"English sentence:\n{accepted_text}",
        temperature=0.4,
        response_format="json_object",
    )
