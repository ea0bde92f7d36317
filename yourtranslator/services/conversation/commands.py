"""Command parsing: turns raw message text into a single typed command.

``parse_command`` is the only place that knows the token vocabulary. Checks
run in a fixed order and the first match wins:

1. disambiguation follow-ups (``TRANSLATE_TO_EN:::<text>``)
2. navigation (exact match)
3. settings menus (exact match) and settings leaves (prefix match)
4. tone change (``トーン:<label>``)
5. accept (substring ``この英文で``)
6. anything else is FreeText
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeVar, Union

from yourtranslator.schemas.profile import (
    LevelScheme,
    Mode,
    StyleVariant,
    Tone,
    UsageScene,
    is_valid_level,
)

E = TypeVar("E", bound=Enum)

FORCE_TO_EN_PREFIX = "TRANSLATE_TO_EN:::"
FORCE_TO_JA_PREFIX = "TRANSLATE_TO_JA:::"

HELP_TOKEN = "ヘルプ"
HOME_TOKEN = "ホーム"
USAGE_GUIDE_TOKEN = "使い方"

TONE_CHANGE_PREFIXES = ("トーン:", "トーン：")
ACCEPT_PHRASE = "この英文で"
ACCEPT_TOKEN = "この英文でOK"


class Navigation(str, Enum):
    HELP = "help"
    HOME = "home"
    USAGE_GUIDE = "usage_guide"


class Menu(str, Enum):
    LEVEL = "level"
    LEVEL_EIKEN = "level_eiken"
    LEVEL_TOEIC = "level_toeic"
    LEVEL_ROUGH = "level_rough"
    USAGE_SCENE = "usage_scene"
    TONE = "tone"
    STYLE = "style"


NAVIGATION_TOKENS: dict[str, Navigation] = {
    HELP_TOKEN: Navigation.HELP,
    HOME_TOKEN: Navigation.HOME,
    USAGE_GUIDE_TOKEN: Navigation.USAGE_GUIDE,
}

MENU_TOKENS: dict[Menu, str] = {
    Menu.LEVEL: "[設定] レベル",
    Menu.LEVEL_EIKEN: "[設定] 英検レベル",
    Menu.LEVEL_TOEIC: "[設定] TOEICレベル",
    Menu.LEVEL_ROUGH: "[設定] ざっくりレベル",
    Menu.USAGE_SCENE: "[設定] 用途",
    Menu.TONE: "[設定] 文体",
    Menu.STYLE: "[設定] 英語タイプ",
}
_MENU_BY_TOKEN = {token: menu for menu, token in MENU_TOKENS.items()}

LEVEL_PREFIXES: dict[LevelScheme, str] = {
    LevelScheme.EIKEN: "SET_LEVEL_EIKEN_",
    LevelScheme.TOEIC: "SET_LEVEL_TOEIC_",
    LevelScheme.ROUGH: "SET_LEVEL_ROUGH_",
}
_LEVEL_MENUS = {
    LevelScheme.EIKEN: Menu.LEVEL_EIKEN,
    LevelScheme.TOEIC: Menu.LEVEL_TOEIC,
    LevelScheme.ROUGH: Menu.LEVEL_ROUGH,
}
USAGE_PREFIX = "SET_USAGE_"
TONE_PREFIX = "SET_TONE_"
STYLE_PREFIX = "SET_EN_STYLE_"

# Precedence order matters: the first tone whose keyword appears wins.
_TONE_KEYWORDS: tuple[tuple[Tone, tuple[str, ...]], ...] = (
    (Tone.CASUAL, ("カジュアル", "casual")),
    (Tone.POLITE, ("丁寧", "ていねい", "polite")),
    (Tone.BUSINESS, ("ビジネス", "business")),
)


# ---------------------------------------------------------------------------
# Command variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ForcedTranslation:
    """User picked a direction for previously mixed-language text."""

    mode: Mode
    text: str


@dataclass(frozen=True)
class Navigate:
    target: Navigation


@dataclass(frozen=True)
class OpenMenu:
    menu: Menu


@dataclass(frozen=True)
class SetLevel:
    scheme: LevelScheme
    value: str


@dataclass(frozen=True)
class SetUsageScene:
    scene: UsageScene


@dataclass(frozen=True)
class SetToneDefault:
    tone: Tone


@dataclass(frozen=True)
class SetStyleVariant:
    style: StyleVariant


@dataclass(frozen=True)
class InvalidSetting:
    """A settings leaf token whose value is not in the allowed set."""

    menu: Menu


@dataclass(frozen=True)
class ChangeTone:
    label: str


@dataclass(frozen=True)
class AcceptOutput:
    pass


@dataclass(frozen=True)
class FreeText:
    text: str


Command = Union[
    ForcedTranslation,
    Navigate,
    OpenMenu,
    SetLevel,
    SetUsageScene,
    SetToneDefault,
    SetStyleVariant,
    InvalidSetting,
    ChangeTone,
    AcceptOutput,
    FreeText,
]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _enum_from_code(enum_cls: type[E], code: str) -> E | None:
    try:
        return enum_cls(code.lower())
    except ValueError:
        return None


def _parse_setting(text: str) -> Command | None:
    for scheme, prefix in LEVEL_PREFIXES.items():
        if text.startswith(prefix):
            value = text[len(prefix):].lower()
            if is_valid_level(scheme, value):
                return SetLevel(scheme=scheme, value=value)
            return InvalidSetting(menu=_LEVEL_MENUS[scheme])

    if text.startswith(USAGE_PREFIX):
        scene = _enum_from_code(UsageScene, text[len(USAGE_PREFIX):])
        return SetUsageScene(scene) if scene else InvalidSetting(Menu.USAGE_SCENE)
    if text.startswith(TONE_PREFIX):
        tone = _enum_from_code(Tone, text[len(TONE_PREFIX):])
        return SetToneDefault(tone) if tone else InvalidSetting(Menu.TONE)
    if text.startswith(STYLE_PREFIX):
        style = _enum_from_code(StyleVariant, text[len(STYLE_PREFIX):])
        return SetStyleVariant(style) if style else InvalidSetting(Menu.STYLE)
    return None


def parse_command(text: str) -> Command:
    """Map trimmed message text to exactly one Command."""
    if text.startswith(FORCE_TO_EN_PREFIX):
        return ForcedTranslation(Mode.JA_TO_EN, text[len(FORCE_TO_EN_PREFIX):].strip())
    if text.startswith(FORCE_TO_JA_PREFIX):
        return ForcedTranslation(Mode.EN_TO_JA, text[len(FORCE_TO_JA_PREFIX):].strip())

    if text in NAVIGATION_TOKENS:
        return Navigate(NAVIGATION_TOKENS[text])

    if text in _MENU_BY_TOKEN:
        return OpenMenu(_MENU_BY_TOKEN[text])
    setting = _parse_setting(text)
    if setting is not None:
        return setting

    for prefix in TONE_CHANGE_PREFIXES:
        if text.startswith(prefix):
            return ChangeTone(label=text[len(prefix):])

    if ACCEPT_PHRASE in text:
        return AcceptOutput()

    return FreeText(text)


def resolve_tone(label: str, default: Tone) -> Tone:
    """Resolve a possibly decorated tone label ("😎カジュアルに") to a Tone.

    Substring containment, first match in casual → polite → business order;
    ``default`` when no keyword is present.
    """
    lowered = label.lower()
    for tone, keywords in _TONE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return tone
    return default
