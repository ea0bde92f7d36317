"""Reply texts, display labels and quick-reply option sets.

Every reply built here carries the generic navigation options unless a more
specific set replaces them. The only message without options is the bare
copy-ready sentence, which is always followed by a message that has them.
"""

from __future__ import annotations

from collections.abc import Iterable

from yourtranslator.schemas.generation import GlossaryEntry, UpgradeSuggestion
from yourtranslator.schemas.messages import OutboundMessage, QuickReplyOption
from yourtranslator.schemas.profile import (
    LEVEL_VALUES,
    LevelScheme,
    StyleVariant,
    Tone,
    UsageScene,
    UserProfile,
)
from yourtranslator.services.conversation.commands import (
    ACCEPT_TOKEN,
    FORCE_TO_EN_PREFIX,
    FORCE_TO_JA_PREFIX,
    HELP_TOKEN,
    HOME_TOKEN,
    LEVEL_PREFIXES,
    MENU_TOKENS,
    STYLE_PREFIX,
    TONE_CHANGE_PREFIXES,
    TONE_PREFIX,
    USAGE_GUIDE_TOKEN,
    USAGE_PREFIX,
    Menu,
)

GLOSSARY_HEADER = "◆チェックしておきたい単語・表現"
LESSON_HEADER = "ワンポイントレッスン\n------------------------------"

# ---------------------------------------------------------------------------
# Display labels
# ---------------------------------------------------------------------------

_EIKEN_LABELS = {
    "5": "5級",
    "4": "4級",
    "3": "3級",
    "pre2": "準2級",
    "2": "2級",
    "pre1": "準1級",
    "1": "1級",
}
_ROUGH_LABELS = {"beginner": "初級", "intermediate": "中級", "advanced": "上級"}
_USAGE_LABELS = {
    UsageScene.CHAT_FRIEND: "友だち・同僚とのチャット",
    UsageScene.MAIL_INTERNAL: "社内メール",
    UsageScene.MAIL_EXTERNAL: "社外メール",
}
_TONE_LABELS = {Tone.CASUAL: "カジュアル", Tone.POLITE: "丁寧", Tone.BUSINESS: "ビジネス"}
_STYLE_LABELS = {
    StyleVariant.NEUTRAL: "日本人向け（無難）",
    StyleVariant.AMERICAN: "アメリカ寄り",
    StyleVariant.BRITISH: "イギリス寄り",
}


def _toeic_label(value: str) -> str:
    if value == LEVEL_VALUES[LevelScheme.TOEIC][-1]:
        return f"{value}点以上"
    return f"{value}点台"


def level_label(profile: UserProfile) -> str:
    value = profile.level_value
    if profile.level_scheme == LevelScheme.EIKEN:
        return f"英検{_EIKEN_LABELS.get(value, value + '級')}"
    if profile.level_scheme == LevelScheme.TOEIC:
        return f"TOEIC {_toeic_label(value)}"
    return f"ざっくり {_ROUGH_LABELS.get(value, value)}"


def usage_scene_label(scene: UsageScene) -> str:
    return _USAGE_LABELS[scene]


def tone_label(tone: Tone) -> str:
    return _TONE_LABELS[tone]


def style_label(style: StyleVariant) -> str:
    return _STYLE_LABELS[style]


# ---------------------------------------------------------------------------
# Option sets
# ---------------------------------------------------------------------------

def _opt(label: str, payload: str | None = None) -> QuickReplyOption:
    return QuickReplyOption(label=label, payload=payload or label)


def base_options() -> tuple[QuickReplyOption, ...]:
    """Generic navigation; present on every turn."""
    return (_opt(HOME_TOKEN), _opt(USAGE_GUIDE_TOKEN), _opt(HELP_TOKEN))


def _settings_shortcuts() -> tuple[QuickReplyOption, ...]:
    return (
        _opt("レベル", MENU_TOKENS[Menu.LEVEL]),
        _opt("用途", MENU_TOKENS[Menu.USAGE_SCENE]),
        _opt("文体", MENU_TOKENS[Menu.TONE]),
        _opt("英語タイプ", MENU_TOKENS[Menu.STYLE]),
    )


def home_options() -> tuple[QuickReplyOption, ...]:
    return _settings_shortcuts() + (_opt(USAGE_GUIDE_TOKEN), _opt(HELP_TOKEN))


def settings_changed_options() -> tuple[QuickReplyOption, ...]:
    return _settings_shortcuts() + base_options()


def tone_options() -> tuple[QuickReplyOption, ...]:
    """Shown after an English sentence was generated."""
    tone_prefix = TONE_CHANGE_PREFIXES[0]
    return (
        _opt("カジュアルに", f"{tone_prefix}カジュアル"),
        _opt("丁寧に", f"{tone_prefix}丁寧"),
        _opt("ビジネスに", f"{tone_prefix}ビジネス"),
        _opt(ACCEPT_TOKEN),
    ) + base_options()


def mixed_options(text: str) -> tuple[QuickReplyOption, ...]:
    return (
        _opt("英訳してほしい", f"{FORCE_TO_EN_PREFIX}{text}"),
        _opt("和訳してほしい", f"{FORCE_TO_JA_PREFIX}{text}"),
    ) + base_options()


def menu_options(menu: Menu) -> tuple[QuickReplyOption, ...]:
    if menu == Menu.LEVEL:
        return (
            _opt("英検で設定", MENU_TOKENS[Menu.LEVEL_EIKEN]),
            _opt("TOEICで設定", MENU_TOKENS[Menu.LEVEL_TOEIC]),
            _opt("ざっくり設定", MENU_TOKENS[Menu.LEVEL_ROUGH]),
        ) + base_options()
    if menu == Menu.LEVEL_EIKEN:
        prefix = LEVEL_PREFIXES[LevelScheme.EIKEN]
        return tuple(
            _opt(_EIKEN_LABELS[v], f"{prefix}{v.upper()}")
            for v in LEVEL_VALUES[LevelScheme.EIKEN]
        ) + base_options()
    if menu == Menu.LEVEL_TOEIC:
        prefix = LEVEL_PREFIXES[LevelScheme.TOEIC]
        return tuple(
            _opt(_toeic_label(v), f"{prefix}{v}")
            for v in LEVEL_VALUES[LevelScheme.TOEIC]
        ) + base_options()
    if menu == Menu.LEVEL_ROUGH:
        prefix = LEVEL_PREFIXES[LevelScheme.ROUGH]
        return tuple(
            _opt(_ROUGH_LABELS[v], f"{prefix}{v.upper()}")
            for v in LEVEL_VALUES[LevelScheme.ROUGH]
        ) + base_options()
    if menu == Menu.USAGE_SCENE:
        return tuple(
            _opt(_USAGE_LABELS[s], f"{USAGE_PREFIX}{s.value.upper()}") for s in UsageScene
        ) + base_options()
    if menu == Menu.TONE:
        return tuple(
            _opt(_TONE_LABELS[t], f"{TONE_PREFIX}{t.value.upper()}") for t in Tone
        ) + base_options()
    return tuple(
        _opt(_STYLE_LABELS[s], f"{STYLE_PREFIX}{s.value.upper()}") for s in StyleVariant
    ) + base_options()


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def reply(
    text: str, options: tuple[QuickReplyOption, ...] | None = None
) -> OutboundMessage:
    """A message with ``options``, defaulting to generic navigation."""
    return OutboundMessage(text=text, options=options or base_options())


def help_message() -> OutboundMessage:
    return reply(
        "YourTranslator です 👋\n\n"
        "・日本語で送る → 英文を作成\n"
        "・英語で送る → 和訳＋むずかしめ単語のミニ解説\n"
        "・日本語＋英語まじり → 英訳 / 和訳を選択\n\n"
        "まずは「ホーム」でレベルやよく使う場面をゆるく決めておくとラクです。\n"
        "迷ったらまた「ヘルプ」と送ってください。"
    )


def usage_guide_message() -> OutboundMessage:
    return reply(
        "YourTranslator の使い方（ざっくり）\n\n"
        "1. 「ホーム」で自分のレベルと、よく使う場面（チャット / 社内メール / 社外メール）を決める\n"
        "2. あとは日本語 or 英語の文を送るだけ\n"
        "   ・日本語 → 英文を作成\n"
        "   ・英語 → 和訳＋むずかしめ単語のミニ解説\n"
        "3. 英文が出たら、クイックメニューで\n"
        "   ・カジュアル / 丁寧 / ビジネス に言い換え\n"
        "   ・「この英文でOK」で、本文だけ＋ワンポイントレッスン\n\n"
        "細かいことは気にせず、送りたい文をそのまま投げてみてください。"
    )


def home_message(profile: UserProfile) -> OutboundMessage:
    return reply(
        "YourTranslator ホーム\n\n"
        "いまの設定はこんな感じです：\n"
        f"・レベル: {level_label(profile)}\n"
        f"・よく使う場面: {usage_scene_label(profile.usage_scene)}\n"
        f"・英語の雰囲気: {style_label(profile.style_variant)}\n"
        f"・デフォルト文体: {tone_label(profile.tone_default)}\n\n"
        "変えたい項目があれば、下のボタンからどうぞ。",
        home_options(),
    )


_MENU_PROMPTS = {
    Menu.LEVEL: "レベルの決め方を選んでください。",
    Menu.LEVEL_EIKEN: "英検の級を選んでください。",
    Menu.LEVEL_TOEIC: "TOEICのスコアに近いものを選んでください。",
    Menu.LEVEL_ROUGH: "だいたいのレベルを選んでください。",
    Menu.USAGE_SCENE: "よく使う場面を選んでください。",
    Menu.TONE: "ふだんの文体を選んでください。",
    Menu.STYLE: "英語の雰囲気を選んでください。\n迷ったら「日本人向け（無難）」でOKです。",
}


def menu_message(menu: Menu) -> OutboundMessage:
    return reply(_MENU_PROMPTS[menu], menu_options(menu))


def invalid_setting_message(menu: Menu) -> OutboundMessage:
    return reply(
        "その選択肢は見つかりませんでした。\n" + _MENU_PROMPTS[menu],
        menu_options(menu),
    )


def level_set_message(profile: UserProfile) -> OutboundMessage:
    return reply(
        f"レベルを「{level_label(profile)}」のイメージで登録しました。\n"
        "日本語か英語で文を送ってみてください。",
        settings_changed_options(),
    )


def usage_scene_set_message(profile: UserProfile) -> OutboundMessage:
    return reply(
        f"よく使う場面を「{usage_scene_label(profile.usage_scene)}」として登録しました。",
        settings_changed_options(),
    )


def tone_default_set_message(profile: UserProfile) -> OutboundMessage:
    return reply(
        f"デフォルト文体を「{tone_label(profile.tone_default)}」にしました。",
        settings_changed_options(),
    )


def style_set_message(profile: UserProfile) -> OutboundMessage:
    return reply(
        f"英語の雰囲気を「{style_label(profile.style_variant)}」にしました。",
        settings_changed_options(),
    )


def forward_result_message(english: str) -> OutboundMessage:
    return reply(english, tone_options())


def format_glossary(entries: Iterable[GlossaryEntry]) -> str | None:
    """Render glossary lines as ``term: meaning (note)``.

    Entries with an empty term are skipped; an empty meaning or note is omitted.
    Returns None when nothing is left to render.
    """
    lines = []
    for entry in entries:
        term = entry.term.strip()
        if not term:
            continue
        meaning = entry.meaning.strip()
        line = f"{term}: {meaning}" if meaning else term
        note = (entry.note or "").strip()
        if note:
            line += f" ({note})"
        lines.append(line)
    if not lines:
        return None
    return GLOSSARY_HEADER + "\n" + "\n".join(lines)


def reverse_result_message(
    translation: str, glossary: Iterable[GlossaryEntry] = ()
) -> OutboundMessage:
    text = translation
    section = format_glossary(glossary)
    if section:
        text += "\n\n" + section
    return reply(text)


def mixed_message(text: str) -> OutboundMessage:
    return reply(
        "日本語と英語がいっしょに入っているみたいです。\n"
        "この文を「英訳」か「和訳」か、どちらで扱うか選んでください。",
        mixed_options(text),
    )


def unsupported_language_message() -> OutboundMessage:
    return reply(
        "今は日本語と英語だけをサポートしています。\n"
        "日本語か英語で送ってみてください。"
    )


def empty_forced_text_message() -> OutboundMessage:
    return reply("翻訳する文が見つかりませんでした。\nもう一度、文をそのまま送ってください。")


def tone_change_guidance_message() -> OutboundMessage:
    return reply("まず日本語の文を送って英文を作ってから、文体を変えてみてください。")


def accept_guidance_message() -> OutboundMessage:
    return reply("まず日本語の文を送って、英文を作ってから選んでください。")


def copy_ready_message(english: str) -> OutboundMessage:
    """The accepted sentence alone, so it can be copied as-is."""
    return OutboundMessage(text=english)


def lesson_message(suggestion: UpgradeSuggestion) -> OutboundMessage:
    text = f"{LESSON_HEADER}\nアップグレード例:\n\"{suggestion.upgraded.strip()}\""
    explanation = suggestion.explanation.strip()
    if explanation:
        text += f"\n\n解説:\n{explanation}"
    return reply(text)


def lesson_unavailable_message() -> OutboundMessage:
    return reply("コピペ用の英文をお届けしました。\nこの英文はそのまま使って大丈夫です。")


def generation_failed_message() -> OutboundMessage:
    return reply("うまく文を作れませんでした🙏\n少し時間をおいて、もう一度送ってみてください。")


def store_failed_message() -> OutboundMessage:
    return reply("設定の読み書きに失敗しました🙏\n少し時間をおいて、もう一度お試しください。")


def busy_message() -> OutboundMessage:
    return reply("前のメッセージを処理中です。\n少し待ってから、もう一度送ってください。")


def unexpected_error_message() -> OutboundMessage:
    return reply("エラーが発生しました🙏\nもう一度お試しください。")
