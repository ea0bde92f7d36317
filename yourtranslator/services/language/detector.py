"""Script-ratio language classification for incoming chat text.

Japanese characters (kanji, hiragana, katakana) count as the source script,
ASCII Latin letters count as the target script. Digits, punctuation, emoji
and other scripts count as neither.

All-caps acronyms are counted as Latin: a message that is only "API" is
classified TARGET_LIKE. Within Japanese text, short acronyms are absorbed by
the 0.2 ratio threshold instead.
"""

from __future__ import annotations

import re
from enum import Enum

_SOURCE_CHARS = re.compile(
    "["
    "ぁ-ゖゝゞ"  # hiragana
    "ァ-ヺー-ヾ"  # katakana incl. prolonged sound mark
    "㐀-䶿一-鿿"  # CJK ideographs
    "々"  # iteration mark
    "]"
)
_TARGET_CHARS = re.compile(r"[A-Za-z]")

# Target-script share below which mixed text is still treated as source
# (a few embedded acronyms), and above which it is treated as target.
SOURCE_RATIO_CEILING = 0.2
TARGET_RATIO_FLOOR = 0.8


class LanguageClass(str, Enum):
    SOURCE = "source"
    TARGET_LIKE = "target_like"
    MIXED = "mixed"
    UNSUPPORTED = "unsupported"


def count_scripts(text: str) -> tuple[int, int]:
    """Return (source_count, target_count) for ``text``."""
    return len(_SOURCE_CHARS.findall(text)), len(_TARGET_CHARS.findall(text))


def detect(text: str) -> LanguageClass:
    """Classify ``text`` by the ratio of target-script to scripted characters.

    Comparisons are strict: a target ratio of exactly 0.2 or 0.8 is MIXED.
    """
    source_count, target_count = count_scripts(text)

    if source_count == 0 and target_count == 0:
        return LanguageClass.UNSUPPORTED
    if target_count == 0:
        return LanguageClass.SOURCE
    if source_count == 0:
        return LanguageClass.TARGET_LIKE

    target_ratio = target_count / (target_count + source_count)
    if target_ratio < SOURCE_RATIO_CEILING:
        return LanguageClass.SOURCE
    if target_ratio > TARGET_RATIO_FLOOR:
        return LanguageClass.TARGET_LIKE
    return LanguageClass.MIXED
