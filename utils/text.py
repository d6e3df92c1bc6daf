"""Personalization of story text.

Story authors mark the recipient's name and age with bracketed Hebrew tokens,
written both with and without niqqud. Matching runs on NFC-normalized text so
that tokens typed with combining marks in a different order still match.
"""
import re
import unicodedata

NAME_TOKENS = (
    "[שם הילד]",
    "[שם הילדה]",
    "[שֵׁם הַיָּלֶד]",
    "[שֵׁם הַיַּלְדָּה]",
)
AGE_TOKENS = (
    "[גיל הילד]",
    "[גִּיל הַיָּלֶד]",
)


def _nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text)


def _token_pattern(tokens: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("|".join(re.escape(_nfc(t)) for t in tokens))


_NAME_PATTERN = _token_pattern(NAME_TOKENS)
_AGE_PATTERN = _token_pattern(AGE_TOKENS)


def personalize(text: str | None, child_name: str | None, child_age: str | None = None) -> str:
    """Replace every name and age token in ``text``.

    A missing value replaces its tokens with the empty string, so no token
    ever survives into rendered output.
    """
    if not text:
        return ""
    result = _NAME_PATTERN.sub(lambda _m: child_name or "", _nfc(text))
    return _AGE_PATTERN.sub(lambda _m: child_age or "", result)


def contains_placeholder(text: str) -> bool:
    normalized = _nfc(text)
    return bool(_NAME_PATTERN.search(normalized) or _AGE_PATTERN.search(normalized))
