from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha256
import re
import unicodedata

_WHITESPACE_PATTERN = re.compile(r"\s+")
_XML_TAG_PATTERN = re.compile(r"<[^<>]+>")
_BBCODE_TAG_PATTERN = re.compile(r"\[[^\[\]]+\]")
_MARKDOWN_PATTERNS = (
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"(?<!\w)_([^_]+)_(?!\w)"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
)
_PUNCTUATION_TRANSLATION = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "—": "-",
        "–": "-",
    }
)
_REPEATED_PUNCTUATION_PATTERN = re.compile(r"([!?.])\1+")
_SPACE_BEFORE_PUNCTUATION_PATTERN = re.compile(r"\s+([.,!?;:])")
_SPACE_AFTER_PUNCTUATION_PATTERN = re.compile(r"([.,!?;:])\s+")
_NUMBER_PATTERN = re.compile(r"\b\d+\b")


@dataclass(slots=True, frozen=True)
class NormalizationOptions:
    remove_markup: bool = True
    normalize_punctuation: bool = True
    remove_numbers: bool = False
    lowercase: bool = True


DEFAULT_OPTIONS = NormalizationOptions()


class TextNormalizer:
    """Canonical form used before comparing query and candidate text.

    ``normalize`` repeats its pipeline until the text stops changing, so
    ``normalize(normalize(s)) == normalize(s)`` holds even when stripping one
    tag exposes another.
    """

    def __init__(self, options: NormalizationOptions = DEFAULT_OPTIONS) -> None:
        self.options = options

    def normalize(self, text: str | None) -> str:
        if not text:
            return ""
        current = text
        while True:
            updated = self._normalize_once(current)
            if updated == current:
                return updated
            current = updated

    def _normalize_once(self, text: str) -> str:
        result = text
        if self.options.remove_markup:
            result = _remove_markup(result)
        result = _WHITESPACE_PATTERN.sub(" ", result).strip()
        if self.options.normalize_punctuation:
            result = _normalize_punctuation(result)
        if self.options.remove_numbers:
            result = _NUMBER_PATTERN.sub("", result)
        if self.options.lowercase:
            result = result.lower()
        result = unicodedata.normalize("NFC", result)
        return _WHITESPACE_PATTERN.sub(" ", result).strip()


def _remove_markup(text: str) -> str:
    result = _XML_TAG_PATTERN.sub("", text)
    result = _BBCODE_TAG_PATTERN.sub("", result)
    for pattern, replacement in _MARKDOWN_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _normalize_punctuation(text: str) -> str:
    result = text.translate(_PUNCTUATION_TRANSLATION).replace("…", "...")
    result = _REPEATED_PUNCTUATION_PATTERN.sub(r"\1", result)
    result = _SPACE_BEFORE_PUNCTUATION_PATTERN.sub(r"\1", result)
    return _SPACE_AFTER_PUNCTUATION_PATTERN.sub(r"\1 ", result)


_DEFAULT_NORMALIZER = TextNormalizer()


def normalize_source_text(text: str) -> str:
    return _DEFAULT_NORMALIZER.normalize(text)


def normalized_source_hash(text: str) -> str:
    normalized = normalize_source_text(text)
    return sha256(normalized.encode("utf-8")).hexdigest()
