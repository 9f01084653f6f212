"""
Prompt rendering and response parsing for LLM providers.

Every LLM provider sends the same numbered-list prompt and reads back a
numbered list in the same order.
"""

from __future__ import annotations
import re
from typing import List, Sequence

from changelog_ko.translation.output_cleaner import clean_response_text

LANGUAGE_NAMES = {
    "en": "English",
    "ko": "Korean",
    "ja": "Japanese",
    "zh": "Chinese",
}

SYSTEM_PROMPT = (
    "You are a professional translator. "
    "Output only the numbered translations, nothing else."
)

PROMPT_TEMPLATE = """You are a professional translator specializing in software documentation.
Translate the following software changelog entries from {source_name} to {target_name}.

RULES:
- Translate naturally into {target_name}, not word-by-word
- DO NOT translate: code in backticks (`code`), file paths, URLs, CLI commands, technical terms like API names
- Keep the same numbering format
- Output ONLY the translations, one per line, with the same numbering
- REMOVE conventional commit prefixes before translating: strip patterns like "feat:", "feat(scope):",
  "fix:", "chore:", "docs:", "test:", "refactor:", "perf:", "style:", "build:", "ci:", "revert:"
  from the START of each entry. Translate ONLY the description after the prefix.
  Example: "feat(cli): add new command" → "새 명령어 추가" (NOT "기능(cli): 새 명령어 추가")

ENTRIES TO TRANSLATE:
{entries}

{target_upper} TRANSLATIONS:"""

_NUMBERED_LINE = re.compile(r"^\d+\.\s*(.+)$")
_LEADING_NUMBER = re.compile(r"^\d+\.\s*")


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.lower(), code)


def build_translation_prompt(texts: Sequence[str], source_lang: str = "en", target_lang: str = "ko") -> str:
    """
    Render the numbered translation prompt.

    Newlines inside an entry are flattened so one entry stays one line.
    """
    entries = "\n".join(
        f"{i}. {' '.join(text.splitlines())}" for i, text in enumerate(texts, start=1)
    )
    target_name = language_name(target_lang)
    return PROMPT_TEMPLATE.format(
        source_name=language_name(source_lang),
        target_name=target_name,
        target_upper=target_name.upper(),
        entries=entries,
    )


def parse_numbered_response(response_text: str, expected_count: int) -> List[str]:
    """
    Parse a numbered-line response back into an ordered list.

    Lines matching ``N. text`` are collected first. If that does not yield
    ``expected_count`` items, non-blank lines with any leading number removed
    are used instead, but only when that count matches. Otherwise the
    numbered result is returned as-is, possibly short.
    """
    text = clean_response_text(response_text).strip()
    lines = text.split("\n")

    translations = []
    for line in lines:
        match = _NUMBERED_LINE.match(line.strip())
        if match:
            translations.append(match.group(1).strip())

    if len(translations) != expected_count:
        fallback = [
            _LEADING_NUMBER.sub("", line.strip()).strip()
            for line in lines
            if line.strip()
        ]
        if len(fallback) == expected_count:
            return fallback

    return translations


class PlaceholderManager:
    """
    Protect backtick code, URLs and file paths from a plain MT engine.

    ``protect`` swaps them for ``{{CODE_i}}``, ``{{URL_i}}`` and ``{{PATH_i}}``
    tokens; ``restore`` puts the originals back. One manager per text.
    """

    _CODE = re.compile(r"`[^`]+`")
    _URL = re.compile(r"https?://\S+")
    _PATH = re.compile(r"(^|\s)(\S*[/\\]\S+)")

    def __init__(self):
        self.code_tokens: List[str] = []
        self.urls: List[str] = []
        self.paths: List[str] = []

    def protect(self, text: str) -> str:
        def _code(match):
            self.code_tokens.append(match.group(0))
            return f"{{{{CODE_{len(self.code_tokens) - 1}}}}}"

        def _url(match):
            self.urls.append(match.group(0))
            return f"{{{{URL_{len(self.urls) - 1}}}}}"

        def _path(match):
            self.paths.append(match.group(2))
            return f"{match.group(1)}{{{{PATH_{len(self.paths) - 1}}}}}"

        result = self._CODE.sub(_code, text)
        result = self._URL.sub(_url, result)
        return self._PATH.sub(_path, result)

    def restore(self, text: str) -> str:
        restored = text
        for prefix, values in (("CODE", self.code_tokens), ("URL", self.urls), ("PATH", self.paths)):
            for index, value in enumerate(values):
                restored = restored.replace(f"{{{{{prefix}_{index}}}}}", value, 1)
        return restored
