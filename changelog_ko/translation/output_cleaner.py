"""
Output cleaning utilities for translations.

- Remove <think>...</think> wrappers and code fences from raw LLM output
- Strip conventional-commit prefixes, commit hashes, PR numbers and trailing
  @mentions from finished translations
"""

import re
from typing import List

# English conventional commit prefix: feat:, feat(scope):, fix!:, ...
EN_PREFIX = re.compile(
    r"^(feat|fix|chore|docs|test|refactor|perf|style|build|ci|revert)(\([^)]*\))?!?:\s*",
    re.IGNORECASE
)

# Same prefixes after a model translated them: 기능:, 수정(scope):, ...
KO_PREFIX = re.compile(
    r"^(기능|수정|작업|문서|테스트|리팩터링|리팩터|성능|버그|스타일|빌드|되돌리기)(\([^)]*\))?!?[:\s]+"
)

HASH_EN_PREFIX = re.compile(
    r"^[0-9a-f]{6,10}\s+(feat|fix|chore|docs|test|refactor|perf|style|build|ci|revert)(\([^)]*\))?!?:\s*",
    re.IGNORECASE
)
HASH_KO_PREFIX = re.compile(
    r"^[0-9a-f]{6,10}\s+(기능|수정|작업|문서|테스트|리팩터링|리팩터|성능|버그|스타일|빌드|되돌리기)(\([^)]*\))?!?[:\s]+"
)
HASH_ONLY = re.compile(r"^[0-9a-f]{6,10}\s+")
COMMIT_NUMBER = re.compile(r"^#?\d{4,}\s+")
USERNAME_SUFFIX = re.compile(r"\s+@[\w-]+\s*$")

_CODE_FENCE = re.compile(r"^```(?:\w+)?\s*\n(.*?)\n```\s*$", re.DOTALL)


def clean_response_text(text: str) -> str:
    """
    Clean raw LLM output before it is parsed.

    Args:
        text: Raw LLM output

    Returns:
        Text without reasoning blocks or a wrapping code fence
    """
    if not text:
        return text

    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<thinking>.*?</thinking>", "", text, flags=re.DOTALL | re.IGNORECASE)

    match = _CODE_FENCE.match(text.strip())
    if match:
        text = match.group(1)

    return text


def strip_conventional_prefix(text: str) -> str:
    """Remove a leading English conventional-commit prefix."""
    return EN_PREFIX.sub("", text)


def strip_prefix(text: str) -> str:
    """
    Remove commit prefixes and noise from a finished translation.

    Hash+prefix patterns run first, then plain prefixes, then a bare hash.
    If anything was stripped the first character is upper-cased.
    """
    if not text:
        return text

    stripped = text
    for pattern in (HASH_EN_PREFIX, HASH_KO_PREFIX, EN_PREFIX, KO_PREFIX,
                    HASH_ONLY, COMMIT_NUMBER, USERNAME_SUFFIX):
        stripped = pattern.sub("", stripped)

    if stripped != text and stripped:
        return stripped[0].upper() + stripped[1:]
    return stripped


def strip_prefixes(translations: List[str]) -> List[str]:
    return [strip_prefix(t) for t in translations]
