"""
Translation quality heuristics.

Two call sites use the same verdict with different thresholds: the
orchestrator's first pass (5%) and the retranslation sweep (10%).
"""

import re
from typing import Optional, Sequence

from changelog_ko.core.models import QualityVerdict
from changelog_ko.utils.debug_log import DebugLogger, EventType
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)

FIRST_PASS_THRESHOLD = 0.05
RETRANSLATE_THRESHOLD = 0.10

_ENGLISH_WORD = re.compile(r"[a-zA-Z]{3,}")
_HANGUL = re.compile(r"[가-힣]")
_MIN_MEANINGFUL_LENGTH = 20


def _is_meaningful_english(text: str) -> bool:
    return len(text) > _MIN_MEANINGFUL_LENGTH and bool(_ENGLISH_WORD.search(text))


def is_suspect_translation(original: Optional[str], translated: Optional[str]) -> bool:
    """True if the translation is blank or an untouched copy of a real sentence."""
    if not translated or not translated.strip():
        return True
    original = original or ""
    return translated == original and _is_meaningful_english(original)


def check_translation_quality(
    originals: Sequence[str],
    translations: Sequence[str],
    threshold: float = FIRST_PASS_THRESHOLD,
    context: str = "",
    debug: Optional[DebugLogger] = None
) -> QualityVerdict:
    """
    Count suspect translations and compare the ratio to ``threshold``.

    Poor quality means ``ratio > threshold`` (strict) on a non-empty list.
    """
    total = len(translations)
    warnings = sum(
        1 for i, t in enumerate(translations)
        if is_suspect_translation(originals[i] if i < len(originals) else "", t)
    )
    ratio = warnings / total if total else 0.0
    verdict = QualityVerdict(
        warning_count=warnings,
        total=total,
        ratio=ratio,
        is_poor_quality=total > 0 and ratio > threshold,
        threshold=threshold,
    )

    if warnings:
        logger.warning(f"[{context}] {warnings}/{total} entries ({ratio * 100:.1f}%) may be poorly translated")
        if verdict.is_poor_quality:
            logger.warning(f"[{context}] poor quality threshold exceeded ({threshold * 100:g}%)")

    if debug is not None:
        debug.log_event(
            EventType.QUALITY_CHECK,
            context=context,
            total_count=total,
            warning_count=warnings,
            ratio=round(ratio, 4),
            is_poor_quality=verdict.is_poor_quality,
            threshold=threshold,
        )

    return verdict


_TECHNICAL_PATTERNS = [
    re.compile(r"^[0-9a-f]{7,40}$"),                        # git hash
    re.compile(r"^[0-9a-f]{7,10}\s"),                       # hash + message
    re.compile(r"^[A-Z][A-Z0-9_]{2,}$"),                    # ENV_VAR
    re.compile(r"^(Ctrl|Alt|Shift|Cmd|Meta)[-+]\w+$", re.IGNORECASE),
    re.compile(r"^`.+`$"),
    re.compile(r"^[@#][\w/.-]+"),
    re.compile(r"^(npm|pnpm|npx|yarn|node|git|bun)\s"),
    re.compile(r"^SHA\d+:\s*[0-9a-f]+", re.IGNORECASE),
    re.compile(r"^[\w./-]+\s*(->|→)\s*[\w./-]+$"),          # a -> b
    re.compile(r"^[\w/-]+/[\w/-]+\s+API$", re.IGNORECASE),
    re.compile(r"PR\s*#?\d+", re.IGNORECASE),
    re.compile(r"^[\w\s]+v?\d[\w\s]*-\s*PR\d*$", re.IGNORECASE),
    re.compile(r"^[\w+/#-]+:\s*(`\.\w+`[,\s]*)+$"),         # "TypeScript: `.ts`, `.tsx`"
    re.compile(r"^(Go|Rust|Java|Swift|Kotlin|Ruby|PHP|C)(,\s*(Go|Rust|Java|Swift|Kotlin|Ruby|PHP|C/C\+\+|C#|C))+$"),
    re.compile(r"^\w+:\s*`\.\w+`"),
    re.compile(r"^(pnpm|npm|yarn)\s+(lint|test|build|install|run)"),
    re.compile(r"^npm\s+i\s+-g\s+\w+"),
    re.compile(r"^@[\w-]+:"),
    re.compile(r"^sqlite\s+\d+$", re.IGNORECASE),
    re.compile(r"^/[\w-]+\s*->\s*/[\w-]+$"),
]
_SHORT_IDENTIFIER = re.compile(r"^[a-z][a-zA-Z0-9_.-]*$")


def is_technical_term(text: Optional[str]) -> bool:
    """True for strings that are expected to stay in English."""
    t = (text or "").strip()
    if not t:
        return True
    if _SHORT_IDENTIFIER.match(t) and len(t) <= 25:
        return True
    return any(p.search(t) for p in _TECHNICAL_PATTERNS)


def needs_retranslation(original: Optional[str], translated: Optional[str]) -> Optional[str]:
    """
    Reason an existing translation should be redone, or None if it is fine.

    Reasons: ``empty``, ``same-as-original``, ``no-korean``.
    """
    value = (translated or "").strip()
    orig = (original or "").strip()

    # written in Korean upstream
    if _HANGUL.search(orig):
        return None
    if is_technical_term(orig):
        return None

    if not value:
        return "empty" if _is_meaningful_english(orig) else None

    if value == orig:
        return "same-as-original" if _is_meaningful_english(orig) else None

    if not _HANGUL.search(value):
        return "no-korean" if len(orig) > _MIN_MEANINGFUL_LENGTH else None

    return None
