"""
Complete a partial provider result.

Only the missing slots are sent to a supplementary call; anything that is
still missing afterwards keeps its source text, so the merged list always has
one entry per input.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from changelog_ko.core.exceptions import ChangelogKoError
from changelog_ko.core.models import ProviderCallResult
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MergeResult:
    translations: List[str]
    filled_indices: List[int] = field(default_factory=list)      # completed by the supplement
    defaulted_indices: List[int] = field(default_factory=list)   # left as source text
    supplement: Optional[ProviderCallResult] = None


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def find_missing_indices(partial: Sequence[Optional[str]], expected: int) -> List[int]:
    """Indices in ``range(expected)`` with no usable translation."""
    return [i for i in range(expected) if i >= len(partial) or _is_blank(partial[i])]


def merge_partial_result(
    texts: Sequence[str],
    partial: Sequence[Optional[str]],
    supplement: Callable[[List[str]], ProviderCallResult]
) -> MergeResult:
    """
    Fill the gaps of ``partial`` with one ``supplement`` call.

    Args:
        texts: Source texts of the batch
        partial: Translations that did arrive, positionally aligned
        supplement: Called once with the missing source texts

    Returns:
        MergeResult whose translations match ``texts`` in length and order
    """
    merged = [partial[i] if i < len(partial) else None for i in range(len(texts))]
    missing = find_missing_indices(partial, len(texts))
    if not missing:
        return MergeResult(translations=list(merged))

    missing_texts = [texts[i] for i in missing]
    extra: List[str] = []
    supplement_result = None
    try:
        supplement_result = supplement(missing_texts)
        extra = supplement_result.translations
    except ChangelogKoError as e:
        logger.warning(f"Supplementary translation of {len(missing)} entries failed: {e.message}")

    filled, defaulted = [], []
    for k, index in enumerate(missing):
        value = extra[k] if k < len(extra) else None
        if _is_blank(value):
            merged[index] = texts[index]
            defaulted.append(index)
        else:
            merged[index] = value
            filled.append(index)

    if defaulted:
        logger.warning(f"{len(defaulted)} entries kept their source text after supplementing")

    return MergeResult(
        translations=merged,
        filled_indices=filled,
        defaulted_indices=defaulted,
        supplement=supplement_result,
    )
