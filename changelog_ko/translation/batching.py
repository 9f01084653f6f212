"""Split ordered source strings into bounded batches."""

from typing import List, Optional, Sequence

from changelog_ko.core.models import Batch

DEFAULT_MAX_ITEMS = 20


def create_batches(
    texts: Sequence[str],
    max_items: int = DEFAULT_MAX_ITEMS,
    max_chars: Optional[int] = None
) -> List[Batch]:
    """
    Greedily group texts by item count and cumulative character length.

    A new batch starts when adding the next text would exceed either limit.
    A single text longer than ``max_chars`` is placed alone in its own batch.
    Concatenating the batches reproduces ``texts`` in order.

    Args:
        texts: Source strings in request order
        max_items: Maximum texts per batch
        max_chars: Maximum summed length per batch (None = unbounded)

    Returns:
        Batches carrying their offset into ``texts``
    """
    if max_items < 1:
        raise ValueError(f"max_items must be >= 1, got {max_items}")
    if max_chars is not None and max_chars < 1:
        raise ValueError(f"max_chars must be >= 1, got {max_chars}")

    batches: List[Batch] = []
    current: List[str] = []
    current_chars = 0
    offset = 0

    for text in texts:
        too_many = len(current) >= max_items
        too_long = (
            max_chars is not None
            and current
            and current_chars + len(text) > max_chars
        )
        if too_many or too_long:
            batches.append(Batch(offset=offset, texts=tuple(current)))
            offset += len(current)
            current = []
            current_chars = 0

        current.append(text)
        current_chars += len(text)

    if current:
        batches.append(Batch(offset=offset, texts=tuple(current)))

    return batches
