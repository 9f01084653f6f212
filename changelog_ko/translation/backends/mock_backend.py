"""Identity backend, the last resort of every fallback chain."""

from typing import List, Tuple

from ..base import TranslationProvider


class MockProvider(TranslationProvider):
    """Returns the source texts unchanged. Always available, never fails."""

    name = "mock"
    endpoint_type = "mock"
    default_model = "mock"
    batch_delay = 0.0

    def is_available(self) -> bool:
        return True

    def _request(self, texts: List[str], model: str, timeout: float) -> Tuple[List[str], int]:
        return list(texts), 200
