"""
Core data models for changelog-ko.

Requests and batches are immutable; ``RunContext`` is the only mutable state
and belongs to exactly one top-level translation run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Set, Tuple
import secrets
from datetime import datetime

from changelog_ko.utils.debug_log import DebugLogger


@dataclass(frozen=True)
class TranslationRequest:
    """Ordered source strings plus batching limits."""
    texts: Tuple[str, ...]
    max_items: int = 20
    max_chars: Optional[int] = None

    @classmethod
    def of(cls, texts, max_items: int = 20, max_chars: Optional[int] = None) -> TranslationRequest:
        return cls(tuple(texts), max_items=max_items, max_chars=max_chars)

    def __len__(self) -> int:
        return len(self.texts)


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of a request; ``offset`` points into the request."""
    offset: int
    texts: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.texts)

    @property
    def char_count(self) -> int:
        return sum(len(t) for t in self.texts)

    @property
    def end(self) -> int:
        return self.offset + len(self.texts)


@dataclass(frozen=True)
class ProviderMeta:
    provider: str
    model: str
    endpoint_type: str

    def to_dict(self) -> Dict[str, str]:
        return {"provider": self.provider, "model": self.model, "endpointType": self.endpoint_type}


@dataclass
class ProviderCallResult:
    """Output of one provider call. Complete when len(translations) == len(batch)."""
    translations: List[str]
    char_count: int
    meta: ProviderMeta


@dataclass(frozen=True)
class QualityVerdict:
    warning_count: int
    total: int
    ratio: float
    is_poor_quality: bool
    threshold: float


@dataclass
class BatchOutcome:
    """Provenance of one batch of the request."""
    offset: int
    size: int
    engine: str
    provider: str
    model: str
    endpoint_type: str
    char_count: int
    supplemented_by: Optional[str] = None
    attempted: List[str] = field(default_factory=list)


@dataclass
class TranslationOutcome:
    """Translations in request order plus per-batch provenance."""
    translations: List[str]
    batches: List[BatchOutcome] = field(default_factory=list)

    @property
    def char_count(self) -> int:
        return sum(b.char_count for b in self.batches)

    def _last(self, attr: str, default: str = "") -> str:
        return getattr(self.batches[-1], attr) if self.batches else default

    @property
    def engine(self) -> str:
        return self._last("engine", "mock")

    @property
    def provider(self) -> str:
        return self._last("provider", "mock")

    @property
    def model(self) -> str:
        return self._last("model")

    @property
    def endpoint_type(self) -> str:
        return self._last("endpoint_type")

    @property
    def is_degraded(self) -> bool:
        """True if any batch fell through to the identity provider."""
        return any(b.engine == "mock" for b in self.batches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "translations": list(self.translations),
            "engine": self.engine,
            "provider": self.provider,
            "model": self.model,
            "endpointType": self.endpoint_type,
            "charCount": self.char_count,
            "degraded": self.is_degraded,
        }


@dataclass
class GroupResult:
    """Translations for one upstream group (e.g. one changelog version)."""
    translations: List[str]
    char_count: int
    engine: str
    provider: str
    model: str
    endpoint_type: str


def _new_run_id() -> str:
    return f"{datetime.now().strftime('%Y-%m-%d')}-{secrets.token_hex(3)}"


@dataclass
class RunContext:
    """
    Per-invocation state threaded through every call.

    Holds the (provider, model) pairs whose quota ran out during this run and
    the debug logger for the run. Create a fresh context per run.
    """
    run_id: str = field(default_factory=_new_run_id)
    exhausted: Set[Tuple[str, str]] = field(default_factory=set)
    debug: DebugLogger = field(default_factory=DebugLogger)

    def mark_exhausted(self, provider: str, model: str) -> None:
        self.exhausted.add((provider, model))

    def is_exhausted(self, provider: str, model: str) -> bool:
        return (provider, model) in self.exhausted

    def exhausted_models(self, provider: str) -> List[str]:
        return sorted(m for p, m in self.exhausted if p == provider)
