"""
Translation orchestrator.

Splits a request into batches and runs each batch through the fallback
chain: retries inside a provider, quota-aware model switching for Gemini,
a quality gate on every real provider's output, and completion of partial
results by the providers after the one that came up short. The identity
provider closes every chain, so ``translate`` only raises if even that fails.
"""

import time
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from changelog_ko.core.exceptions import ErrorKind, ProviderError, TranslationFailedError
from changelog_ko.core.models import (
    BatchOutcome, GroupResult, ProviderCallResult, RunContext, TranslationOutcome
)
from changelog_ko.translation.backends import GeminiProvider, ProviderTable, build_provider_table
from changelog_ko.translation.base import TranslationProvider
from changelog_ko.translation.batching import DEFAULT_MAX_ITEMS, create_batches
from changelog_ko.translation.fallback import FallbackPolicy
from changelog_ko.translation.merger import merge_partial_result
from changelog_ko.translation.model_chain import translate_with_model_chain
from changelog_ko.translation.output_cleaner import strip_prefix
from changelog_ko.translation.quality import FIRST_PASS_THRESHOLD, check_translation_quality
from changelog_ko.translation.retry import RetryPolicy, call_provider
from changelog_ko.utils.debug_log import DebugLogger, EventType
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)


def engine_label(provider: TranslationProvider, model: Optional[str]) -> str:
    """Provenance label: ``gemini`` for the first Gemini model, else the model id, else the provider."""
    if isinstance(provider, GeminiProvider):
        if not model or model == provider.models[0]:
            return "gemini"
        return model
    return provider.name


class TranslationOrchestrator:
    """Runs batches through the provider fallback chain."""

    def __init__(
        self,
        providers: ProviderTable,
        policy: FallbackPolicy,
        retry_policy: RetryPolicy = RetryPolicy(),
        quality_threshold: float = FIRST_PASS_THRESHOLD,
        max_items: int = DEFAULT_MAX_ITEMS,
        max_chars: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.providers = providers
        self.policy = policy
        self.retry_policy = retry_policy
        self.quality_threshold = quality_threshold
        self.max_items = max_items
        self.max_chars = max_chars
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        providers: Optional[ProviderTable] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> "TranslationOrchestrator":
        """
        Build an orchestrator from a loaded config.

        Raises:
            ConfigurationError: invalid engine or fallback chain
        """
        providers = providers or build_provider_table(config)
        translation = config.get("translation", {})
        return cls(
            providers=providers,
            policy=FallbackPolicy.from_config(config, providers),
            retry_policy=RetryPolicy.from_config(config),
            quality_threshold=float(config.get("quality", {}).get("first_pass_threshold", FIRST_PASS_THRESHOLD)),
            max_items=int(translation.get("max_batch_items", DEFAULT_MAX_ITEMS)),
            max_chars=translation.get("max_batch_chars"),
            sleep=sleep,
        )

    def new_context(self, debug: Optional[DebugLogger] = None, **metadata) -> RunContext:
        """Create a RunContext and open its debug session."""
        context = RunContext(debug=debug or DebugLogger())
        context.debug.start_session(
            run_id=context.run_id,
            engine=self.policy.select_primary_engine(),
            fallback_chain=",".join(self.policy.chain),
            **metadata
        )
        return context

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(self, texts: Sequence[str], context: Optional[RunContext] = None) -> TranslationOutcome:
        """
        Translate ``texts`` preserving order.

        Args:
            texts: Source strings
            context: Run state; a fresh one is created if omitted

        Returns:
            TranslationOutcome with one translation per input

        Raises:
            TranslationFailedError: every provider, identity included, failed
        """
        context = context or RunContext()
        texts = list(texts)
        if not texts:
            return TranslationOutcome(translations=[])

        batches = create_batches(texts, self.max_items, self.max_chars)
        translations: List[str] = [""] * len(texts)
        outcomes: List[BatchOutcome] = []

        for i, batch in enumerate(batches):
            logger.info(f"Translating batch {i + 1}/{len(batches)} ({len(batch)} items, {batch.char_count} chars)")
            try:
                batch_translations, outcome = self._run_chain(
                    list(batch.texts), self.policy.provider_order(), context, f"batch {i + 1}/{len(batches)}"
                )
            except TranslationFailedError as e:
                context.debug.log_run_error(e, error_class="translation_failed")
                raise

            outcome.offset = batch.offset
            translations[batch.offset:batch.end] = batch_translations
            outcomes.append(outcome)

            if i < len(batches) - 1:
                provider = self.providers.get(outcome.provider)
                delay = provider.batch_delay if provider else 0.0
                if delay:
                    self.sleep(delay)

        result = TranslationOutcome(translations=translations, batches=outcomes)
        if result.is_degraded:
            logger.warning(f"{sum(1 for b in outcomes if b.engine == 'mock')} batch(es) fell back to untranslated text")
        return result

    def translate_groups(
        self,
        groups: Dict[str, List[str]],
        context: Optional[RunContext] = None
    ) -> Dict[str, GroupResult]:
        """
        Translate several groups (e.g. changelog versions) in one request.

        Texts are flattened in group order, translated together and split
        back; every translation is passed through ``strip_prefix``.
        """
        flat: List[str] = []
        spans: Dict[str, Tuple[int, int]] = {}
        for group_id, originals in groups.items():
            spans[group_id] = (len(flat), len(flat) + len(originals))
            flat.extend(originals)

        outcome = self.translate(flat, context)

        results = {}
        for group_id, (start, end) in spans.items():
            covering = [b for b in outcome.batches if b.offset < end and b.offset + b.size > start]
            source = covering[-1] if covering else None
            originals = flat[start:end]
            results[group_id] = GroupResult(
                translations=[
                    strip_prefix(t if t else original)
                    for t, original in zip(outcome.translations[start:end], originals)
                ],
                char_count=sum(len(t) for t in originals),
                engine=source.engine if source else outcome.engine,
                provider=source.provider if source else outcome.provider,
                model=source.model if source else outcome.model,
                endpoint_type=source.endpoint_type if source else outcome.endpoint_type,
            )
        return results

    # ------------------------------------------------------------------
    # Chain
    # ------------------------------------------------------------------

    def _call(self, provider: TranslationProvider, texts: List[str], context: RunContext):
        """One provider, with retries and (for Gemini) the model chain. None if all models are spent."""
        call = partial(call_provider, policy=self.retry_policy, sleep=self.sleep)

        if isinstance(provider, GeminiProvider):
            chain = translate_with_model_chain(
                provider, texts, provider.models, context,
                call=lambda p, t, c, model: call(p, t, c, model=model)
            )
            if chain.is_exhausted:
                return None
            return chain.result, chain.model

        result = call(provider, texts, context, model=provider.model)
        return result, provider.model

    def _next_available(self, order: List[str], position: int) -> Optional[str]:
        for name in order[position + 1:]:
            if self.providers.is_available(name):
                return name
        return None

    def _log_fallback(self, context: RunContext, order: List[str], position: int, reason: str, error_class: str):
        to_provider = self._next_available(order, position)
        logger.warning(f"{order[position]} failed ({reason}), falling back to {to_provider or 'nothing'}")
        context.debug.log_event(
            EventType.FALLBACK,
            from_provider=order[position],
            to_provider=to_provider,
            reason=reason,
            error_class=error_class,
        )

    def _outcome(self, provider: TranslationProvider, model: str, result: ProviderCallResult,
                 attempted: List[str]) -> BatchOutcome:
        return BatchOutcome(
            offset=0,
            size=len(result.translations),
            engine=engine_label(provider, model),
            provider=result.meta.provider,
            model=result.meta.model,
            endpoint_type=result.meta.endpoint_type,
            char_count=result.char_count,
            attempted=list(attempted),
        )

    def _run_chain(
        self,
        texts: List[str],
        order: List[str],
        context: RunContext,
        label: str
    ) -> Tuple[List[str], BatchOutcome]:
        """
        Walk ``order`` until a provider returns a complete, acceptable result.

        A poor-quality result is discarded and the next provider tried, so
        the identity output is the worst case.
        """
        attempted: List[str] = []
        last_error: Optional[Exception] = None

        for position, name in enumerate(order):
            provider = self.providers.get(name)
            if provider is None or not provider.is_available():
                logger.debug(f"Skipping {name}: not configured")
                continue

            attempted.append(name)
            try:
                called = self._call(provider, texts, context)
            except ProviderError as e:
                if e.is_partial:
                    return self._complete_partial(texts, e, provider, order, position, context, attempted, label)
                last_error = e
                self._log_fallback(context, order, position, reason=str(e.message)[:200],
                                   error_class=e.kind.value)
                continue

            if called is None:
                last_error = ProviderError.quota_exhausted(name, ",".join(context.exhausted_models(name)))
                self._log_fallback(context, order, position, reason="all models exhausted",
                                   error_class=ErrorKind.QUOTA.value)
                continue

            result, model = called
            outcome = self._outcome(provider, model, result, attempted)

            if name != "mock":
                verdict = check_translation_quality(
                    texts, result.translations, self.quality_threshold,
                    context=f"{label} ({outcome.engine})", debug=context.debug
                )
                if verdict.is_poor_quality:
                    self._log_fallback(context, order, position, reason="poor quality", error_class="quality")
                    continue

            return result.translations, outcome

        raise TranslationFailedError(attempted, last_error)

    def _complete_partial(
        self,
        texts: List[str],
        error: ProviderError,
        provider: TranslationProvider,
        order: List[str],
        position: int,
        context: RunContext,
        attempted: List[str],
        label: str
    ) -> Tuple[List[str], BatchOutcome]:
        """Fill the slots a provider left empty using the providers after it."""
        received = error.partial_translations or []
        logger.warning(
            f"[{label}] partial result from {provider.name} ({len(received)}/{len(texts)}), "
            f"completing missing entries with fallback chain"
        )
        rest = order[position + 1:]
        supplement_outcome: Dict[str, BatchOutcome] = {}

        def supplement(missing: List[str]) -> ProviderCallResult:
            translations, outcome = self._run_chain(missing, rest, context, f"{label} supplement")
            supplement_outcome["outcome"] = outcome
            return ProviderCallResult(
                translations=translations,
                char_count=outcome.char_count,
                meta=provider.meta(outcome.model)
            )

        if rest:
            self._log_fallback(context, order, position, reason="partial result",
                               error_class=ErrorKind.PARSE.value)
        merged = merge_partial_result(texts, received, supplement if rest else _no_supplement)

        extra = supplement_outcome.get("outcome")
        model = error.model or provider.model
        meta = provider.meta(model)
        outcome = BatchOutcome(
            offset=0,
            size=len(texts),
            engine=engine_label(provider, model),
            provider=meta.provider,
            model=meta.model,
            endpoint_type=meta.endpoint_type,
            char_count=sum(len(t) for t in texts) + (extra.char_count if extra else 0),
            supplemented_by=extra.engine if extra else None,
            attempted=list(attempted) + ([a for a in extra.attempted if a not in attempted] if extra else []),
        )
        return merged.translations, outcome


def _no_supplement(missing: List[str]) -> ProviderCallResult:
    raise ProviderError(ErrorKind.UNKNOWN, "none", "no providers left to complete the result")
