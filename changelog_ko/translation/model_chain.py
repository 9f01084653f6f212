"""
Ordered model list for one provider with quota-aware switching.

When a model's daily quota runs out, the (provider, model) pair is recorded in
the RunContext and skipped by every later batch of the same run.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from changelog_ko.core.models import ProviderCallResult, RunContext
from changelog_ko.translation.base import TranslationProvider
from changelog_ko.translation.retry import call_provider
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)

# call(provider, texts, context, model) -> ProviderCallResult
ModelCall = Callable[[TranslationProvider, Sequence[str], RunContext, str], ProviderCallResult]


@dataclass
class ModelChainOutcome:
    result: Optional[ProviderCallResult]
    model: Optional[str]

    @classmethod
    def exhausted(cls) -> "ModelChainOutcome":
        """Every model in the chain is out of quota for this run."""
        return cls(result=None, model=None)

    @property
    def is_exhausted(self) -> bool:
        return self.result is None


def _default_call(provider, texts, context, model):
    return call_provider(provider, texts, context, model=model)


def translate_with_model_chain(
    provider: TranslationProvider,
    texts: Sequence[str],
    models: Sequence[str],
    context: RunContext,
    call: ModelCall = _default_call
) -> ModelChainOutcome:
    """
    Try each model in order until one succeeds.

    Quota errors mark the model exhausted and move on; any other error
    propagates to the caller.
    """
    for index, model in enumerate(models):
        if context.is_exhausted(provider.name, model):
            logger.debug(f"{provider.name}/{model} already exhausted this run, skipping")
            continue

        try:
            result = call(provider, texts, context, model)
        except ProviderError as e:
            if e.kind != ErrorKind.QUOTA:
                raise
            context.mark_exhausted(provider.name, model)
            remaining = [m for m in models[index + 1:] if not context.is_exhausted(provider.name, m)]
            if remaining:
                logger.warning(f"{provider.name}/{model} quota exhausted, switching to {remaining[0]}")
            else:
                logger.warning(f"{provider.name}/{model} quota exhausted, no models left")
            continue

        return ModelChainOutcome(result=result, model=model)

    return ModelChainOutcome.exhausted()
