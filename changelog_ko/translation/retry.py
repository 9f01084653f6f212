"""
Bounded retries with exponential backoff for a single provider call.

``backoff_delay`` is a pure function of the attempt number. ``retry_call`` is
a provider-agnostic combinator driven by an is-retryable predicate over
``ProviderError``.
"""

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from changelog_ko.core.exceptions import ProviderError
from changelog_ko.translation.base import TranslateOptions
from changelog_ko.translation.errors import is_overload
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one provider call."""
    max_attempts: int = 3
    base_delay: float = 5.0     # seconds before the first retry
    max_delay: float = 60.0
    jitter: float = 1.0         # +/- seconds
    overload_fail_fast: int = 2  # consecutive overload failures before giving up
    timeout: float = 60.0       # per-attempt wall-clock budget, seconds

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RetryPolicy":
        retry = config.get("retry", {})
        defaults = cls()
        return cls(
            max_attempts=int(retry.get("max_attempts", defaults.max_attempts)),
            base_delay=float(retry.get("base_delay", defaults.base_delay)),
            max_delay=float(retry.get("max_delay", defaults.max_delay)),
            jitter=float(retry.get("jitter", defaults.jitter)),
            overload_fail_fast=int(retry.get("overload_fail_fast", defaults.overload_fail_fast)),
            timeout=float(retry.get("timeout", defaults.timeout)),
        )


def backoff_delay(attempt: int, policy: RetryPolicy, rng: Optional[random.Random] = None) -> float:
    """
    Delay in seconds before retry number ``attempt`` (1-based).

    ``min(base * 2**(attempt-1), max_delay)`` plus uniform jitter in
    ``[-jitter, +jitter]``, never negative and never above ``max_delay``.
    """
    if attempt < 1:
        return 0.0
    delay = min(policy.base_delay * (2 ** (attempt - 1)), policy.max_delay)
    if policy.jitter:
        rng = rng or random
        delay += rng.uniform(-policy.jitter, policy.jitter)
    return max(0.0, min(delay, policy.max_delay))


def default_is_retryable(error: ProviderError) -> bool:
    return error.is_retryable


def retry_call(
    fn: Callable[[int], T],
    policy: RetryPolicy = RetryPolicy(),
    is_retryable: Callable[[ProviderError], bool] = default_is_retryable,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, ProviderError, float], None]] = None,
    rng: Optional[random.Random] = None
) -> T:
    """
    Call ``fn(attempt)`` until it succeeds or the budget is spent.

    Args:
        fn: The call to make; receives the 0-based attempt number
        policy: Attempts, backoff and fail-fast settings
        is_retryable: Predicate deciding whether an error is worth retrying
        sleep: Sleep function (injected in tests)
        on_retry: Callback(next_attempt, error, delay) before each retry
        rng: Random source for jitter

    Returns:
        Whatever ``fn`` returns

    Raises:
        ProviderError: The last error, with ``retry_count`` set
    """
    consecutive_overloads = 0

    for attempt in range(policy.max_attempts):
        try:
            return fn(attempt)
        except ProviderError as error:
            error.retry_count = attempt

            if not is_retryable(error):
                raise

            if is_overload(error.http_status, error.body):
                consecutive_overloads += 1
            else:
                consecutive_overloads = 0

            if policy.overload_fail_fast and consecutive_overloads >= policy.overload_fail_fast:
                logger.warning(
                    f"{error.provider} overloaded {consecutive_overloads}x in a row, giving up early"
                )
                raise

            if attempt + 1 >= policy.max_attempts:
                raise

            delay = backoff_delay(attempt + 1, policy, rng)
            logger.warning(
                f"{error.provider} {error.kind.value} error, retry "
                f"{attempt + 1}/{policy.max_attempts - 1} in {delay:.1f}s"
            )
            if on_retry:
                on_retry(attempt + 1, error, delay)
            sleep(delay)

    # max_attempts < 1
    raise ValueError(f"max_attempts must be >= 1, got {policy.max_attempts}")


def call_provider(
    provider,
    texts,
    context,
    model: Optional[str] = None,
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], None] = time.sleep
):
    """
    Run one provider call for ``texts`` under ``policy``.

    Each attempt gets the per-attempt timeout and the run's debug logger.
    """
    def attempt_call(attempt: int):
        return provider.translate_sync(texts, TranslateOptions(
            model=model,
            timeout=policy.timeout,
            attempt=attempt,
            debug=context.debug,
        ))

    return retry_call(attempt_call, policy=policy, sleep=sleep)
