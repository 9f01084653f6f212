"""
Base translation provider interface.
All translation providers must inherit from TranslationProvider.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from changelog_ko.core.models import ProviderCallResult, ProviderMeta
from changelog_ko.translation.errors import classify_http_error
from changelog_ko.utils.debug_log import DebugLogger

_DISABLED_DEBUG = DebugLogger(enabled=False)

# Seconds allowed to open a connection. The per-attempt timeout bounds each
# wait for response bytes, not the whole request.
CONNECT_TIMEOUT = 10.0

_KEY_IN_URL = re.compile(r"(key=)[^&\s'\"]+", re.IGNORECASE)


def scrub_secrets(text: str) -> str:
    """Mask credentials that transport errors echo back inside request URLs."""
    return _KEY_IN_URL.sub(r"\1[REDACTED]", text)


def split_timeout(timeout: float) -> Tuple[float, float]:
    """(connect, read) pair for ``requests``; connect never exceeds ``timeout``."""
    return min(CONNECT_TIMEOUT, timeout), timeout


@dataclass
class TranslateOptions:
    """Per-call options for a provider."""
    model: Optional[str] = None
    timeout: Optional[float] = None   # per-attempt seconds
    attempt: int = 0
    call_key: Optional[str] = None
    debug: Optional[DebugLogger] = None


class TranslationProvider(ABC):
    """
    Abstract base class for translation providers.

    Subclasses implement ``_request`` for one network round trip. The base
    class handles empty input, debug events and the complete-result check.
    """

    name = "base"
    endpoint_type = "unknown"
    default_model = ""
    batch_delay = 0.0      # seconds to pause after a batch served by this provider
    default_timeout = 60.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        batch_delay: Optional[float] = None,
        source_lang: str = "en",
        target_lang: str = "ko"
    ):
        self.api_key = api_key or None
        self.model = model or self.default_model
        if batch_delay is not None:
            self.batch_delay = batch_delay
        self.source_lang = source_lang
        self.target_lang = target_lang

    @abstractmethod
    def _request(self, texts: List[str], model: str, timeout: float) -> Tuple[List[str], int]:
        """
        Issue one network call.

        Returns:
            (translations in input order, HTTP status)

        Raises:
            ProviderError: classified failure
        """

    def is_available(self) -> bool:
        """Check if provider is configured with credentials."""
        return self.api_key is not None

    def meta(self, model: Optional[str] = None) -> ProviderMeta:
        return ProviderMeta(provider=self.name, model=model or self.model, endpoint_type=self.endpoint_type)

    def get_info(self) -> Dict[str, Any]:
        """Get provider information."""
        return {
            "name": self.name,
            "model": self.model,
            "endpoint_type": self.endpoint_type,
            "available": self.is_available()
        }

    def translate_sync(self, texts: Sequence[str], options: Optional[TranslateOptions] = None) -> ProviderCallResult:
        """
        Translate texts in one call.

        Args:
            texts: Source strings in order
            options: Model override, timeout, attempt number, debug logger

        Returns:
            ProviderCallResult with exactly len(texts) translations

        Raises:
            ProviderError: classified failure; a short result raises a
                partial error carrying what did arrive
        """
        options = options or TranslateOptions()
        model = options.model or self.model
        meta = self.meta(model)

        if not texts:
            return ProviderCallResult(translations=[], char_count=0, meta=meta)

        texts = list(texts)
        char_count = sum(len(t) for t in texts)
        timeout = options.timeout or self.default_timeout
        debug = options.debug or _DISABLED_DEBUG
        call_key = options.call_key or f"{self.name}-{model}-attempt-{options.attempt}"

        debug.log_provider_call(
            "request", call_key=call_key, provider=self.name, model=model,
            endpoint_type=self.endpoint_type, batch_size=len(texts), char_count=char_count
        )

        try:
            if not self.is_available():
                raise ProviderError(ErrorKind.AUTH, self.name, "API key not configured", model=model)
            translations, http_status = self._request(texts, model, timeout)
        except ProviderError as e:
            e.model = e.model or model
            debug.log_provider_call(
                "error", call_key=call_key, provider=self.name, model=model,
                error_class=e.kind.value, error_message=e.message,
                http_status=e.http_status, retry_count=options.attempt
            )
            raise

        debug.log_provider_call(
            "success", call_key=call_key, provider=self.name, model=model,
            batch_size=len(texts), char_count=char_count, http_status=http_status
        )

        if len(translations) < len(texts):
            raise ProviderError.partial(self.name, model, translations, len(texts))

        return ProviderCallResult(
            translations=list(translations[:len(texts)]),
            char_count=char_count,
            meta=meta
        )

    async def translate(self, texts: Sequence[str], options: Optional[TranslateOptions] = None) -> ProviderCallResult:
        """Translate asynchronously (runs the sync call in a worker thread)."""
        return await asyncio.to_thread(self.translate_sync, texts, options)


class HTTPTranslationProvider(TranslationProvider):
    """Provider that talks JSON over HTTP with ``requests``."""

    def __init__(self, *args, session: Optional[requests.Session] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = session or requests.Session()

    def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        model: str,
        timeout: float,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None
    ) -> Tuple[Dict[str, Any], int]:
        """POST ``payload`` and return (parsed JSON, status), classifying failures."""
        try:
            response = self.session.post(
                url, json=payload, headers=headers, params=params, timeout=split_timeout(timeout)
            )
        except requests.exceptions.Timeout as e:
            raise ProviderError(ErrorKind.SERVER, self.name, f"timed out after {timeout}s",
                                model=model) from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(ErrorKind.SERVER, self.name, f"connection failed: {scrub_secrets(str(e))}",
                                model=model) from e

        if not response.ok:
            body = response.text
            kind = self.classify_error(response.status_code, body)
            raise ProviderError(kind, self.name, f"HTTP {response.status_code}: {body[:500]}",
                                model=model, http_status=response.status_code, body=body)

        try:
            return response.json(), response.status_code
        except ValueError as e:
            raise ProviderError(ErrorKind.PARSE, self.name, "response is not valid JSON",
                                model=model, http_status=response.status_code, original_error=e)

    def classify_error(self, status: int, body: str) -> ErrorKind:
        return classify_http_error(status, body)
