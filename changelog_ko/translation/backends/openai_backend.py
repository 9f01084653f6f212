"""OpenAI-compatible chat completions backend."""

from typing import Any, List, Optional, Tuple

import httpx
import openai
from openai import OpenAI

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from ..base import CONNECT_TIMEOUT, TranslationProvider
from ..errors import classify_http_error
from ..prompts import SYSTEM_PROMPT, build_translation_prompt, parse_numbered_response


class OpenAIProvider(TranslationProvider):
    """OpenAI GPT-based translation backend."""

    name = "openai"
    endpoint_type = "openai-compatible"
    default_model = "gpt-4o"
    batch_delay = 0.3
    max_tokens = 8192

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Any = None,
        **kwargs
    ):
        super().__init__(api_key=api_key, model=model, **kwargs)
        self.base_url = base_url or None
        self._client = client

    @property
    def client(self):
        """Lazily built SDK client; SDK retries are off so only our retry loop runs."""
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def _build_messages(self, texts: List[str]):
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_translation_prompt(texts, self.source_lang, self.target_lang)},
        ]

    def classify_error(self, status: Optional[int], body: str) -> ErrorKind:
        return classify_http_error(status, body)

    def _request(self, texts: List[str], model: str, timeout: float) -> Tuple[List[str], int]:
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self._build_messages(texts),
                temperature=0.3,
                max_tokens=self.max_tokens,
                timeout=httpx.Timeout(timeout, connect=min(CONNECT_TIMEOUT, timeout)),
            )
        except openai.APITimeoutError as e:
            raise ProviderError(ErrorKind.SERVER, self.name, f"timed out after {timeout}s",
                                model=model, original_error=e)
        except openai.APIConnectionError as e:
            raise ProviderError(ErrorKind.SERVER, self.name, f"connection failed: {e}",
                                model=model, original_error=e)
        except openai.APIStatusError as e:
            body = e.response.text
            raise ProviderError(self.classify_error(e.status_code, body), self.name,
                                f"HTTP {e.status_code}: {body[:500]}", model=model,
                                http_status=e.status_code, body=body, original_error=e)

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if not content:
            raise ProviderError(ErrorKind.PARSE, self.name, "empty completion in response",
                                model=model, http_status=200)

        return parse_numbered_response(content, len(texts)), 200
