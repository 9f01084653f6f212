"""Google Gemini translation backend."""

from typing import List, Optional, Sequence, Tuple

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from ..base import HTTPTranslationProvider
from ..prompts import build_translation_prompt, parse_numbered_response

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_GEMINI_MODELS = ("gemini-3-flash-preview", "gemini-2.5-flash")


class GeminiProvider(HTTPTranslationProvider):
    """Gemini generateContent backend with a per-run model list."""

    name = "gemini"
    endpoint_type = "gemini"
    default_model = DEFAULT_GEMINI_MODELS[0]
    batch_delay = 13.0  # free tier allows ~5 requests per minute

    def __init__(self, api_key: Optional[str] = None, models: Optional[Sequence[str]] = None, **kwargs):
        self.models = tuple(m for m in (models or DEFAULT_GEMINI_MODELS) if m)
        super().__init__(api_key=api_key, model=self.models[0], **kwargs)

    def _request(self, texts: List[str], model: str, timeout: float) -> Tuple[List[str], int]:
        prompt = build_translation_prompt(texts, self.source_lang, self.target_lang)
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.3,
                "maxOutputTokens": 4096,
            },
        }
        data, status = self._post_json(
            GEMINI_ENDPOINT.format(model=model),
            payload,
            model,
            timeout,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
        )

        try:
            response_text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(ErrorKind.PARSE, self.name, "unexpected Gemini response format",
                                model=model, http_status=status)

        return parse_numbered_response(response_text, len(texts)), status
