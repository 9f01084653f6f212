"""Google Cloud Translation (v2) backend."""

from typing import List, Tuple

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from ..base import HTTPTranslationProvider
from ..output_cleaner import strip_conventional_prefix
from ..prompts import PlaceholderManager

GOOGLE_TRANSLATE_ENDPOINT = "https://translation.googleapis.com/language/translate/v2"


class GoogleTranslateProvider(HTTPTranslationProvider):
    """
    Plain machine translation.

    Commit prefixes are stripped before sending and code, URLs and paths are
    masked with placeholders, since the engine has no instructions to follow.
    """

    name = "google"
    endpoint_type = "google-translate-v2"
    default_model = "nmt"
    batch_delay = 0.1

    def _request(self, texts: List[str], model: str, timeout: float) -> Tuple[List[str], int]:
        managers = [PlaceholderManager() for _ in texts]
        protected = [m.protect(strip_conventional_prefix(t)) for m, t in zip(managers, texts)]

        data, status = self._post_json(
            GOOGLE_TRANSLATE_ENDPOINT,
            {"q": protected, "source": self.source_lang, "target": self.target_lang, "format": "text"},
            model,
            timeout,
            headers={"x-goog-api-key": self.api_key},
        )

        try:
            translated = [item["translatedText"] for item in data["data"]["translations"]]
        except (KeyError, TypeError):
            raise ProviderError(ErrorKind.PARSE, self.name, "unexpected Translation API response format",
                                model=model, http_status=status)

        return [m.restore(t) for m, t in zip(managers, translated)], status
