"""Zhipu GLM backend (OpenAI-compatible endpoint)."""

from typing import Optional

from changelog_ko.core.exceptions import ErrorKind
from .openai_backend import OpenAIProvider

DEFAULT_GLM_BASE_URL = "https://api.z.ai/api/coding/paas/v4"


class GLMProvider(OpenAIProvider):
    """GLM chat completions through the OpenAI SDK."""

    name = "glm"
    default_model = "glm-5"
    batch_delay = 0.5

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, **kwargs):
        super().__init__(api_key=api_key, model=model, base_url=base_url or DEFAULT_GLM_BASE_URL, **kwargs)
        self.endpoint_type = "coding" if "coding" in self.base_url else "general"

    def classify_error(self, status: Optional[int], body: str) -> ErrorKind:
        # The coding plan reports its spent allowance as a bare 429.
        if status == 429:
            return ErrorKind.QUOTA
        return super().classify_error(status, body)
