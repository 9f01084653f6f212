"""Translation backend implementations."""

from typing import Any, Dict, Iterator, List, Optional

from .gemini_backend import GeminiProvider, DEFAULT_GEMINI_MODELS
from .glm_backend import GLMProvider
from .openai_backend import OpenAIProvider
from .google_backend import GoogleTranslateProvider
from .mock_backend import MockProvider
from ..base import TranslationProvider


class ProviderTable:
    """Name -> provider lookup, built once per process and injected."""

    def __init__(self, providers: Optional[List[TranslationProvider]] = None):
        self._providers: Dict[str, TranslationProvider] = {}
        for provider in providers or []:
            self.register(provider)
        if "mock" not in self._providers:
            self.register(MockProvider())

    def register(self, provider: TranslationProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> Optional[TranslationProvider]:
        return self._providers.get(name)

    def __getitem__(self, name: str) -> TranslationProvider:
        return self._providers[name]

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def is_available(self, name: str) -> bool:
        provider = self._providers.get(name)
        return provider is not None and provider.is_available()

    def available(self) -> List[str]:
        return [name for name, p in self._providers.items() if p.is_available()]


def build_provider_table(config: Dict[str, Any], session=None, client_factory=None) -> ProviderTable:
    """
    Build every known provider from a loaded config.

    Args:
        config: Config from ``load_config``
        session: Optional ``requests.Session`` shared by HTTP providers
        client_factory: Optional callable(provider_name) -> OpenAI-like client

    Returns:
        ProviderTable with gemini, glm, openai, google and mock
    """
    providers_cfg = config.get("providers", {})
    translation_cfg = config.get("translation", {})
    langs = {
        "source_lang": translation_cfg.get("source_lang", "en"),
        "target_lang": translation_cfg.get("target_lang", "ko"),
    }

    def section(name):
        return providers_cfg.get(name, {}) or {}

    def client_for(name):
        return client_factory(name) if client_factory else None

    gemini = section("gemini")
    glm = section("glm")
    openai_cfg = section("openai")
    google = section("google")

    return ProviderTable([
        GeminiProvider(
            api_key=gemini.get("api_key"),
            models=gemini.get("models") or DEFAULT_GEMINI_MODELS,
            batch_delay=gemini.get("batch_delay"),
            session=session,
            **langs
        ),
        GLMProvider(
            api_key=glm.get("api_key"),
            model=glm.get("model"),
            base_url=glm.get("base_url"),
            batch_delay=glm.get("batch_delay"),
            client=client_for("glm"),
            **langs
        ),
        OpenAIProvider(
            api_key=openai_cfg.get("api_key"),
            model=openai_cfg.get("model"),
            base_url=openai_cfg.get("base_url"),
            batch_delay=openai_cfg.get("batch_delay"),
            client=client_for("openai"),
            **langs
        ),
        GoogleTranslateProvider(
            api_key=google.get("api_key"),
            batch_delay=google.get("batch_delay"),
            session=session,
            **langs
        ),
        MockProvider(**langs),
    ])


__all__ = [
    'GeminiProvider',
    'GLMProvider',
    'OpenAIProvider',
    'GoogleTranslateProvider',
    'MockProvider',
    'ProviderTable',
    'build_provider_table',
    'DEFAULT_GEMINI_MODELS',
]
