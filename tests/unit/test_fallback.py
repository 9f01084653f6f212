"""
Tests for the fallback chain policy.
"""

import pytest

from changelog_ko.core.exceptions import ConfigurationError
from changelog_ko.translation.backends import ProviderTable, build_provider_table
from changelog_ko.translation.fallback import (
    VALID_ENGINES,
    FallbackPolicy,
    parse_fallback_chain,
)
from changelog_ko.utils.config_loader import override_with_env

from conftest import ScriptedProvider


def table(*available, unavailable=()):
    providers = [ScriptedProvider(name) for name in available]
    providers += [ScriptedProvider(name, available=False) for name in unavailable]
    return ProviderTable(providers)


class TestParseFallbackChain:

    def test_parse(self):
        assert parse_fallback_chain(" Gemini, glm ,,OPENAI,mock ") == ["gemini", "glm", "openai", "mock"]

    def test_empty(self):
        assert parse_fallback_chain("") == []
        assert parse_fallback_chain(None) == []

    def test_list(self):
        assert parse_fallback_chain(["GLM", " mock"]) == ["glm", "mock"]


class TestFallbackPolicy:

    def test_auto_with_gemini_and_openai_only(self, config):
        """Only Gemini and OpenAI configured, engine auto."""
        policy = FallbackPolicy.from_config(config, table("gemini", "openai", unavailable=("glm", "google")))

        assert policy.chain == ("gemini", "openai", "mock")
        assert policy.select_primary_engine() == "gemini"
        assert policy.get_fallback_providers("gemini") == ["openai", "mock"]

    def test_from_environment(self, config):
        env = {"GEMINI_API_KEY": "g-key", "OPENAI_API_KEY": "o-key", "TRANSLATION_ENGINE": "auto"}
        config = override_with_env(config, env)
        providers = build_provider_table(config)

        policy = FallbackPolicy.from_config(config, providers)

        assert policy.chain == ("gemini", "openai", "mock")
        assert policy.select_primary_engine() == "gemini"

    def test_nothing_configured(self, config):
        policy = FallbackPolicy.from_config(config, table(unavailable=("gemini", "glm", "openai", "google")))
        assert policy.chain == ("mock",)
        assert policy.select_primary_engine() == "mock"
        assert policy.get_fallback_providers("mock") == []

    def test_explicit_chain_wins(self, config):
        config["translation"]["fallback_chain"] = "openai,glm,openai"
        policy = FallbackPolicy.from_config(config, table("gemini", "openai", "glm"))
        assert policy.chain == ("openai", "glm", "mock")
        assert policy.select_primary_engine() == "openai"

    def test_explicit_chain_unknown_provider(self, config):
        config["translation"]["fallback_chain"] = "gemini,deepl"
        with pytest.raises(ConfigurationError) as exc_info:
            FallbackPolicy.from_config(config, table("gemini"))
        assert exc_info.value.invalid_value == "gemini,deepl"

    def test_invalid_engine_fails_fast(self, config):
        config["translation"]["engine"] = "deepl"
        with pytest.raises(ConfigurationError) as exc_info:
            FallbackPolicy.from_config(config, table("gemini"))
        assert exc_info.value.invalid_value == "deepl"
        assert exc_info.value.valid_values == list(VALID_ENGINES)

    def test_explicit_engine_returned_as_configured(self, config):
        config["translation"]["engine"] = "GLM"
        policy = FallbackPolicy.from_config(config, table("gemini", "glm"))
        assert policy.select_primary_engine() == "glm"
        assert policy.provider_order() == ["glm", "mock"]

    def test_primary_not_in_chain_gets_full_chain(self, config):
        policy = FallbackPolicy.from_config(config, table("gemini", "openai"))
        assert policy.get_fallback_providers("google") == ["gemini", "openai", "mock"]

    def test_auto_skips_unavailable_in_explicit_chain(self, config):
        config["translation"]["fallback_chain"] = "glm,openai"
        policy = FallbackPolicy.from_config(config, table("openai", unavailable=("glm",)))
        assert policy.chain == ("glm", "openai", "mock")
        assert policy.select_primary_engine() == "openai"
        assert policy.is_provider_available("mock")
        assert not policy.is_provider_available("glm")

    def test_fallbacks_always_end_with_mock(self, config):
        policy = FallbackPolicy.from_config(config, table("gemini", "glm", "openai", "google"))
        for name in policy.chain:
            rest = policy.get_fallback_providers(name)
            if name != "mock":
                assert rest[-1] == "mock"
