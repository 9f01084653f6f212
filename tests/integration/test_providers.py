"""
Integration tests for provider adapters against faked transports.
"""

import asyncio

import httpx
import openai
import pytest
import requests

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from changelog_ko.translation.backends import (
    GeminiProvider,
    GLMProvider,
    GoogleTranslateProvider,
    MockProvider,
    OpenAIProvider,
    build_provider_table,
)
from changelog_ko.translation.base import TranslateOptions
from changelog_ko.utils.config_loader import override_with_env

from conftest import (
    GEMINI_DAILY_QUOTA_BODY,
    FakeOpenAIClient,
    FakeResponse,
    FakeSession,
    gemini_payload,
    numbered,
)


def status_error(status, text="", url="https://api.example.com/v1/chat/completions"):
    response = httpx.Response(status, request=httpx.Request("POST", url), text=text)
    return openai.APIStatusError(f"Error code: {status}", response=response, body=None)


class TestGeminiProvider:

    def test_success(self):
        session = FakeSession(FakeResponse(200, gemini_payload(numbered("다크 모드 추가", "충돌 수정"))))
        provider = GeminiProvider(api_key="g-key", session=session)

        result = provider.translate_sync(["Add dark mode", "Fix crash"], TranslateOptions(timeout=12))

        assert result.translations == ["다크 모드 추가", "충돌 수정"]
        assert result.char_count == len("Add dark mode") + len("Fix crash")
        assert result.meta.to_dict() == {"provider": "gemini", "model": "gemini-3-flash-preview",
                                         "endpointType": "gemini"}
        call = session.calls[0]
        assert call["url"].endswith("/models/gemini-3-flash-preview:generateContent")
        assert call["headers"]["x-goog-api-key"] == "g-key"
        # connect is capped, read gets the per-attempt timeout
        assert call["timeout"] == (10.0, 12)
        assert call["json"]["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 4096}
        assert "1. Add dark mode" in call["json"]["contents"][0]["parts"][0]["text"]

    def test_model_override(self):
        session = FakeSession(FakeResponse(200, gemini_payload("1. 하나")))
        provider = GeminiProvider(api_key="g-key", session=session)

        result = provider.translate_sync(["one"], TranslateOptions(model="gemini-2.5-flash"))

        assert "gemini-2.5-flash:generateContent" in session.calls[0]["url"]
        assert result.meta.model == "gemini-2.5-flash"

    def test_daily_quota(self):
        session = FakeSession(FakeResponse(429, GEMINI_DAILY_QUOTA_BODY))
        provider = GeminiProvider(api_key="g-key", session=session)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.QUOTA
        assert exc_info.value.http_status == 429
        assert exc_info.value.model == "gemini-3-flash-preview"

    def test_partial(self):
        session = FakeSession(FakeResponse(200, gemini_payload(numbered("하나", "둘", "셋"))))
        provider = GeminiProvider(api_key="g-key", session=session)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one", "two", "three", "four", "five"])
        error = exc_info.value
        assert error.is_partial
        assert error.partial_translations == ["하나", "둘", "셋"]
        assert error.expected_count == 5

    def test_surplus_truncated(self):
        session = FakeSession(FakeResponse(200, gemini_payload(numbered("하나", "둘", "셋"))))
        provider = GeminiProvider(api_key="g-key", session=session)
        assert provider.translate_sync(["one", "two"]).translations == ["하나", "둘"]

    def test_bad_shape_is_parse_error(self):
        session = FakeSession(FakeResponse(200, {"candidates": []}))
        provider = GeminiProvider(api_key="g-key", session=session)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.PARSE
        assert not exc_info.value.is_partial

    def test_invalid_json_is_parse_error(self):
        session = FakeSession(FakeResponse(200, text="<html>oops</html>"))
        provider = GeminiProvider(api_key="g-key", session=session)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.PARSE

    def test_timeout_is_server_error(self, timeout_error):
        provider = GeminiProvider(api_key="g-key", session=FakeSession(timeout_error))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.SERVER
        assert exc_info.value.is_retryable

    def test_connection_error_is_server_error(self):
        provider = GeminiProvider(api_key="g-key",
                                  session=FakeSession(requests.exceptions.ConnectionError("refused")))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.SERVER

    def test_missing_key(self):
        session = FakeSession()
        provider = GeminiProvider(api_key=None, session=session)

        assert not provider.is_available()
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.AUTH
        assert session.calls == []

    def test_empty_input_short_circuits(self, debug_logger, read_events):
        session = FakeSession()
        provider = GeminiProvider(api_key="g-key", session=session)
        before = len(read_events())

        result = provider.translate_sync([], TranslateOptions(debug=debug_logger))

        assert result.translations == []
        assert result.char_count == 0
        assert session.calls == []
        assert len(read_events()) == before

    def test_debug_events(self, debug_logger, read_events):
        session = FakeSession(
            FakeResponse(503, text='{"error": {"status": "UNAVAILABLE"}}'),
            FakeResponse(200, gemini_payload("1. 하나")),
        )
        provider = GeminiProvider(api_key="g-key", session=session)

        with pytest.raises(ProviderError):
            provider.translate_sync(["one"], TranslateOptions(debug=debug_logger, attempt=0))
        provider.translate_sync(["one"], TranslateOptions(debug=debug_logger, attempt=1))

        events = [e for e in read_events() if e["event_type"].startswith("provider_")]
        assert [e["event_type"] for e in events] == [
            "provider_request", "provider_error", "provider_request", "provider_success"
        ]
        assert events[1]["error_class"] == "server"
        assert events[1]["http_status"] == 503
        assert events[3]["http_status"] == 200
        assert all("duration_ms" in e for e in (events[1], events[3]))

    def test_async_translate(self):
        session = FakeSession(FakeResponse(200, gemini_payload("1. 하나")))
        provider = GeminiProvider(api_key="g-key", session=session)
        result = asyncio.run(provider.translate(["one"]))
        assert result.translations == ["하나"]


class TestOpenAICompatibleProviders:

    def test_openai_success(self):
        client = FakeOpenAIClient(numbered("하나", "둘"))
        provider = OpenAIProvider(api_key="o-key", client=client)

        result = provider.translate_sync(["one", "two"], TranslateOptions(timeout=30))

        assert result.translations == ["하나", "둘"]
        assert result.meta.to_dict() == {"provider": "openai", "model": "gpt-4o",
                                         "endpointType": "openai-compatible"}
        call = client.completions.calls[0]
        assert call["model"] == "gpt-4o"
        assert call["timeout"].read == 30
        assert call["timeout"].connect == 10.0
        assert call["temperature"] == 0.3
        assert call["messages"][0]["role"] == "system"
        assert "1. one" in call["messages"][1]["content"]

    def test_openai_rate_limit(self):
        client = FakeOpenAIClient(status_error(429, '{"error": {"message": "Rate limit reached", '
                                                    '"code": "rate_limit_exceeded"}}'))
        provider = OpenAIProvider(api_key="o-key", client=client)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.RATE_LIMIT

    def test_openai_insufficient_quota(self):
        client = FakeOpenAIClient(status_error(429, '{"error": {"type": "insufficient_quota"}}'))
        provider = OpenAIProvider(api_key="o-key", client=client)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.QUOTA

    def test_openai_timeout(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        provider = OpenAIProvider(api_key="o-key", client=FakeOpenAIClient(openai.APITimeoutError(request=request)))

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.SERVER

    def test_openai_empty_completion(self):
        provider = OpenAIProvider(api_key="o-key", client=FakeOpenAIClient(""))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.PARSE

    def test_openai_custom_model_and_url(self):
        provider = OpenAIProvider(api_key="o-key", model="gpt-4o-mini", base_url="https://proxy.local/v1")
        assert provider.model == "gpt-4o-mini"
        assert provider.base_url == "https://proxy.local/v1"

    def test_sdk_client_has_retries_disabled(self):
        provider = OpenAIProvider(api_key="o-key")
        assert provider.client.max_retries == 0

    def test_glm_any_429_is_quota(self):
        client = FakeOpenAIClient(status_error(429, '{"error": {"message": "Too many requests"}}'))
        provider = GLMProvider(api_key="z-key", client=client)

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.QUOTA

    def test_glm_server_error(self):
        provider = GLMProvider(api_key="z-key", client=FakeOpenAIClient(status_error(500, "oops")))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.SERVER

    def test_glm_endpoint_type(self):
        assert GLMProvider(api_key="z").endpoint_type == "coding"
        assert GLMProvider(api_key="z", base_url="https://open.bigmodel.cn/api/paas/v4").endpoint_type == "general"

    def test_glm_meta(self):
        provider = GLMProvider(api_key="z-key", client=FakeOpenAIClient("1. 하나"))
        result = provider.translate_sync(["one"])
        assert result.meta.to_dict() == {"provider": "glm", "model": "glm-5", "endpointType": "coding"}


class TestGoogleTranslateProvider:

    def test_prefix_stripped_and_placeholders_restored(self):
        session = FakeSession(FakeResponse(200, {"data": {"translations": [
            {"translatedText": "{{CODE_0}} 플래그 추가"},
            {"translatedText": "충돌 수정"},
        ]}}))
        provider = GoogleTranslateProvider(api_key="t-key", session=session)

        result = provider.translate_sync(["feat: add `--verbose` flag", "fix(core): crash"])

        assert result.translations == ["`--verbose` 플래그 추가", "충돌 수정"]
        call = session.calls[0]
        assert call["json"] == {"q": ["add {{CODE_0}} flag", "crash"], "source": "en",
                                "target": "ko", "format": "text"}
        assert call["headers"] == {"x-goog-api-key": "t-key"}
        assert call["params"] is None
        assert result.meta.provider == "google"

    def test_bad_shape(self):
        provider = GoogleTranslateProvider(api_key="t-key", session=FakeSession(FakeResponse(200, {"data": {}})))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.PARSE

    def test_connection_error_message_hides_key(self):
        error = requests.exceptions.ConnectionError(
            "HTTPSConnectionPool(host='translation.googleapis.com', port=443): Max retries exceeded "
            "with url: /language/translate/v2?key=SECRET-KEY-123&target=ko"
        )
        provider = GoogleTranslateProvider(api_key="SECRET-KEY-123", session=FakeSession(error))

        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])

        assert exc_info.value.kind == ErrorKind.SERVER
        assert "SECRET-KEY-123" not in str(exc_info.value)
        assert "SECRET-KEY-123" not in str(exc_info.value.to_dict())
        assert "key=[REDACTED]" in exc_info.value.message

    def test_short_timeout_caps_connect(self):
        session = FakeSession(FakeResponse(200, {"data": {"translations": [{"translatedText": "하나"}]}}))
        provider = GoogleTranslateProvider(api_key="t-key", session=session)
        provider.translate_sync(["one"], TranslateOptions(timeout=4))
        assert session.calls[0]["timeout"] == (4, 4)

    def test_forbidden(self):
        provider = GoogleTranslateProvider(api_key="t-key", session=FakeSession(FakeResponse(403, text="denied")))
        with pytest.raises(ProviderError) as exc_info:
            provider.translate_sync(["one"])
        assert exc_info.value.kind == ErrorKind.AUTH


class TestMockProvider:

    def test_identity(self):
        provider = MockProvider()
        texts = ["Add dark mode", "Fix crash"]
        result = provider.translate_sync(texts)

        assert result.translations == texts
        assert result.char_count == sum(len(t) for t in texts)
        assert result.meta.to_dict() == {"provider": "mock", "model": "mock", "endpointType": "mock"}
        assert provider.is_available()


class TestBuildProviderTable:

    def test_from_config(self, config):
        config = override_with_env(config, {
            "GEMINI_API_KEY": "g", "GEMINI_MODELS": "gemini-2.5-flash", "GLM_API_KEY": "z",
        })
        providers = build_provider_table(config)

        assert list(providers) == ["gemini", "glm", "openai", "google", "mock"]
        assert providers.available() == ["gemini", "glm", "mock"]
        assert providers["gemini"].models == ("gemini-2.5-flash",)
        assert providers["gemini"].batch_delay == 13.0
        assert providers["glm"].batch_delay == 0.5
        assert providers["openai"].batch_delay == 0.3
        assert providers["google"].batch_delay == 0.1
        assert providers["mock"].batch_delay == 0.0
        assert not providers.is_available("deepl")
