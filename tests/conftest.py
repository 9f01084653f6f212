"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path
from types import SimpleNamespace

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import requests

from changelog_ko.core.exceptions import ErrorKind, ProviderError
from changelog_ko.core.models import RunContext
from changelog_ko.translation.base import TranslationProvider
from changelog_ko.translation.retry import RetryPolicy
from changelog_ko.utils.config_loader import get_default_config
from changelog_ko.utils.debug_log import DebugLogger


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload) if payload is not None else ""

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Returns queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "params": params, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeCompletions:
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=item))])


class FakeOpenAIClient:
    """Only ``chat.completions.create`` is used by the providers."""

    def __init__(self, *outputs):
        self.completions = FakeCompletions(outputs)
        self.chat = SimpleNamespace(completions=self.completions)


class ScriptedProvider(TranslationProvider):
    """
    Provider whose responses are scripted per call.

    Each script item is a list of translations, a callable(texts) returning
    one, or a ProviderError to raise. When the script runs out every text is
    "translated" by prefixing it with the provider name.
    """

    def __init__(self, name, script=None, available=True, batch_delay=0.0, model=None):
        self.name = name
        self.endpoint_type = f"{name}-endpoint"
        super().__init__(api_key="test-key" if available else None, model=model or f"{name}-model",
                         batch_delay=batch_delay)
        self.script = list(script or [])
        self.calls = []

    def _request(self, texts, model, timeout):
        self.calls.append(list(texts))
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            if callable(item):
                return item(texts), 200
            return list(item), 200
        return [f"[{self.name}] {t}" for t in texts], 200


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def numbered(*lines):
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


GEMINI_DAILY_QUOTA_BODY = {
    "error": {
        "code": 429,
        "message": "You exceeded your current quota, please check your plan and billing details.",
        "status": "RESOURCE_EXHAUSTED",
        "details": [
            {
                "@type": "type.googleapis.com/google.rpc.QuotaFailure",
                "violations": [{"quotaId": "GenerateRequestsPerDayPerProjectPerModel-FreeTier"}]
            },
            {"metadata": {"quota_limit": "GenerateRequestsPerDayPerProjectPerModel-FreeTier"}}
        ]
    }
}

GEMINI_RATE_LIMIT_BODY = {
    "error": {
        "code": 429,
        "message": "Resource has been exhausted (e.g. check quota).",
        "status": "RESOURCE_EXHAUSTED"
    }
}


def provider_error(kind, provider="test", http_status=None):
    return ProviderError(ErrorKind(kind), provider, f"{kind} failure", model="m", http_status=http_status)


@pytest.fixture
def context():
    """Run context with debug logging disabled."""
    return RunContext()


@pytest.fixture
def debug_logger(tmp_path):
    """Enabled debug logger writing under tmp_path, session started."""
    logger = DebugLogger(enabled=True, log_dir=str(tmp_path / "logs"))
    logger.start_session(engine="auto", fallback_chain="gemini,mock")
    return logger


@pytest.fixture
def debug_context(debug_logger):
    return RunContext(run_id=debug_logger.run_id, debug=debug_logger)


@pytest.fixture
def read_events(debug_logger):
    """Return the events written so far."""
    def _read():
        path = debug_logger.log_file or sorted(debug_logger.log_dir.glob("*.jsonl"))[-1]
        return [json.loads(line) for line in Path(path).read_text(encoding="utf-8").splitlines()]
    return _read


@pytest.fixture
def sleeps():
    """Sleep replacement that records requested delays."""
    recorded = []

    def _sleep(seconds):
        recorded.append(seconds)

    _sleep.calls = recorded
    return _sleep


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=8.0, jitter=0.0, overload_fail_fast=2)


@pytest.fixture
def config():
    """Default config without any credentials."""
    return get_default_config()


@pytest.fixture
def timeout_error():
    return requests.exceptions.Timeout("read timed out")
