"""
Structured JSONL debug log for translation runs.

One ``DebugLogger`` per run. Disabled by default; when disabled every call is
a no-op that returns ``{}`` and touches nothing on disk.
"""

import hashlib
import json
import re
import secrets
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class EventType:
    RUN_START = "run_start"
    RUN_END = "run_end"
    RUN_ERROR = "run_error"

    SERVICE_START = "service_start"
    VERSION_START = "version_start"
    VERSION_END = "version_end"

    PROVIDER_REQUEST = "provider_request"
    PROVIDER_SUCCESS = "provider_success"
    PROVIDER_ERROR = "provider_error"

    FALLBACK = "fallback"
    QUALITY_CHECK = "quality_check"

    RETRANSLATE_START = "retranslate_start"
    RETRANSLATE_END = "retranslate_end"
    RETRANSLATE_ENTRY = "retranslate_entry"

    @classmethod
    def all(cls) -> List[str]:
        return [v for k, v in vars(cls).items() if k.isupper()]


COMMON_FIELDS = ("timestamp", "event_type", "run_id", "session_id")

REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    EventType.RUN_START: ("engine", "fallback_chain"),
    EventType.RUN_END: ("duration_ms",),
    EventType.RUN_ERROR: ("error_class", "error_message"),

    EventType.SERVICE_START: ("service_id",),
    EventType.VERSION_START: ("service_id", "version"),
    EventType.VERSION_END: ("service_id", "version", "entry_count", "duration_ms"),

    EventType.PROVIDER_REQUEST: ("provider", "model", "endpoint_type", "batch_size", "char_count"),
    EventType.PROVIDER_SUCCESS: ("provider", "model", "duration_ms", "batch_size", "char_count", "http_status"),
    EventType.PROVIDER_ERROR: ("provider", "model", "duration_ms", "error_class", "error_message",
                               "http_status", "retry_count"),

    EventType.FALLBACK: ("from_provider", "to_provider", "reason", "error_class"),
    EventType.QUALITY_CHECK: ("context", "total_count", "warning_count", "ratio", "is_poor_quality"),

    EventType.RETRANSLATE_START: ("context", "poor_entry_count"),
    EventType.RETRANSLATE_END: ("found_count", "retranslated_count", "still_poor_count"),
    EventType.RETRANSLATE_ENTRY: ("group_id", "index", "reason"),
}


def validate_event(event: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Check an event against the schema. Returns (valid, missing_fields)."""
    missing = [f for f in COMMON_FIELDS if event.get(f) is None]
    # type-specific fields may be null (e.g. http_status after a timeout) but must be present
    for f in REQUIRED_FIELDS.get(event.get("event_type"), ()):
        if f not in event:
            missing.append(f)
    return not missing, missing


# "context" and "max_tokens" must not match
_TEXT_FIELD_RE = re.compile(
    r"(^|[-_])(texts?|content|originals?|translated|translations?|prompt|body)([-_]|$)", re.IGNORECASE
)
_SECRET_FIELD_RE = re.compile(
    r"(^|[-_])(authorization|api[-_]?key|access_token|token|secret|password)([-_]|$)", re.IGNORECASE
)

PREVIEW_CHARS = 80
REDACTED = "[REDACTED]"


def redact_text(text: str) -> Dict[str, Any]:
    """Replace text with a preview, a short content hash and its length."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return {"preview": text[:PREVIEW_CHARS], "hash": digest, "length": len(text)}


def apply_redaction(data: Dict[str, Any], redact: bool = True) -> Dict[str, Any]:
    """
    Redact a flat or nested event payload.

    Credential-bearing keys are always replaced. Text-bearing string values
    (and lists of strings) are summarised unless ``redact`` is False.
    """
    result = {}
    for key, value in data.items():
        if _SECRET_FIELD_RE.search(key):
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = apply_redaction(value, redact)
        elif redact and _TEXT_FIELD_RE.search(key) and isinstance(value, str):
            result[key] = redact_text(value)
        elif redact and _TEXT_FIELD_RE.search(key) and isinstance(value, (list, tuple)):
            result[key] = [redact_text(v) if isinstance(v, str) else v for v in value]
        else:
            result[key] = value
    return result


class DebugLogger:
    """Append-only JSONL event writer scoped to one run."""

    def __init__(
        self,
        enabled: bool = False,
        log_dir: str = "logs/translation",
        redact_text: bool = True
    ):
        self.enabled = enabled
        self.log_dir = Path(log_dir)
        self.redact_text = redact_text

        self.run_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.log_file: Optional[Path] = None
        self._started_at: Optional[float] = None
        self._call_starts: Dict[str, float] = {}

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DebugLogger":
        debug = config.get("debug", {})
        return cls(
            enabled=bool(debug.get("enabled", False)),
            log_dir=debug.get("log_dir", "logs/translation"),
            redact_text=bool(debug.get("redact_text", True)),
        )

    @property
    def active(self) -> bool:
        return self.enabled and self.log_file is not None

    def start_session(self, run_id: Optional[str] = None, **metadata) -> Dict[str, Any]:
        """Open the run's log file and write ``run_start``."""
        if not self.enabled:
            return {}

        self.run_id = run_id or f"{datetime.now().strftime('%Y-%m-%d')}-{secrets.token_hex(3)}"
        self.session_id = str(uuid.uuid4())
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"{self.run_id}.jsonl"
        self._started_at = time.monotonic()
        self._call_starts.clear()

        return self.log_event(EventType.RUN_START, **metadata)

    def log_event(self, event_type: str, **data) -> Dict[str, Any]:
        """Append one event. Returns the written record, or {} when inactive."""
        if not self.active:
            return {}

        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "run_id": self.run_id,
            "session_id": self.session_id,
        }
        event.update(apply_redaction(data, self.redact_text))

        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
        return event

    def log_provider_call(self, phase: str, call_key: Optional[str] = None, **data) -> Dict[str, Any]:
        """
        Log one phase of a provider call.

        ``request`` records a start time under ``call_key``; ``success`` and
        ``error`` pop it and attach ``duration_ms``.
        """
        if not self.active:
            return {}

        key = call_key or f"{data.get('provider')}-{data.get('model')}"

        if phase == "request":
            self._call_starts[key] = time.monotonic()
            return self.log_event(EventType.PROVIDER_REQUEST, call_key=key, **data)

        if phase in ("success", "error"):
            started = self._call_starts.pop(key, None)
            if started is not None:
                data["duration_ms"] = int((time.monotonic() - started) * 1000)
            else:
                data.setdefault("duration_ms", 0)
            event_type = EventType.PROVIDER_SUCCESS if phase == "success" else EventType.PROVIDER_ERROR
            return self.log_event(event_type, call_key=key, **data)

        return {}

    def log_run_error(self, error: Exception, error_class: str = "unknown") -> Dict[str, Any]:
        return self.log_event(EventType.RUN_ERROR, error_class=error_class, error_message=str(error))

    def close_session(self, **summary) -> Dict[str, Any]:
        """Write ``run_end`` and close the session."""
        if not self.active:
            return {}

        summary["duration_ms"] = int((time.monotonic() - self._started_at) * 1000)
        event = self.log_event(EventType.RUN_END, **summary)

        self.log_file = None
        self._started_at = None
        self._call_starts.clear()
        return event
