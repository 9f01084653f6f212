"""Configuration loading and management."""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv


def load_config(config_path: Optional[str] = None, use_dotenv: bool = True) -> Dict[str, Any]:
    """
    Load configuration from YAML file, then apply environment overrides.

    Args:
        config_path: Path to config file (defaults to configs/default.yaml)
        use_dotenv: Load a ``.env`` file into the environment first

    Returns:
        Configuration dictionary
    """
    if use_dotenv:
        load_dotenv(override=False)

    config = get_default_config()

    if config_path is None:
        possible_paths = [
            Path("configs/default.yaml"),
            Path(__file__).parent.parent.parent / "configs" / "default.yaml"
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            file_config = yaml.safe_load(f) or {}
        config = deep_merge(config, file_config)

    return override_with_env(config)


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``override`` merged in recursively."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str):
    return [item.strip() for item in value.split(",") if item.strip()]


# env var -> (config path, parser)
ENV_MAPPINGS = {
    "TRANSLATION_ENGINE": (["translation", "engine"], str.strip),
    "TRANSLATION_FALLBACK_CHAIN": (["translation", "fallback_chain"], str.strip),
    "GEMINI_API_KEY": (["providers", "gemini", "api_key"], str.strip),
    "GEMINI_MODELS": (["providers", "gemini", "models"], _parse_list),
    "GLM_MODEL": (["providers", "glm", "model"], str.strip),
    "GLM_BASE_URL": (["providers", "glm", "base_url"], str.strip),
    "OPENAI_API_KEY": (["providers", "openai", "api_key"], str.strip),
    "OPENAI_MODEL": (["providers", "openai", "model"], str.strip),
    "OPENAI_BASE_URL": (["providers", "openai", "base_url"], str.strip),
    "GOOGLE_TRANSLATE_API_KEY": (["providers", "google", "api_key"], str.strip),
    "TRANSLATION_DEBUG_ENABLED": (["debug", "enabled"], _parse_bool),
    "TRANSLATION_DEBUG_LOG_DIR": (["debug", "log_dir"], str.strip),
    "TRANSLATION_DEBUG_REDACT_TEXT": (["debug", "redact_text"], _parse_bool),
}


def override_with_env(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Override config with environment variables."""
    environ = os.environ if environ is None else environ

    for env_var, (path, parse) in ENV_MAPPINGS.items():
        value = environ.get(env_var)
        if value:
            _set_path(config, path, parse(value))

    # GLM accepts either key name; GLM_API_KEY wins
    glm_key = environ.get("GLM_API_KEY") or environ.get("ZAI_API_KEY")
    if glm_key:
        _set_path(config, ["providers", "glm", "api_key"], glm_key.strip())

    return config


def _set_path(config: Dict[str, Any], path, value) -> None:
    current = config
    for key in path[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[path[-1]] = value


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "translation": {
            "engine": "auto",
            "fallback_chain": "",
            "source_lang": "en",
            "target_lang": "ko",
            "max_batch_items": 20,
            "max_batch_chars": 8000,
        },
        "retry": {
            "max_attempts": 3,
            "base_delay": 5.0,
            "max_delay": 60.0,
            "jitter": 1.0,
            "overload_fail_fast": 2,
            "timeout": 60.0,
        },
        "quality": {
            "first_pass_threshold": 0.05,
            "retranslate_threshold": 0.10,
        },
        "providers": {
            "gemini": {
                "api_key": "",
                "models": ["gemini-3-flash-preview", "gemini-2.5-flash"],
                "batch_delay": 13.0,
            },
            "glm": {
                "api_key": "",
                "model": "glm-5",
                "base_url": "https://api.z.ai/api/coding/paas/v4",
                "batch_delay": 0.5,
            },
            "openai": {
                "api_key": "",
                "model": "gpt-4o",
                "base_url": "",
                "batch_delay": 0.3,
            },
            "google": {
                "api_key": "",
                "batch_delay": 0.1,
            },
        },
        "debug": {
            "enabled": False,
            "log_dir": "logs/translation",
            "redact_text": True,
        },
    }
