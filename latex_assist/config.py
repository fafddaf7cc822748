"""
Configuration — loads settings from .latex_assist.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "model": "deepseek-chat",
    "conflict_model": "deepseek-coder",
    "deepseek_base_url": "https://api.deepseek.com/v1",
    "deepseek_api_key": "",
    "temperature": 0.3,
    "max_tokens": 1000,
    "stream": True,
    "llm_max_retries": 3,
    "llm_retry_delay": 2.0,
    "fence_tag": "latex-diff",
    "app_base_url": "http://localhost:3000",
    "request_timeout": 30.0,
    "usage_file": ".latex_assist/usage.json",
    "log_dir": ".latex_assist/logs",
    "free_edit_limit": 5,
    "pro_monthly_edit_limit": 50,
    "usage_period_days": 30,
}

# Config file search locations
_CONFIG_FILENAMES = [".latex_assist.yaml", ".latex_assist.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .latex_assist.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.DEFAULT_MODEL = _get("LATEX_ASSIST_MODEL", "model", _DEFAULTS["model"])
        self.CONFLICT_MODEL = _get("LATEX_ASSIST_CONFLICT_MODEL", "conflict_model",
                                   _DEFAULTS["conflict_model"])
        self.TEMPERATURE = _get("LATEX_ASSIST_TEMPERATURE", "temperature",
                                _DEFAULTS["temperature"], cast=float)
        self.MAX_TOKENS = _get("LATEX_ASSIST_MAX_TOKENS", "max_tokens",
                               _DEFAULTS["max_tokens"], cast=int)

        self.LLM_MAX_RETRIES = _get("LLM_MAX_RETRIES", "llm_max_retries",
                                    _DEFAULTS["llm_max_retries"], cast=int)
        self.LLM_RETRY_DELAY = _get("LLM_RETRY_DELAY", "llm_retry_delay",
                                    _DEFAULTS["llm_retry_delay"], cast=float)
        self.STREAM_RESPONSES = _get_bool("STREAM_RESPONSES", "stream",
                                          _DEFAULTS["stream"])

        # DeepSeek (OpenAI-compatible) provider
        ds_section = yd.get("deepseek", {}) if isinstance(yd.get("deepseek"), dict) else {}
        self.DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY") or ds_section.get(
            "api_key", _DEFAULTS["deepseek_api_key"])
        self.DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL") or ds_section.get(
            "base_url", _DEFAULTS["deepseek_base_url"])

        self.FENCE_TAG = _get("LATEX_ASSIST_FENCE_TAG", "fence_tag",
                              _DEFAULTS["fence_tag"])

        # Editor backend (persistence + compilation)
        self.APP_BASE_URL = _get("LATEX_ASSIST_APP_URL", "app_base_url",
                                 _DEFAULTS["app_base_url"])
        self.REQUEST_TIMEOUT = _get("LATEX_ASSIST_TIMEOUT", "request_timeout",
                                    _DEFAULTS["request_timeout"], cast=float)

        # Edit limits
        self.USAGE_FILE = _get("LATEX_ASSIST_USAGE_FILE", "usage_file",
                               _DEFAULTS["usage_file"])
        self.FREE_EDIT_LIMIT = _get("FREE_EDIT_LIMIT", "free_edit_limit",
                                    _DEFAULTS["free_edit_limit"], cast=int)
        self.PRO_MONTHLY_EDIT_LIMIT = _get("PRO_MONTHLY_EDIT_LIMIT",
                                           "pro_monthly_edit_limit",
                                           _DEFAULTS["pro_monthly_edit_limit"],
                                           cast=int)
        self.USAGE_PERIOD_DAYS = _get("USAGE_PERIOD_DAYS", "usage_period_days",
                                      _DEFAULTS["usage_period_days"], cast=int)

        self.LOG_DIR = _get("LATEX_ASSIST_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
