"""Application configuration (Pydantic v2). Load from ocrchat.yml with optional env override."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, field_validator


DEFAULT_CONFIG_ENV_VAR = "OCRCHAT_CONFIG"
DEFAULT_CONFIG_FILENAME = "ocrchat.yml"

# Environment variables that override credential slots on default load.
CREDENTIAL_ENV_VARS = {
    "openai_api_key": "OPENAI_API_KEY",
    "gemini_api_key": "GEMINI_API_KEY",
}


class Settings(BaseModel):
    """
    Config loaded from YAML.

    Credentials may be overridden by OPENAI_API_KEY / GEMINI_API_KEY when loading the
    default config (but not when an explicit config_path is provided).
    """

    model_config = {"extra": "ignore"}

    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    openai_base_url: str = "https://api.openai.com/v1"
    openai_vision_model: str = "gpt-4o"
    openai_chat_model: str = "gpt-4o"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"

    vision_max_tokens: int = 4096
    chat_max_tokens: int = 1000
    tesseract_lang: str = "deu+eng"
    request_timeout_seconds: float = 120.0

    default_engine: str = "tesseract"
    auto_reprocess: bool = True

    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("openai_api_key", "gemini_api_key", "log_file", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("request_timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        return v

    @field_validator("default_engine")
    @classmethod
    def known_engine(cls, v: str) -> str:
        from ocrchat.ai.factory import parse_engine_id

        return parse_engine_id(v).value


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from OCRCHAT_CONFIG / ocrchat.yml and
      apply credential env overrides when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _apply_env(self, data: dict) -> dict:
        for field, env_var in CREDENTIAL_ENV_VARS.items():
            if self._env.get(env_var):
                data[field] = self._env[env_var]
        return data

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override:
            data = self._apply_env(data)
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """
        Load the default Settings, using OCRCHAT_CONFIG or ocrchat.yml.

        Without an explicit config_path, API keys from the environment win over the YAML
        values so secrets can stay out of config files.
        """
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)
        return Settings.model_validate(self._apply_env({}))


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = ConfigLoader().load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = ConfigLoader().load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
