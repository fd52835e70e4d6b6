# varianceqa/core/config.py

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_HOST = "https://generativelanguage.googleapis.com"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-preview-05-20"
DEFAULT_APP_ID = "default-app-id"


def _env(name: str, default: str) -> str:
    bare = name.replace("VARIANCEQA_", "", 1) if name.startswith("VARIANCEQA_") else name
    return os.getenv(name, os.getenv(bare, default))


def _env_optional(name: str) -> Optional[str]:
    value = _env(name, "").strip()
    return value or None


def parse_identity_config(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed identity provider config: %s", exc.msg)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Ignoring identity provider config that is not a JSON object")
        return {}
    return parsed


class GeminiConfig(BaseModel):
    """Generation API settings."""
    api_key: Optional[str] = None
    host: str = DEFAULT_GEMINI_HOST
    model: str = DEFAULT_GEMINI_MODEL

    @property
    def configured(self) -> bool:
        return bool((self.api_key or "").strip())


class IdentityConfig(BaseModel):
    """Optional identity provider settings."""
    provider_config: Dict[str, Any] = {}
    initial_auth_token: Optional[str] = None
    bootstrap_timeout_s: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(str(self.provider_config.get("apiKey") or "").strip())


class AppConfig(BaseModel):
    """Main VarianceQA configuration."""
    gemini: GeminiConfig = GeminiConfig()
    identity: IdentityConfig = IdentityConfig()
    app_id: str = DEFAULT_APP_ID
    prefill_sample: bool = False
    session_idle_ttl_s: float = 3600.0
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Loads configuration from environment variables."""
        return cls(
            gemini=GeminiConfig(
                api_key=_env_optional("VARIANCEQA_GEMINI_API_KEY"),
                host=_env("VARIANCEQA_GEMINI_HOST", DEFAULT_GEMINI_HOST),
                model=_env("VARIANCEQA_GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            ),
            identity=IdentityConfig(
                provider_config=parse_identity_config(_env_optional("VARIANCEQA_FIREBASE_CONFIG")),
                initial_auth_token=_env_optional("VARIANCEQA_INITIAL_AUTH_TOKEN"),
                bootstrap_timeout_s=float(_env("VARIANCEQA_BOOTSTRAP_TIMEOUT_S", "10")),
            ),
            app_id=_env("VARIANCEQA_APP_ID", DEFAULT_APP_ID),
            prefill_sample=_env("VARIANCEQA_PREFILL_SAMPLE", "false").lower() == "true",
            session_idle_ttl_s=float(_env("VARIANCEQA_SESSION_IDLE_TTL_S", "3600")),
            api_host=_env("VARIANCEQA_API_HOST", "0.0.0.0"),
            api_port=int(_env("VARIANCEQA_API_PORT", "8000")),
            debug=_env("VARIANCEQA_DEBUG", "false").lower() == "true",
        )


config = AppConfig.from_env()
