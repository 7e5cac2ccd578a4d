# cf_reconciler/settings.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from cf_reconciler.errors import ConfigurationError
from cf_reconciler.models.settings_models import ProviderSettingsModel

CONFIG_PATH_ENV = "CLOUDFLARE_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path("cloudflare.json")

# settings field -> environment variable
ENV_OVERRIDES = {
    "api_token": "CLOUDFLARE_API_TOKEN",
    "api_key": "CLOUDFLARE_API_KEY",
    "email": "CLOUDFLARE_EMAIL",
    "base_url": "CLOUDFLARE_BASE_URL",
    "timeout_seconds": "CLOUDFLARE_TIMEOUT_SECONDS",
    "max_attempts": "CLOUDFLARE_MAX_ATTEMPTS",
}


@dataclass(frozen=True)
class ProviderSettings:
    api_token: str
    api_key: str
    email: str
    base_url: str
    timeout_seconds: int
    max_attempts: int

    @property
    def auth_mode(self) -> Optional[str]:
        """
        "token" when a bearer token is configured (preferred),
        "key" when both API key and account email are configured,
        None otherwise.
        """
        if self.api_token:
            return "token"
        if self.api_key and self.email:
            return "key"
        return None

    def validate(self) -> None:
        if self.auth_mode is None:
            raise ConfigurationError(
                "Cloudflare authentication not configured. Please provide either:\n"
                "1. CLOUDFLARE_API_TOKEN environment variable, or\n"
                "2. Both CLOUDFLARE_API_KEY and CLOUDFLARE_EMAIL environment variables"
            )


def read_config_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError):
        logging.warning("Ignoring unreadable config file %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def settings_from_mapping(raw: Mapping[str, Any]) -> ProviderSettings:
    parsed = ProviderSettingsModel.model_validate(dict(raw))
    return ProviderSettings(
        api_token=parsed.api_token,
        api_key=parsed.api_key,
        email=parsed.email,
        base_url=parsed.base_url,
        timeout_seconds=parsed.timeout_seconds,
        max_attempts=parsed.max_attempts,
    )


def load_settings(
    *,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProviderSettings:
    """
    Load provider settings from the optional JSON config file + env overrides.

    Credentials are not validated here; the API client validates before its
    first request so preview-only runs work without them.
    """
    env = os.environ if environ is None else environ

    if config_path is None:
        env_path = (env.get(CONFIG_PATH_ENV) or "").strip()
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    cfg = read_config_json(config_path)

    for field_name, env_name in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is not None and value.strip():
            cfg[field_name] = value

    return settings_from_mapping(cfg)
