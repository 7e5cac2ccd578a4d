from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_TIMEOUT_SECONDS = 20
DEFAULT_MAX_ATTEMPTS = 3


class ProviderSettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_token: str = ""
    api_key: str = ""
    email: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS)

    @field_validator("api_token", "api_key", "email", "base_url", mode="before")
    @classmethod
    def _coerce_optional_str(cls, value: Any) -> str:
        # Config files may contain null for unset string fields.
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: Any) -> int:
        return _positive_int(value, DEFAULT_TIMEOUT_SECONDS)

    @field_validator("max_attempts", mode="before")
    @classmethod
    def _coerce_attempts(cls, value: Any) -> int:
        return _positive_int(value, DEFAULT_MAX_ATTEMPTS)

    @model_validator(mode="after")
    def _normalize(self) -> "ProviderSettingsModel":
        self.base_url = (self.base_url or DEFAULT_BASE_URL).rstrip("/")
        return self


def _positive_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except Exception:
        return default
    return parsed if parsed > 0 else default
