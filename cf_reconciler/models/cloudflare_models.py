from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CloudflareAPIErrorItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: str = ""
    message: str = ""

    @field_validator("code", "message", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        # Cloudflare sends numeric error codes.
        if value is None:
            return ""
        return str(value)


class CloudflareAPIEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: Optional[bool] = None
    result: Any = None
    errors: List[CloudflareAPIErrorItem] = Field(default_factory=list)
    messages: List[Any] = Field(default_factory=list)

    @field_validator("errors", "messages", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[Any]:
        if value is None:
            return []
        return value

    @property
    def error_messages(self) -> List[str]:
        return [e.message for e in self.errors if e.message]


class CloudflareZoneResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    status: str = ""
    paused: bool = False
    name_servers: List[str] = Field(default_factory=list)

    @field_validator("name_servers", mode="before")
    @classmethod
    def _coerce_name_servers(cls, value: Any) -> List[str]:
        if value is None:
            return []
        return value


class CloudflareDNSRecordResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str = ""
    name: str = ""
    content: str = ""
    ttl: int = 1
    proxied: bool = False
    proxiable: bool = False
    priority: Optional[int] = None
    comment: Optional[str] = None

    @field_validator("proxied", "proxiable", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        return bool(value) if value is not None else False


class CloudflareFilterResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    expression: str = ""
    paused: bool = False
    description: Optional[str] = None


class CloudflareSecurityRuleResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    action: str = ""
    description: str = ""
    ref: Optional[str] = None
    paused: bool = False
    filter: Optional[CloudflareFilterResult] = None

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return "" if value is None else str(value)
