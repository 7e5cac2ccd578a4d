from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DNS_RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "TXT", "SRV", "PTR", "NS", "CAA")
PRIORITY_RECORD_TYPES = frozenset({"MX", "SRV"})


class ZoneStatus:
    ACTIVE = "Active"
    PENDING = "Pending"
    INITIALIZING = "Initializing"
    MOVED = "Moved"
    DELETED = "Deleted"
    DEACTIVATED = "Deactivated"


# lowercase input -> canonical provider value
SECURITY_RULE_ACTIONS: Dict[str, str] = {
    "allow": "allow",
    "block": "block",
    "challenge": "challenge",
    "js_challenge": "js_challenge",
    "managed_challenge": "managed_challenge",
    "log": "log",
}


def try_normalize_action(action: Optional[str]) -> Tuple[bool, str]:
    """
    Case-insensitive lookup of a security rule action.

    Returns (True, canonical) for a supported action and (False, "") otherwise.
    """
    if not isinstance(action, str):
        return False, ""
    canonical = SECURITY_RULE_ACTIONS.get(action.lower())
    if canonical is None:
        return False, ""
    return True, canonical


def supported_actions() -> List[str]:
    return list(SECURITY_RULE_ACTIONS.values())


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


class _ResourceModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Zone(_ResourceModel):
    name: str
    plan: str = "free"
    paused: bool = False
    status: str = ZoneStatus.PENDING
    zone_id: Optional[str] = Field(default=None, alias="zoneId")
    name_servers: Optional[List[str]] = Field(default=None, alias="nameServers")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("plan", mode="before")
    @classmethod
    def _default_plan(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        return text or "free"


class DnsRecord(_ResourceModel):
    name: str
    zone_name: str = Field(alias="zoneName")
    type: str
    content: str = ""
    ttl: int = 300
    proxied: bool = False
    priority: int = 0
    record_id: Optional[str] = Field(default=None, alias="recordId")
    proxiable: bool = False
    comment: Optional[str] = None
    zone_id: str = Field(default="", alias="zoneId")

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> str:
        return "" if value is None else str(value).strip().upper()

    @field_validator("zone_id", mode="before")
    @classmethod
    def _coerce_zone_id(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("record_id", mode="before")
    @classmethod
    def _coerce_record_id(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)

    @property
    def uses_priority(self) -> bool:
        return self.type.upper() in PRIORITY_RECORD_TYPES


class SecurityRule(_ResourceModel):
    name: str
    zone_id: str = Field(default="", alias="zoneId")
    description: Optional[str] = None
    enabled: bool = True
    expression: str = ""
    action: str = ""
    rule_id: Optional[str] = Field(default=None, alias="ruleId")
    filter_id: Optional[str] = Field(default=None, alias="filterId")
    reference: Optional[str] = None

    @field_validator("zone_id", mode="before")
    @classmethod
    def _coerce_zone_id(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("rule_id", "filter_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


class ZoneIdentifiers(_ResourceModel):
    name: str


class DnsRecordIdentifiers(_ResourceModel):
    name: str
    zone_name: str = Field(alias="zoneName")


class SecurityRuleIdentifiers(_ResourceModel):
    name: str
    zone_id: str = Field(alias="zoneId")


Resource = Union[Zone, DnsRecord, SecurityRule]
ResourceIdentifiers = Union[ZoneIdentifiers, DnsRecordIdentifiers, SecurityRuleIdentifiers]


def extract_identifiers(resource: Resource) -> ResourceIdentifiers:
    if isinstance(resource, Zone):
        return ZoneIdentifiers(name=resource.name)
    if isinstance(resource, DnsRecord):
        return DnsRecordIdentifiers(name=resource.name, zone_name=resource.zone_name)
    if isinstance(resource, SecurityRule):
        return SecurityRuleIdentifiers(name=resource.name, zone_id=resource.zone_id)
    raise TypeError(f"Unsupported resource type: {type(resource).__name__}")
