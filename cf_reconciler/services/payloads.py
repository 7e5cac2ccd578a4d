from __future__ import annotations

from typing import Any, Dict

from cf_reconciler.models.resource_models import DnsRecord, SecurityRule, Zone
from cf_reconciler.utils.names import normalize_record_name, security_rule_reference


def build_zone_payload(zone: Zone) -> Dict[str, Any]:
    return {
        "name": zone.name,
        "plan": {"id": zone.plan},
        "jump_start": False,
    }


def build_dns_record_payload(record: DnsRecord) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "name": normalize_record_name(record.name, record.zone_name),
        "ttl": record.ttl,
        "type": record.type,
        "content": record.content,
        "proxied": record.proxied,
    }

    if record.uses_priority:
        body["priority"] = record.priority

    if record.comment and record.comment.strip():
        body["comment"] = record.comment

    return body


def build_security_rule_payload(rule: SecurityRule, *, include_ref: bool) -> Dict[str, Any]:
    """
    Body for creating/updating a firewall rule together with its filter.

    `ref` is only sent on create; the provider treats it as write-once.
    """
    description = rule.description if rule.description and rule.description.strip() else rule.name
    paused = not rule.enabled

    filter_body: Dict[str, Any] = {
        "expression": rule.expression,
        "paused": paused,
        "description": description,
    }
    if rule.filter_id:
        filter_body["id"] = rule.filter_id

    body: Dict[str, Any] = {
        "action": rule.action,
        "description": description,
        "paused": paused,
        "filter": filter_body,
    }

    if include_ref:
        reference = security_rule_reference(rule.reference, rule.name)
        if reference:
            body["ref"] = reference

    return body
