from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

from cf_reconciler.errors import ResourceValidationError, UnsupportedActionError
from cf_reconciler.models.cloudflare_models import CloudflareSecurityRuleResult
from cf_reconciler.models.resource_models import (
    SecurityRule,
    supported_actions,
    try_normalize_action,
)
from cf_reconciler.reconcilers.base import ResourceReconciler
from cf_reconciler.services.cloudflare_service import CloudflareService
from cf_reconciler.utils.names import security_rule_reference


def adopt_security_rule(rule: SecurityRule, match: CloudflareSecurityRuleResult) -> SecurityRule:
    rule.rule_id = match.id
    if not rule.filter_id and match.filter is not None and match.filter.id:
        rule.filter_id = match.filter.id
    if match.ref and match.ref.strip():
        rule.reference = match.ref
    return rule


def merge_security_rule(rule: SecurityRule, result: CloudflareSecurityRuleResult) -> SecurityRule:
    rule.rule_id = result.id
    rule.action = result.action or rule.action
    rule.description = result.description
    if result.ref and result.ref.strip():
        rule.reference = result.ref

    if result.filter is not None:
        rule.filter_id = result.filter.id or rule.filter_id
        rule.expression = result.filter.expression
        if not rule.description:
            rule.description = result.filter.description
        rule.enabled = not (result.paused or result.filter.paused)
    else:
        rule.enabled = not result.paused

    return rule


class SecurityRuleReconciler(ResourceReconciler[SecurityRule]):
    resource_type = "SecurityRule"
    kind = "security rule"
    model = SecurityRule

    def context(self, resource: SecurityRule) -> Tuple[str, Optional[str]]:
        return resource.name, resource.zone_id

    def validate(self, resource: SecurityRule) -> None:
        if not resource.zone_id:
            raise ResourceValidationError(
                f"ZoneId is required for security rule '{resource.name}'. "
                "Provide the zone ID where the rule should be applied."
            )
        if not resource.expression or not resource.expression.strip():
            raise ResourceValidationError(f"Expression is required for security rule '{resource.name}'.")

        ok, action = try_normalize_action(resource.action)
        if not ok:
            raise UnsupportedActionError(resource.action, supported_actions())
        resource.action = action

        if not resource.description or not resource.description.strip():
            resource.description = resource.name
        resource.reference = security_rule_reference(resource.reference, resource.name) or None

    def _reconcile(
        self,
        service: CloudflareService,
        resource: SecurityRule,
        cancel_event: Optional[threading.Event],
    ) -> SecurityRule:
        if not resource.rule_id:
            existing = service.find_security_rule(resource.zone_id, resource, cancel_event=cancel_event)
            if existing is not None:
                adopt_security_rule(resource, existing)
                logging.info(
                    "Adopting existing security rule %s for '%s' (filter=%s)",
                    resource.rule_id,
                    resource.name,
                    resource.filter_id,
                )

        result = service.upsert_security_rule(resource, cancel_event=cancel_event)
        return merge_security_rule(resource, result)
