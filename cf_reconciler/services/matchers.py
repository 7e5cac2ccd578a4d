# cf_reconciler/services/matchers.py
"""
Heuristic lookups for resources whose remote ID is not known yet.

Each strategy is a small function returning a match or None; the `find_*`
entry points try them in order and stop at the first hit. Every lookup is
read-only, so a miss simply leads the caller to create the resource.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Protocol, Sequence

from cf_reconciler.errors import ResourceValidationError
from cf_reconciler.models.cloudflare_models import (
    CloudflareDNSRecordResult,
    CloudflareSecurityRuleResult,
)
from cf_reconciler.models.resource_models import DnsRecord, SecurityRule
from cf_reconciler.utils.names import (
    record_lookup_names,
    security_rule_descriptions,
    security_rule_reference,
)

RULE_LISTING_PAGE_SIZE = 500


class RuleLookupAPI(Protocol):
    def get_security_rule(
        self, zone_id: str, rule_id: str, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareSecurityRuleResult]: ...

    def query_security_rules_by_description(
        self, zone_id: str, description: str, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareSecurityRuleResult]: ...

    def list_security_rules(
        self,
        zone_id: str,
        *,
        per_page: int = RULE_LISTING_PAGE_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[CloudflareSecurityRuleResult]: ...


class RecordLookupAPI(Protocol):
    def query_dns_record(
        self,
        zone_id: str,
        *,
        name: str,
        record_type: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[CloudflareDNSRecordResult]: ...


def _same(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not left.strip() or not right:
        return False
    return left.lower() == right.lower()


# --------------------------------------------------
# DNS records
# --------------------------------------------------


def find_dns_record(
    api: RecordLookupAPI,
    record: DnsRecord,
    *,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[CloudflareDNSRecordResult]:
    for field_name, value in (
        ("zoneId", record.zone_id),
        ("zoneName", record.zone_name),
        ("type", record.type),
    ):
        if not value or not value.strip():
            raise ResourceValidationError(
                f"{field_name} is required to look up DNS record '{record.name}'."
            )

    for candidate in record_lookup_names(record.name, record.zone_name):
        match = api.query_dns_record(
            record.zone_id,
            name=candidate,
            record_type=record.type,
            cancel_event=cancel_event,
        )
        if match is not None:
            logging.info(
                "Found existing DNS record %s (%s) as '%s' (id=%s)",
                record.name,
                record.type,
                candidate,
                match.id,
            )
            return match
        logging.debug("No DNS record named '%s' (%s)", candidate, record.type)

    return None


# --------------------------------------------------
# Security rules: strategies over a listing
# --------------------------------------------------

ListingStrategy = Callable[
    [Sequence[CloudflareSecurityRuleResult], SecurityRule],
    Optional[CloudflareSecurityRuleResult],
]


def match_by_reference(
    candidates: Sequence[CloudflareSecurityRuleResult], rule: SecurityRule
) -> Optional[CloudflareSecurityRuleResult]:
    reference = security_rule_reference(rule.reference, rule.name)
    if not reference:
        return None
    return next((c for c in candidates if _same(c.ref, reference)), None)


def match_by_expression(
    candidates: Sequence[CloudflareSecurityRuleResult], rule: SecurityRule
) -> Optional[CloudflareSecurityRuleResult]:
    return next(
        (c for c in candidates if c.filter is not None and _same(c.filter.expression, rule.expression)),
        None,
    )


def match_by_description(
    candidates: Sequence[CloudflareSecurityRuleResult], rule: SecurityRule
) -> Optional[CloudflareSecurityRuleResult]:
    wanted = security_rule_descriptions(rule.name, rule.description)
    return next(
        (c for c in candidates if any(_same(c.description, w) for w in wanted)),
        None,
    )


def match_by_filter_description(
    candidates: Sequence[CloudflareSecurityRuleResult], rule: SecurityRule
) -> Optional[CloudflareSecurityRuleResult]:
    return next(
        (
            c
            for c in candidates
            if c.filter is not None and _same(c.filter.description, rule.name.strip())
        ),
        None,
    )


LISTING_STRATEGIES: Sequence[ListingStrategy] = (
    match_by_reference,
    match_by_expression,
    match_by_description,
    match_by_filter_description,
)


def select_listed_rule(
    candidates: Sequence[CloudflareSecurityRuleResult],
    rule: SecurityRule,
    strategies: Sequence[ListingStrategy] = LISTING_STRATEGIES,
) -> Optional[CloudflareSecurityRuleResult]:
    for strategy in strategies:
        match = strategy(candidates, rule)
        if match is not None:
            logging.info(
                "Security rule '%s' matched %s via %s",
                rule.name,
                match.id,
                strategy.__name__,
            )
            return match
    return None


# --------------------------------------------------
# Security rules: remote lookup stages
# --------------------------------------------------

LookupStage = Callable[
    [RuleLookupAPI, str, SecurityRule, Optional[threading.Event]],
    Optional[CloudflareSecurityRuleResult],
]


def lookup_by_description(
    api: RuleLookupAPI,
    zone_id: str,
    rule: SecurityRule,
    cancel_event: Optional[threading.Event],
) -> Optional[CloudflareSecurityRuleResult]:
    for description in security_rule_descriptions(rule.name, rule.description):
        match = api.query_security_rules_by_description(
            zone_id, description, cancel_event=cancel_event
        )
        if match is not None:
            logging.info(
                "Security rule '%s' matched %s by description query",
                rule.name,
                match.id,
            )
            return match
    return None


def lookup_in_listing(
    api: RuleLookupAPI,
    zone_id: str,
    rule: SecurityRule,
    cancel_event: Optional[threading.Event],
) -> Optional[CloudflareSecurityRuleResult]:
    # Only the first page is scanned; zones with more rules than fit on it
    # are not searched beyond it.
    candidates = api.list_security_rules(
        zone_id, per_page=RULE_LISTING_PAGE_SIZE, cancel_event=cancel_event
    )
    logging.debug("Scanning %s listed security rule(s) in zone %s", len(candidates), zone_id)
    return select_listed_rule(candidates, rule)


LOOKUP_STAGES: Sequence[LookupStage] = (lookup_by_description, lookup_in_listing)


def find_security_rule(
    api: RuleLookupAPI,
    zone_id: str,
    rule: SecurityRule,
    *,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[CloudflareSecurityRuleResult]:
    if not zone_id or not zone_id.strip():
        raise ResourceValidationError(
            f"zoneId is required to look up security rule '{rule.name}'."
        )

    if rule.rule_id:
        return api.get_security_rule(zone_id, rule.rule_id, cancel_event=cancel_event)

    for stage in LOOKUP_STAGES:
        match = stage(api, zone_id, rule, cancel_event)
        if match is not None:
            return match

    logging.info("No existing security rule found for '%s' in zone %s", rule.name, zone_id)
    return None
