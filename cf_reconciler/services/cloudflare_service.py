# cf_reconciler/services/cloudflare_service.py
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlencode

import requests

from cf_reconciler.errors import InconsistentResponseError, ResourceValidationError
from cf_reconciler.models.cloudflare_models import (
    CloudflareDNSRecordResult,
    CloudflareSecurityRuleResult,
    CloudflareZoneResult,
)
from cf_reconciler.models.resource_models import DnsRecord, SecurityRule, Zone
from cf_reconciler.services import matchers
from cf_reconciler.services.envelope import decode, raise_for_status
from cf_reconciler.services.payloads import (
    build_dns_record_payload,
    build_security_rule_payload,
    build_zone_payload,
)
from cf_reconciler.services.transport import Transport
from cf_reconciler.settings import ProviderSettings, load_settings

M = TypeVar("M")


class CloudflareService:
    """
    Cloudflare API client for the three managed resource kinds:
      - zones (lookup by name, create)
      - DNS records (lookup, create/update)
      - firewall/security rules (lookup, create/update)
    """

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = Transport(settings, session=session, sleep=sleep)

    # --------------------------------------------------
    # Internal helpers
    # --------------------------------------------------

    @staticmethod
    def _describe(path: str, params: Optional[Dict[str, Any]] = None) -> str:
        query = {k: v for k, v in (params or {}).items() if v is not None and str(v).strip()}
        return f"{path}?{urlencode(query)}" if query else path

    def _call(
        self,
        method: str,
        path: str,
        result_type: Any,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        described = self._describe(path, params)
        response = self.transport.request(
            method,
            path,
            params=params,
            json_body=json_body,
            cancel_event=cancel_event,
        )
        with response:
            raise_for_status(response, described)
            return decode(response, result_type, path=described)

    def query_single(
        self,
        path: str,
        params: Dict[str, Any],
        result_model: Type[M],
        *,
        allow_client_errors: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[M]:
        """
        First element of a filtered list query, or None.

        404 always means "no match". With allow_client_errors, any other 4xx
        is also treated as "no match" because some filters are not accepted
        on every plan.
        """
        described = self._describe(path, params)
        response = self.transport.request("GET", path, params=params, cancel_event=cancel_event)
        with response:
            status = response.status_code
            if status == 404:
                logging.debug("Lookup %s returned 404", described)
                return None
            if allow_client_errors and 400 <= status < 500:
                logging.debug("Lookup %s rejected with %s; treating as no match", described, status)
                return None

            raise_for_status(response, described)
            results = decode(response, Optional[List[result_model]], path=described)  # type: ignore[valid-type]
        return results[0] if results else None

    # --------------------------------------------------
    # Zones
    # --------------------------------------------------

    def get_zone(
        self, zone_name: str, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareZoneResult]:
        zones = self._call(
            "GET",
            "/zones",
            Optional[List[CloudflareZoneResult]],
            params={"name": zone_name},
            cancel_event=cancel_event,
        )
        return zones[0] if zones else None

    def create_zone(
        self, zone: Zone, *, cancel_event: Optional[threading.Event] = None
    ) -> CloudflareZoneResult:
        created = self._call(
            "POST",
            "/zones",
            CloudflareZoneResult,
            json_body=build_zone_payload(zone),
            cancel_event=cancel_event,
        )
        logging.info("Created zone %s (id=%s, status=%s)", zone.name, created.id, created.status)
        return created

    # --------------------------------------------------
    # DNS records
    # --------------------------------------------------

    def query_dns_record(
        self,
        zone_id: str,
        *,
        name: str,
        record_type: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[CloudflareDNSRecordResult]:
        return self.query_single(
            f"/zones/{zone_id}/dns_records",
            {"name": name, "type": record_type, "per_page": 1},
            CloudflareDNSRecordResult,
            cancel_event=cancel_event,
        )

    def find_dns_record(
        self, record: DnsRecord, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareDNSRecordResult]:
        return matchers.find_dns_record(self, record, cancel_event=cancel_event)

    def upsert_dns_record(
        self, record: DnsRecord, *, cancel_event: Optional[threading.Event] = None
    ) -> CloudflareDNSRecordResult:
        if not record.zone_id:
            raise ResourceValidationError(
                f"ZoneId is required to manage DNS record '{record.name}'."
            )

        payload = build_dns_record_payload(record)
        if record.record_id:
            result = self._call(
                "PUT",
                f"/zones/{record.zone_id}/dns_records/{record.record_id}",
                CloudflareDNSRecordResult,
                json_body=payload,
                cancel_event=cancel_event,
            )
            logging.info("Updated DNS record %s (%s) -> %s", payload["name"], record.type, record.content)
        else:
            result = self._call(
                "POST",
                f"/zones/{record.zone_id}/dns_records",
                CloudflareDNSRecordResult,
                json_body=payload,
                cancel_event=cancel_event,
            )
            logging.info("Created DNS record %s (%s) -> %s", payload["name"], record.type, record.content)
        return result

    # --------------------------------------------------
    # Security rules
    # --------------------------------------------------

    def get_security_rule(
        self, zone_id: str, rule_id: str, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareSecurityRuleResult]:
        path = f"/zones/{zone_id}/firewall/rules/{rule_id}"
        response = self.transport.request("GET", path, cancel_event=cancel_event)
        with response:
            if response.status_code == 404:
                logging.info("Security rule %s no longer exists in zone %s", rule_id, zone_id)
                return None
            raise_for_status(response, path)
            return decode(response, CloudflareSecurityRuleResult, path=path)

    def query_security_rules_by_description(
        self, zone_id: str, description: str, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareSecurityRuleResult]:
        return self.query_single(
            f"/zones/{zone_id}/firewall/rules",
            {"per_page": 1, "description": description},
            CloudflareSecurityRuleResult,
            allow_client_errors=True,
            cancel_event=cancel_event,
        )

    def list_security_rules(
        self,
        zone_id: str,
        *,
        per_page: int = matchers.RULE_LISTING_PAGE_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[CloudflareSecurityRuleResult]:
        return self._call(
            "GET",
            f"/zones/{zone_id}/firewall/rules",
            Optional[List[CloudflareSecurityRuleResult]],
            params={"per_page": per_page},
            cancel_event=cancel_event,
        ) or []

    def find_security_rule(
        self, zone_id: str, rule: SecurityRule, *, cancel_event: Optional[threading.Event] = None
    ) -> Optional[CloudflareSecurityRuleResult]:
        return matchers.find_security_rule(self, zone_id, rule, cancel_event=cancel_event)

    def upsert_security_rule(
        self, rule: SecurityRule, *, cancel_event: Optional[threading.Event] = None
    ) -> CloudflareSecurityRuleResult:
        if not rule.zone_id:
            raise ResourceValidationError(
                f"ZoneId is required to manage security rule '{rule.name}'."
            )

        if rule.rule_id:
            result = self._call(
                "PUT",
                f"/zones/{rule.zone_id}/firewall/rules/{rule.rule_id}",
                CloudflareSecurityRuleResult,
                json_body=build_security_rule_payload(rule, include_ref=False),
                cancel_event=cancel_event,
            )
            logging.info("Updated security rule %s (id=%s)", rule.name, result.id)
            return result

        created = self._call(
            "POST",
            f"/zones/{rule.zone_id}/firewall/rules",
            Optional[List[CloudflareSecurityRuleResult]],
            json_body=[build_security_rule_payload(rule, include_ref=True)],
            cancel_event=cancel_event,
        )
        if not created:
            raise InconsistentResponseError(
                "Cloudflare API returned no security rules in the response."
            )
        logging.info("Created security rule %s (id=%s)", rule.name, created[0].id)
        return created[0]

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "CloudflareService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class CloudflareServiceFactory:
    """
    Creates CloudflareService instances from loaded settings.

    Reconcilers take a factory instead of a client so each reconciliation
    gets its own session and tests can swap in fakes.
    """

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        *,
        loader: Callable[[], ProviderSettings] = load_settings,
    ) -> None:
        self._settings = settings
        self._loader = loader

    def create(self) -> CloudflareService:
        settings = self._settings if self._settings is not None else self._loader()
        return CloudflareService(settings)

    def __call__(self) -> CloudflareService:
        return self.create()
