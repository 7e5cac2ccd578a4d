from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

from cf_reconciler.errors import ResourceValidationError
from cf_reconciler.models.cloudflare_models import CloudflareDNSRecordResult
from cf_reconciler.models.resource_models import DNS_RECORD_TYPES, DnsRecord
from cf_reconciler.reconcilers.base import ResourceReconciler
from cf_reconciler.services.cloudflare_service import CloudflareService


def merge_dns_record(record: DnsRecord, result: CloudflareDNSRecordResult) -> DnsRecord:
    record.record_id = result.id
    record.content = result.content
    record.proxied = result.proxied
    record.proxiable = result.proxiable
    record.ttl = result.ttl

    if result.comment:
        record.comment = result.comment

    if record.uses_priority and result.priority is not None:
        record.priority = result.priority

    return record


class DnsRecordReconciler(ResourceReconciler[DnsRecord]):
    resource_type = "DnsRecord"
    kind = "DNS record"
    model = DnsRecord

    def context(self, resource: DnsRecord) -> Tuple[str, Optional[str]]:
        return resource.name, resource.zone_name

    def validate(self, resource: DnsRecord) -> None:
        if not resource.zone_id:
            raise ResourceValidationError(
                f"ZoneId is required for DNS record '{resource.name}'. "
                "Provide the Cloudflare zone ID of the owning zone."
            )
        if not resource.zone_name or not resource.zone_name.strip():
            raise ResourceValidationError(f"zoneName is required for DNS record '{resource.name}'.")
        if resource.type not in DNS_RECORD_TYPES:
            raise ResourceValidationError(
                f"Record type '{resource.type}' is not supported. "
                f"Allowed values: {', '.join(DNS_RECORD_TYPES)}."
            )

    def _reconcile(
        self,
        service: CloudflareService,
        resource: DnsRecord,
        cancel_event: Optional[threading.Event],
    ) -> DnsRecord:
        if not resource.record_id:
            existing = service.find_dns_record(resource, cancel_event=cancel_event)
            if existing is not None:
                resource.record_id = existing.id
            else:
                logging.info(
                    "No existing DNS record %s (%s) in zone %s; creating it.",
                    resource.name,
                    resource.type,
                    resource.zone_name,
                )

        result = service.upsert_dns_record(resource, cancel_event=cancel_event)
        return merge_dns_record(resource, result)
