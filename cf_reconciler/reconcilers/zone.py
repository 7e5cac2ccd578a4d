from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

from cf_reconciler.errors import ResourceValidationError
from cf_reconciler.models.resource_models import Zone
from cf_reconciler.reconcilers.base import ResourceReconciler
from cf_reconciler.services.cloudflare_service import CloudflareService


class ZoneReconciler(ResourceReconciler[Zone]):
    """Ensures a zone exists. Existing zones are adopted as-is, never modified."""

    resource_type = "Zone"
    kind = "Cloudflare zone"
    model = Zone

    def context(self, resource: Zone) -> Tuple[str, Optional[str]]:
        return resource.name, None

    def validate(self, resource: Zone) -> None:
        if not resource.name:
            raise ResourceValidationError("Zone name is required.")

    def _reconcile(
        self,
        service: CloudflareService,
        resource: Zone,
        cancel_event: Optional[threading.Event],
    ) -> Zone:
        logging.info("Ensuring Cloudflare zone '%s' exists.", resource.name)

        existing = service.get_zone(resource.name, cancel_event=cancel_event)
        if existing is not None:
            resource.zone_id = existing.id
            resource.status = existing.status
            resource.name_servers = list(existing.name_servers)
            resource.paused = existing.paused
            logging.warning("Zone '%s' already exists (id=%s). Skipping creation.", resource.name, existing.id)
            return resource

        created = service.create_zone(resource, cancel_event=cancel_event)
        resource.zone_id = created.id
        resource.status = created.status
        resource.name_servers = list(created.name_servers)
        return resource
