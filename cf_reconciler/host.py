# cf_reconciler/host.py
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cf_reconciler.errors import ResourceValidationError
from cf_reconciler.models.resource_models import extract_identifiers
from cf_reconciler.reconcilers import (
    DnsRecordReconciler,
    ResourceReconciler,
    SecurityRuleReconciler,
    ZoneReconciler,
)
from cf_reconciler.reconcilers.base import ServiceFactory

OPERATION_CREATE_OR_UPDATE = "createOrUpdate"
OPERATION_PREVIEW = "preview"
OPERATIONS = (OPERATION_CREATE_OR_UPDATE, OPERATION_PREVIEW)


class HostRequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    operation: str = OPERATION_CREATE_OR_UPDATE
    properties: Dict[str, Any] = Field(default_factory=dict)


class ResourceHost:
    """
    Request/response exchange keyed by resource type.

    `handle` takes the desired properties of one resource and returns
    {"type", "identifiers", "properties"} with the server-confirmed state.
    """

    def __init__(self, service_factory: Optional[ServiceFactory] = None) -> None:
        reconcilers = (
            ZoneReconciler(service_factory),
            DnsRecordReconciler(service_factory),
            SecurityRuleReconciler(service_factory),
        )
        self._reconcilers: Dict[str, ResourceReconciler[Any]] = {
            r.resource_type: r for r in reconcilers
        }

    @property
    def resource_types(self) -> List[str]:
        return sorted(self._reconcilers)

    def _reconciler_for(self, resource_type: str) -> ResourceReconciler[Any]:
        reconciler = self._reconcilers.get(resource_type)
        if reconciler is None:
            raise ResourceValidationError(
                f"Unsupported resource type '{resource_type}'. "
                f"Supported types: {', '.join(self.resource_types)}."
            )
        return reconciler

    def handle(
        self,
        resource_type: str,
        operation: str,
        properties: Mapping[str, Any],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        if operation not in OPERATIONS:
            raise ResourceValidationError(
                f"Unsupported operation '{operation}'. Supported operations: {', '.join(OPERATIONS)}."
            )

        reconciler = self._reconciler_for(resource_type)
        resource = reconciler.parse(properties)

        if operation == OPERATION_PREVIEW:
            resource = reconciler.preview(resource)
        else:
            logging.info("Reconciling %s '%s'", resource_type, reconciler.context(resource)[0])
            resource = reconciler.reconcile(resource, cancel_event=cancel_event)

        return {
            "type": resource_type,
            "identifiers": extract_identifiers(resource).to_wire(),
            "properties": resource.to_wire(),
        }

    def handle_request(
        self,
        raw: Mapping[str, Any],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        try:
            request = HostRequestModel.model_validate(dict(raw))
        except ValidationError as exc:
            raise ResourceValidationError(f"Invalid request: {exc}") from exc
        return self.handle(
            request.type,
            request.operation,
            request.properties,
            cancel_event=cancel_event,
        )
