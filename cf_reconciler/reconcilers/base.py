# cf_reconciler/reconcilers/base.py
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Generic, Mapping, Optional, Tuple, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from cf_reconciler.errors import CloudflareError, ReconcileError, ResourceValidationError
from cf_reconciler.services.cloudflare_service import CloudflareService, CloudflareServiceFactory

R = TypeVar("R", bound=BaseModel)

ServiceFactory = Callable[[], CloudflareService]


class ResourceReconciler(ABC, Generic[R]):
    """
    Converges one resource kind to its desired state.

    Subclasses check required fields (`validate`) and run the
    lookup -> create/update -> merge flow (`_reconcile`). Any failure is
    re-raised as a single ReconcileError naming the resource.
    """

    resource_type: ClassVar[str]
    kind: ClassVar[str]
    model: ClassVar[Type[BaseModel]]

    def __init__(self, service_factory: Optional[ServiceFactory] = None) -> None:
        self._service_factory: ServiceFactory = service_factory or CloudflareServiceFactory()

    def parse(self, properties: Mapping[str, Any]) -> R:
        try:
            return self.model.model_validate(dict(properties))  # type: ignore[return-value]
        except ValidationError as exc:
            raise ResourceValidationError(
                f"Invalid {self.resource_type} properties: {exc}"
            ) from exc

    def preview(self, resource: R) -> R:
        return resource

    @abstractmethod
    def context(self, resource: R) -> Tuple[str, Optional[str]]:
        """(name, zone) used in error messages."""

    def validate(self, resource: R) -> None:
        pass

    @abstractmethod
    def _reconcile(
        self,
        service: CloudflareService,
        resource: R,
        cancel_event: Optional[threading.Event],
    ) -> R:
        raise NotImplementedError

    def reconcile(self, resource: R, *, cancel_event: Optional[threading.Event] = None) -> R:
        name, zone = self.context(resource)
        try:
            self.validate(resource)
            with self._service_factory() as service:
                return self._reconcile(service, resource, cancel_event)
        except (CloudflareError, requests.RequestException) as exc:
            logging.error("Reconciling %s '%s' failed: %s", self.kind, name, exc)
            raise ReconcileError(self.kind, name, str(exc), zone=zone) from exc
