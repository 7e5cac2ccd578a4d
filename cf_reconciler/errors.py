# cf_reconciler/errors.py
from __future__ import annotations

from typing import Iterable, List, Optional


class CloudflareError(Exception):
    """Base class for every failure raised by this package."""


class ConfigurationError(CloudflareError, ValueError):
    pass


class ResourceValidationError(CloudflareError, ValueError):
    pass


class UnsupportedActionError(ResourceValidationError):
    def __init__(self, action: Optional[str], supported: Iterable[str]) -> None:
        self.action = action
        self.supported: List[str] = list(supported)
        super().__init__(
            f"Action '{action}' is not supported. "
            f"Allowed values: {', '.join(self.supported)}."
        )


class TransportError(CloudflareError):
    """Connection failure or timeout that survived every retry attempt."""


class OperationCancelledError(CloudflareError):
    pass


class HttpStatusError(CloudflareError):
    def __init__(self, status_code: int, path: str, body: str) -> None:
        self.status_code = status_code
        self.path = path
        self.body = body
        super().__init__(
            f"Cloudflare API request to '{path}' failed: {status_code} - {body}"
        )


class DecodeError(CloudflareError):
    def __init__(
        self,
        status_code: int,
        body: str,
        path: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.path = path
        lines = ["Failed to deserialize Cloudflare API response."]
        if reason:
            lines.append(f"Reason: {reason}")
        if path:
            lines.append(f"Request Path: {path}")
        lines.append(f"Status Code: {status_code}")
        lines.append(f"Response Body: {body}")
        super().__init__("\n".join(lines))


class ApiError(CloudflareError):
    def __init__(self, messages: Iterable[str]) -> None:
        self.messages: List[str] = [m for m in messages if m]
        joined = ", ".join(self.messages) if self.messages else "Unknown error"
        super().__init__(f"Cloudflare API error: {joined}")


class EmptyResponseError(CloudflareError):
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        suffix = f" (request path: {path})" if path else ""
        super().__init__(f"Cloudflare API returned an empty response{suffix}.")


class InconsistentResponseError(CloudflareError):
    pass


class ReconcileError(CloudflareError):
    def __init__(
        self,
        kind: str,
        name: str,
        message: str,
        *,
        zone: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.zone = zone
        where = f" in zone '{zone}'" if zone else ""
        super().__init__(f"Failed to create/update {kind} '{name}'{where}: {message}")
