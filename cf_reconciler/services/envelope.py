# cf_reconciler/services/envelope.py
from __future__ import annotations

import logging
from typing import Any, Optional, Type, TypeVar, overload

import requests
from pydantic import TypeAdapter, ValidationError

from cf_reconciler.errors import ApiError, DecodeError, EmptyResponseError, HttpStatusError
from cf_reconciler.models.cloudflare_models import CloudflareAPIEnvelope

T = TypeVar("T")


def raise_for_status(response: requests.Response, path: str) -> None:
    if response.ok:
        return
    raise HttpStatusError(response.status_code, path, response.text)


def decode_envelope(response: requests.Response, *, path: Optional[str] = None) -> CloudflareAPIEnvelope:
    """
    Parse the {success, result, errors[]} wrapper and check its success flag.
    """
    body = response.text
    if not body or not body.strip():
        raise EmptyResponseError(path)

    try:
        raw = response.json()
    except ValueError as exc:
        logging.error("Cloudflare returned non-JSON response for %s", path)
        raise DecodeError(response.status_code, body, path, reason=str(exc)) from exc

    if raw is None:
        raise EmptyResponseError(path)

    if not isinstance(raw, dict):
        raise DecodeError(response.status_code, body, path, reason="response is not a JSON object")

    try:
        envelope = CloudflareAPIEnvelope.model_validate(raw)
    except ValidationError as exc:
        logging.error("Cloudflare API response schema validation failed: %s", raw)
        raise DecodeError(response.status_code, body, path, reason=str(exc)) from exc

    if envelope.success is not True:
        error = ApiError(envelope.error_messages)
        logging.error("%s (path=%s)", error, path)
        raise error

    return envelope


@overload
def decode(response: requests.Response, result_type: Type[T], *, path: Optional[str] = None) -> T: ...


@overload
def decode(response: requests.Response, result_type: Any, *, path: Optional[str] = None) -> Any: ...


def decode(response: requests.Response, result_type: Any, *, path: Optional[str] = None) -> Any:
    """
    Decode a response envelope and validate its `result` as `result_type`.

    `result_type` is anything pydantic's TypeAdapter accepts, e.g. a model
    class or List[Model] for list endpoints.
    """
    envelope = decode_envelope(response, path=path)
    try:
        return TypeAdapter(result_type).validate_python(envelope.result)
    except ValidationError as exc:
        raise DecodeError(response.status_code, response.text, path, reason=str(exc)) from exc
