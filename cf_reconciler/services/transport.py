# cf_reconciler/services/transport.py
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Optional

import requests

from cf_reconciler import __version__
from cf_reconciler.errors import OperationCancelledError, TransportError
from cf_reconciler.settings import ProviderSettings

RequestFactory = Callable[[], requests.Request]

MAX_BACKOFF_SECONDS = 30.0
USER_AGENT = f"cloudflare-reconciler/{__version__}"

RETRYABLE_EXCEPTIONS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


def should_retry(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def parse_retry_after(value: Optional[str], *, now: Optional[datetime] = None) -> Optional[float]:
    """
    Seconds to wait according to a Retry-After header.

    The header holds either a delay in seconds or an HTTP date. Returns None
    when it is missing, unparseable, or not in the future.
    """
    if not value or not value.strip():
        return None
    text = value.strip()

    # delay-seconds is a non-negative integer; anything else must be a date
    seconds: Optional[float] = float(text) if text.isascii() and text.isdigit() else None

    if seconds is None:
        try:
            target = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
        if target is None:
            return None
        if target.tzinfo is None:
            target = target.replace(tzinfo=timezone.utc)
        current = now or datetime.now(timezone.utc)
        seconds = (target - current).total_seconds()

    return seconds if seconds > 0 else None


def calculate_retry_delay(
    response: Optional[requests.Response],
    attempt: int,
    *,
    now: Optional[datetime] = None,
) -> float:
    if response is not None:
        hinted = parse_retry_after(response.headers.get("Retry-After"), now=now)
        if hinted is not None:
            return hinted
    return min(2.0 ** (attempt - 1), MAX_BACKOFF_SECONDS)


def send_with_retry(
    send: Callable[[requests.Request], requests.Response],
    request_factory: RequestFactory,
    *,
    max_attempts: int = 3,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: Optional[threading.Event] = None,
) -> requests.Response:
    """
    Send a request, retrying 429, 5xx and connection failures.

    The factory is called once per attempt so every attempt gets a freshly
    built request. The final attempt's response is returned whatever its
    status; its exception is raised as TransportError.
    """
    for attempt in range(1, max_attempts + 1):
        _raise_if_cancelled(cancel_event)
        request = request_factory()

        try:
            response = send(request)
        except RETRYABLE_EXCEPTIONS as exc:
            if attempt >= max_attempts:
                raise TransportError(
                    f"{request.method} {request.url} failed after {attempt} attempt(s): {exc}"
                ) from exc
            delay = calculate_retry_delay(None, attempt)
            logging.warning(
                "Cloudflare %s %s raised %s (attempt %s/%s); retrying in %.1fs",
                request.method,
                request.url,
                type(exc).__name__,
                attempt,
                max_attempts,
                delay,
            )
            _wait(delay, sleep, cancel_event)
            continue

        if not should_retry(response.status_code) or attempt >= max_attempts:
            return response

        delay = calculate_retry_delay(response, attempt)
        logging.warning(
            "Cloudflare %s %s returned %s (attempt %s/%s); retrying in %.1fs",
            request.method,
            request.url,
            response.status_code,
            attempt,
            max_attempts,
            delay,
        )
        response.close()
        _wait(delay, sleep, cancel_event)

    raise TransportError("Retry logic exhausted unexpectedly.")


def _raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("Cloudflare request cancelled.")


def _wait(
    delay: float,
    sleep: Callable[[float], None],
    cancel_event: Optional[threading.Event],
) -> None:
    if cancel_event is None:
        sleep(delay)
        return
    if cancel_event.wait(delay):
        raise OperationCancelledError("Cloudflare request cancelled while waiting to retry.")


class Transport:
    """
    Authenticated HTTP access to the Cloudflare API with retry/backoff.

    One session per instance. Safe for sequential reuse; not meant to be
    shared between threads.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings.validate()
        self.settings = settings
        self.base_url = settings.base_url
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update(self._headers)

    @property
    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.settings.auth_mode == "token":
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        else:
            headers["X-Auth-Key"] = self.settings.api_key
            headers["X-Auth-Email"] = self.settings.email
        return headers

    def build_url(self, path: str) -> str:
        if not path:
            return self.base_url
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _send_once(self, request: requests.Request) -> requests.Response:
        prepared = self._session.prepare_request(request)
        logging.debug("Cloudflare %s %s", prepared.method, prepared.url)
        return self._session.send(prepared, timeout=self.settings.timeout_seconds)

    def send(
        self,
        request_factory: RequestFactory,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        return send_with_retry(
            self._send_once,
            request_factory,
            max_attempts=self.settings.max_attempts,
            sleep=self._sleep,
            cancel_event=cancel_event,
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        url = self.build_url(path)
        query = {k: v for k, v in (params or {}).items() if v is not None and str(v).strip()}

        def factory() -> requests.Request:
            return requests.Request(
                method,
                url,
                params=query or None,
                json=json_body,
            )

        return self.send(factory, cancel_event=cancel_event)

    def close(self) -> None:
        self._session.close()
