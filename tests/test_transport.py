from __future__ import annotations

import threading
import unittest
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import requests

from cf_reconciler.errors import ConfigurationError, HttpStatusError, OperationCancelledError, TransportError
from cf_reconciler.services.transport import (
    USER_AGENT,
    calculate_retry_delay,
    parse_retry_after,
    send_with_retry,
    should_retry,
)
from fakes import BASE_URL, FakeSession, envelope, make_response, make_service


ZONE = {"id": "z1", "name": "example.com", "status": "active", "name_servers": []}


class RetryPolicyTests(unittest.TestCase):
    def test_retryable_statuses(self) -> None:
        for status in (429, 500, 502, 503, 599):
            self.assertTrue(should_retry(status), status)
        for status in (200, 400, 401, 403, 404, 409):
            self.assertFalse(should_retry(status), status)

    def test_exponential_backoff_is_capped(self) -> None:
        self.assertEqual(calculate_retry_delay(None, 1), 1.0)
        self.assertEqual(calculate_retry_delay(None, 2), 2.0)
        self.assertEqual(calculate_retry_delay(None, 3), 4.0)
        self.assertEqual(calculate_retry_delay(None, 10), 30.0)

    def test_retry_after_seconds(self) -> None:
        self.assertEqual(parse_retry_after("7"), 7.0)
        self.assertIsNone(parse_retry_after("0"))
        self.assertIsNone(parse_retry_after(""))
        self.assertIsNone(parse_retry_after("soon"))

    def test_retry_after_rejects_non_integer_delays(self) -> None:
        for value in ("inf", "1.5", "-3", "1e12", "NaN"):
            self.assertIsNone(parse_retry_after(value), value)

    def test_retry_after_http_date(self) -> None:
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=12), usegmt=True)
        self.assertEqual(parse_retry_after(header, now=now), 12.0)

        past = format_datetime(now - timedelta(seconds=5), usegmt=True)
        self.assertIsNone(parse_retry_after(past, now=now))

    def test_retry_after_header_overrides_backoff(self) -> None:
        response = make_response(429, headers={"Retry-After": "3"})
        self.assertEqual(calculate_retry_delay(response, 2), 3.0)


class SendWithRetryTests(unittest.TestCase):
    def _factory(self) -> requests.Request:
        return requests.Request("GET", BASE_URL + "/zones")

    def test_factory_is_called_per_attempt(self) -> None:
        built = []
        statuses = iter([500, 200])

        def factory() -> requests.Request:
            request = self._factory()
            built.append(request)
            return request

        response = send_with_retry(
            lambda _request: make_response(next(statuses)),
            factory,
            sleep=lambda _delay: None,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(built), 2)
        self.assertIsNot(built[0], built[1])

    def test_retried_response_is_closed_before_waiting(self) -> None:
        events = []
        first = make_response(503)
        final = make_response(200)
        first.close = lambda: events.append("close:503")  # type: ignore[method-assign]
        final.close = lambda: events.append("close:200")  # type: ignore[method-assign]
        responses = iter([first, final])

        response = send_with_retry(
            lambda _request: next(responses),
            self._factory,
            sleep=lambda delay: events.append(f"sleep:{delay}"),
        )

        self.assertIs(response, final)
        self.assertEqual(events, ["close:503", "sleep:1.0"])

    def test_cancelled_before_first_attempt(self) -> None:
        event = threading.Event()
        event.set()
        sent = []

        with self.assertRaises(OperationCancelledError):
            send_with_retry(
                lambda request: sent.append(request) or make_response(200),
                self._factory,
                cancel_event=event,
            )
        self.assertEqual(sent, [])

    def test_cancelled_while_waiting_to_retry(self) -> None:
        event = threading.Event()
        sent = []

        def send(request: requests.Request) -> requests.Response:
            sent.append(request)
            event.set()
            return make_response(503)

        with self.assertRaises(OperationCancelledError):
            send_with_retry(send, self._factory, cancel_event=event)
        self.assertEqual(len(sent), 1)


class TransportTests(unittest.TestCase):
    def test_persistent_503_is_sent_three_times(self) -> None:
        session = FakeSession()
        for _ in range(3):
            session.add("GET", "/zones", 503, "unavailable")
        sleeps = []
        service = make_service(session, sleeps)

        with self.assertRaises(HttpStatusError) as ctx:
            service.get_zone("example.com")

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(len(session.calls), 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_429_is_retried_with_retry_after(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 429, "slow down", headers={"Retry-After": "5"})
        session.add("GET", "/zones", 200, envelope([ZONE]))
        sleeps = []
        service = make_service(session, sleeps)

        zone = service.get_zone("example.com")

        self.assertIsNotNone(zone)
        self.assertEqual(zone.id, "z1")
        self.assertEqual(sleeps, [5.0])

    def test_malformed_retry_after_falls_back_to_backoff(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 429, "slow down", headers={"Retry-After": "1e12"})
        session.add("GET", "/zones", 200, envelope([ZONE]))
        sleeps = []
        service = make_service(session, sleeps)

        self.assertEqual(service.get_zone("example.com").id, "z1")
        self.assertEqual(sleeps, [1.0])

    def test_client_errors_are_not_retried(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 400, "bad request")
        sleeps = []
        service = make_service(session, sleeps)

        with self.assertRaises(HttpStatusError) as ctx:
            service.get_zone("example.com")

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("bad request", str(ctx.exception))
        self.assertEqual(len(session.calls), 1)
        self.assertEqual(sleeps, [])

    def test_connection_errors_become_transport_error(self) -> None:
        session = FakeSession()
        for _ in range(3):
            session.add_error("GET", "/zones", requests.exceptions.ConnectionError("refused"))
        sleeps = []
        service = make_service(session, sleeps)

        with self.assertRaises(TransportError):
            service.get_zone("example.com")

        self.assertEqual(len(session.calls), 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_max_attempts_setting_is_honoured(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 502, "")
        sleeps = []
        service = make_service(session, sleeps, max_attempts=1)

        with self.assertRaises(HttpStatusError):
            service.get_zone("example.com")
        self.assertEqual(sleeps, [])

    def test_token_auth_headers(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 200, envelope([]))
        make_service(session).get_zone("example.com")

        headers = session.calls[0].headers
        self.assertEqual(headers["Authorization"], "Bearer test-token")
        self.assertEqual(headers["User-Agent"], USER_AGENT)
        self.assertNotIn("X-Auth-Key", headers)

    def test_key_auth_headers(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 200, envelope([]))
        make_service(session, api_token="", api_key="k", email="ops@example.com").get_zone("example.com")

        headers = session.calls[0].headers
        self.assertEqual(headers["X-Auth-Key"], "k")
        self.assertEqual(headers["X-Auth-Email"], "ops@example.com")
        self.assertNotIn("Authorization", headers)

    def test_missing_credentials_fail_before_any_request(self) -> None:
        session = FakeSession()
        with self.assertRaises(ConfigurationError) as ctx:
            make_service(session, api_token="", api_key="k")
        self.assertIn("CLOUDFLARE_API_TOKEN", str(ctx.exception))
        self.assertEqual(session.calls, [])

    def test_blank_query_parameters_are_dropped(self) -> None:
        session = FakeSession()
        session.add("GET", "/zones", 200, envelope([]))
        service = make_service(session)

        with service.transport.request("GET", "/zones", params={"name": "", "status": "active", "x": None}):
            pass

        self.assertEqual(session.calls[0].query, {"status": "active"})

    def test_build_url(self) -> None:
        transport = make_service(FakeSession()).transport
        self.assertEqual(transport.build_url("/zones"), BASE_URL + "/zones")
        self.assertEqual(transport.build_url("zones"), BASE_URL + "/zones")
        self.assertEqual(transport.build_url("https://other/x"), "https://other/x")


if __name__ == "__main__":
    unittest.main()
