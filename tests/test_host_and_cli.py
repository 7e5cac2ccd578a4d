from __future__ import annotations

import json
import logging
import unittest

from click.testing import CliRunner

from cf_reconciler import __version__
from cf_reconciler.errors import ResourceValidationError
from cf_reconciler.host import ResourceHost
from cf_reconciler.main import cli
from fakes import FakeSession, envelope, make_service

CLEAN_ENV = {
    "CLOUDFLARE_CONFIG_PATH": "",
    "CLOUDFLARE_API_TOKEN": "",
    "CLOUDFLARE_API_KEY": "",
    "CLOUDFLARE_EMAIL": "",
    "CLOUDFLARE_BASE_URL": "",
    "LOG_LEVEL": "ERROR",
}


class ResourceHostTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = FakeSession()
        self.host = ResourceHost(lambda: make_service(self.session))

    def test_resource_types(self) -> None:
        self.assertEqual(self.host.resource_types, ["DnsRecord", "SecurityRule", "Zone"])

    def test_preview_echoes_normalized_properties(self) -> None:
        response = self.host.handle(
            "DnsRecord",
            "preview",
            {"name": "www", "zoneName": "example.com", "type": "cname", "content": "app.example.com"},
        )

        self.assertEqual(response["type"], "DnsRecord")
        self.assertEqual(response["identifiers"], {"name": "www", "zoneName": "example.com"})
        self.assertEqual(response["properties"]["type"], "CNAME")
        self.assertEqual(response["properties"]["ttl"], 300)
        self.assertEqual(self.session.calls, [])

    def test_create_or_update_returns_confirmed_state(self) -> None:
        self.session.add("GET", "/zones", 200, envelope([]))
        self.session.add("POST", "/zones", 200, envelope({"id": "z1", "status": "pending", "name_servers": ["a.ns"]}))

        response = self.host.handle_request(
            {"type": "Zone", "operation": "createOrUpdate", "properties": {"name": "example.com"}}
        )

        self.assertEqual(response["identifiers"], {"name": "example.com"})
        self.assertEqual(response["properties"]["zoneId"], "z1")
        self.assertEqual(response["properties"]["status"], "pending")
        self.assertEqual(response["properties"]["nameServers"], ["a.ns"])

    def test_operation_defaults_to_create_or_update(self) -> None:
        self.session.add("GET", "/zones", 200, envelope([{"id": "z1", "status": "active"}]))
        response = self.host.handle_request({"type": "Zone", "properties": {"name": "example.com"}})
        self.assertEqual(response["properties"]["zoneId"], "z1")

    def test_unknown_type(self) -> None:
        with self.assertRaises(ResourceValidationError) as ctx:
            self.host.handle("Worker", "preview", {})
        self.assertIn("Supported types: DnsRecord, SecurityRule, Zone", str(ctx.exception))

    def test_unknown_operation(self) -> None:
        with self.assertRaises(ResourceValidationError):
            self.host.handle("Zone", "delete", {"name": "example.com"})

    def test_invalid_properties(self) -> None:
        with self.assertRaises(ResourceValidationError):
            self.host.handle("DnsRecord", "preview", {"name": "www"})

    def test_request_without_type(self) -> None:
        with self.assertRaises(ResourceValidationError):
            self.host.handle_request({"properties": {}})


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level

        def restore() -> None:
            root.handlers[:] = handlers
            root.setLevel(level)

        self.addCleanup(restore)
        self.runner = CliRunner()

    def test_version(self) -> None:
        result = self.runner.invoke(cli, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_reconcile_preview_from_stdin(self) -> None:
        request = {
            "type": "SecurityRule",
            "operation": "preview",
            "properties": {"name": "r", "zoneId": "z1", "expression": "true", "action": "log"},
        }
        result = self.runner.invoke(
            cli, ["reconcile", "--compact", "-"], input=json.dumps(request), env=CLEAN_ENV
        )

        self.assertEqual(result.exit_code, 0, result.output)
        response = json.loads(result.stdout.strip().splitlines()[-1])
        self.assertEqual(response["identifiers"], {"name": "r", "zoneId": "z1"})
        self.assertTrue(response["properties"]["enabled"])

    def test_reconcile_rejects_invalid_json(self) -> None:
        result = self.runner.invoke(cli, ["reconcile", "-"], input="{nope", env=CLEAN_ENV)
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("not valid JSON", result.output)

    def test_reconcile_reports_unknown_type(self) -> None:
        result = self.runner.invoke(
            cli, ["reconcile", "-"], input=json.dumps({"type": "Worker"}), env=CLEAN_ENV
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unsupported resource type 'Worker'", result.output)

    def test_check_config_without_credentials(self) -> None:
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["check-config"], env=CLEAN_ENV)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("CLOUDFLARE_API_TOKEN", result.output)

    def test_check_config_with_token(self) -> None:
        env = dict(CLEAN_ENV, CLOUDFLARE_API_TOKEN="t")
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["check-config"], env=env)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("auth=token", result.output)


if __name__ == "__main__":
    unittest.main()
