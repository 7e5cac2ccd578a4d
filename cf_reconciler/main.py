# cf_reconciler/main.py
"""Command-line entry point.

Usage:
    cf-reconciler reconcile request.json    # converge one resource
    cat request.json | cf-reconciler reconcile -
    cf-reconciler check-config              # verify credentials are configured

A request looks like:
    {"type": "DnsRecord", "operation": "createOrUpdate",
     "properties": {"name": "app", "zoneName": "example.com", ...}}
"""
from __future__ import annotations

import json
import logging
import os
from typing import IO, Optional

import click

from cf_reconciler import __version__
from cf_reconciler.errors import CloudflareError
from cf_reconciler.host import ResourceHost
from cf_reconciler.logging_setup import setup_logging
from cf_reconciler.settings import load_settings


@click.group()
@click.version_option(version=__version__, prog_name="cf-reconciler")
@click.option(
    "--log-level",
    default=lambda: os.getenv("LOG_LEVEL", "INFO"),
    show_default="INFO (or $LOG_LEVEL)",
    help="DEBUG, INFO, WARNING or ERROR",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write plain log lines to this file",
)
def cli(log_level: str, log_file: Optional[str]) -> None:
    setup_logging(
        level=log_level,
        logfile=log_file or "cf_reconciler.log",
        add_file_handler=bool(log_file),
    )


@cli.command()
@click.argument("request_file", type=click.File("r"), default="-")
@click.option("--compact", is_flag=True, help="Print the response on a single line")
def reconcile(request_file: IO[str], compact: bool) -> None:
    """Converge the resource described by REQUEST_FILE ("-" for stdin)."""
    try:
        raw = json.load(request_file)
    except ValueError as exc:
        raise click.ClickException(f"Request is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise click.ClickException("Request must be a JSON object.")

    try:
        response = ResourceHost().handle_request(raw)
    except CloudflareError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps(response, indent=None if compact else 2))


@cli.command("check-config")
def check_config() -> None:
    """Validate provider credentials without calling the API."""
    settings = load_settings()
    try:
        settings.validate()
    except CloudflareError as exc:
        raise click.ClickException(str(exc)) from exc

    logging.debug("Using base URL %s", settings.base_url)
    click.echo(f"auth={settings.auth_mode} base_url={settings.base_url}")


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
