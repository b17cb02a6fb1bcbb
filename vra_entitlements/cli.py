"""CLI interface for vra-entitlements using Click.

Connection settings are global options, each with a ``VRA_*`` environment
variable fallback::

    export VRA_URL=https://vra.example.com VRA_REFRESH_TOKEN=...
    vra-entitlements create --catalog-source-id <uuid> --project-id <id>
    vra-entitlements read --catalog-source-id <uuid> --project-id <id>
    vra-entitlements delete --id <entitlement-uuid>
    vra-entitlements import <entitlement-uuid>
    vra-entitlements check --catalog-source-id <uuid> --project-id <id> --i-accept-side-effects
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

import click
import requests

from . import __version__
from .catalog_entitlements import CatalogEntitlementsService
from .http_client import ApiError, VRAClient
from .probe.report import colorize
from .probe.runner import run_probe
from .resource import ResourceData, get_resource_type
from .schema import RESOURCE_TYPE_NAME
from .validator import validate_config


def _print_error(message: str, path: str = ""):
    loc = f" at {path}" if path else ""
    click.echo(colorize(f"error: {message}{loc}", "red"), err=True)


def _print_state(data: ResourceData, json_output: bool):
    """Print the resource state as JSON or as a short terminal summary."""
    if json_output:
        click.echo(json.dumps(data.to_dict(), indent=2))
        return

    if not data.id:
        click.echo(colorize("absent", "yellow"))
        return
    click.echo(colorize(f"{RESOURCE_TYPE_NAME} {data.id}", "bold"))
    click.echo(f"  catalog_source_id: {data.get('catalog_source_id', '')}")
    click.echo(f"  project_id:        {data.get('project_id', '')}")
    for definition in data.get("definition") or []:
        click.echo("  definition:")
        for key in sorted(definition):
            click.echo(f"    {key}: {definition[key]}")


def _check_connection_settings(settings: Dict[str, Any]):
    if not settings["url"]:
        raise click.UsageError("missing platform URL (use --url or VRA_URL)")
    if not settings["access_token"] and not settings["refresh_token"]:
        raise click.UsageError(
            "missing credentials (use --access-token/VRA_ACCESS_TOKEN "
            "or --refresh-token/VRA_REFRESH_TOKEN)"
        )


def _build_client(settings: Dict[str, Any]) -> VRAClient:
    _check_connection_settings(settings)
    return VRAClient(
        settings["url"],
        access_token=settings["access_token"],
        refresh_token=settings["refresh_token"],
        tls_no_verify=settings["tls_no_verify"],
        timeout=settings["timeout"],
        proxy=settings["proxy"],
        ca_bundle=settings["ca_bundle"],
    )


def _validated(config: Dict[str, Any]) -> Dict[str, Any]:
    ok, errors = validate_config(config)
    if not ok:
        for error in errors:
            _print_error(error.message, error.path)
        sys.exit(1)
    return config


def _run(ctx: click.Context, operation: str, data: Optional[ResourceData] = None,
         resource_id: str = "") -> ResourceData:
    """Run one adapter operation; API and transport errors exit with status 1."""
    settings = ctx.obj
    adapter = get_resource_type(RESOURCE_TYPE_NAME)()
    client = _build_client(settings)
    try:
        with client:
            api = CatalogEntitlementsService(client)
            if operation == "import":
                data = adapter.import_state(api, resource_id)
            else:
                getattr(adapter, operation)(api, data)
    except ApiError as e:
        _print_error(str(e))
        sys.exit(1)
    except requests.RequestException as e:
        _print_error(f"request failed: {e}")
        sys.exit(1)
    return data


@click.group()
@click.option("--url", envvar="VRA_URL", help="Platform base URL")
@click.option("--access-token", envvar="VRA_ACCESS_TOKEN", help="Bearer access token")
@click.option("--refresh-token", envvar="VRA_REFRESH_TOKEN",
              help="API refresh token, exchanged for an access token")
@click.option("--tls-no-verify", envvar="VRA_TLS_NO_VERIFY", is_flag=True,
              help="Skip TLS certificate verification")
@click.option("--ca-bundle", envvar="VRA_CA_BUNDLE", help="CA bundle for TLS verification")
@click.option("--proxy", envvar="VRA_PROXY", help="HTTP/HTTPS proxy URL")
@click.option("--timeout", envvar="VRA_TIMEOUT", type=int, default=30, show_default=True,
              help="Per-request timeout in seconds")
@click.option("--json", "json_output", is_flag=True, help="Print machine-readable JSON")
@click.option("-v", "--verbose", is_flag=True, help="Log requests and adapter steps")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx, url, access_token, refresh_token, tls_no_verify, ca_bundle, proxy, timeout,
         json_output, verbose):
    """Manage vRA catalog source entitlements as declarative resources."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {
        "url": url,
        "access_token": access_token,
        "refresh_token": refresh_token,
        "tls_no_verify": tls_no_verify,
        "ca_bundle": ca_bundle,
        "proxy": proxy,
        "timeout": timeout,
        "json_output": json_output,
    }


@main.command()
@click.option("--catalog-source-id", required=True, help="Catalog source to entitle")
@click.option("--project-id", required=True, help="Project receiving the entitlement")
@click.pass_context
def create(ctx, catalog_source_id, project_id):
    """Entitle a project to a catalog source."""
    config = _validated({"catalog_source_id": catalog_source_id, "project_id": project_id})
    data = _run(ctx, "create", ResourceData(config))
    _print_state(data, ctx.obj["json_output"])


@main.command()
@click.option("--catalog-source-id", required=True, help="Entitled catalog source")
@click.option("--project-id", required=True, help="Entitled project")
@click.pass_context
def read(ctx, catalog_source_id, project_id):
    """Show the entitlement of a catalog source in a project, or "absent"."""
    config = _validated({"catalog_source_id": catalog_source_id, "project_id": project_id})
    data = _run(ctx, "read", ResourceData(config))
    _print_state(data, ctx.obj["json_output"])


@main.command()
@click.option("--id", "entitlement_id", required=True, help="Entitlement id")
@click.option("--catalog-source-id", default="", help="Recorded for the printed state only")
@click.option("--project-id", default="", help="Recorded for the printed state only")
@click.pass_context
def delete(ctx, entitlement_id, catalog_source_id, project_id):
    """Delete an entitlement by id."""
    attributes = {"catalog_source_id": catalog_source_id, "project_id": project_id}
    data = _run(ctx, "delete", ResourceData(attributes, id=entitlement_id))
    _print_state(data, ctx.obj["json_output"])


@main.command("import")
@click.argument("entitlement_id")
@click.pass_context
def import_(ctx, entitlement_id):
    """Re-attach to an existing entitlement by id and print its state."""
    data = _run(ctx, "import", resource_id=entitlement_id)
    _print_state(data, ctx.obj["json_output"])
    if not data.id:
        _print_error(f"no entitlement with id {entitlement_id}")
        sys.exit(1)


@main.command()
@click.option("--catalog-source-id", required=True, help="Catalog source to entitle")
@click.option("--project-id", required=True, help="Project receiving the entitlement")
@click.option("--i-accept-side-effects", "accept_side_effects", is_flag=True,
              help="Confirm that a real entitlement will be created and deleted")
@click.option("--skip-cleanup", is_flag=True,
              help="Leave an entitlement created by a failed check on the server")
@click.pass_context
def check(ctx, catalog_source_id, project_id, accept_side_effects, skip_cleanup):
    """Run create, read, delete and read again against the server and report each step."""
    _validated({"catalog_source_id": catalog_source_id, "project_id": project_id})
    settings = ctx.obj
    _check_connection_settings(settings)
    exit_code = run_probe(
        settings["url"],
        catalog_source_id,
        project_id,
        access_token=settings["access_token"],
        refresh_token=settings["refresh_token"],
        tls_no_verify=settings["tls_no_verify"],
        skip_cleanup=skip_cleanup,
        json_output=settings["json_output"],
        accept_side_effects=accept_side_effects,
        timeout=settings["timeout"],
        proxy=settings["proxy"],
        ca_bundle=settings["ca_bundle"],
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
