"""Orchestrates the catalog source entitlement lifecycle check.

``run_probe()`` connects to a live vRA server, entitles a project to a
catalog source, reads it back, deletes it and reads again, then returns an
exit code (0 = all pass, 1 = failures).

Safety mechanisms:
- Requires ``accept_side_effects=True`` before executing (CLI flag: ``--i-accept-side-effects``)
- Refuses to proceed when the pair is already entitled, so existing grants are never touched
- An entitlement left behind by a failed check is deleted during cleanup
"""

import datetime
import json
from typing import Any, Dict, List, Optional

from .. import __version__
from ..catalog_entitlements import CatalogEntitlementsService
from ..http_client import VRAClient
from ..resource import ResourceData, get_resource_type
from ..schema import RESOURCE_TYPE_NAME
from .checks import (
    PHASE_CREATE,
    check_create,
    check_delete,
    check_preflight,
    check_read,
    check_read_after_delete,
)
from .report import ProbeResult, print_results


def run_probe(
    base_url: str,
    catalog_source_id: str,
    project_id: str,
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    tls_no_verify: bool = False,
    skip_cleanup: bool = False,
    json_output: bool = False,
    accept_side_effects: bool = False,
    timeout: int = 30,
    proxy: Optional[str] = None,
    ca_bundle: Optional[str] = None,
) -> int:
    """Run the lifecycle check and return an exit code.

    Returns:
        0 if every check passes (warnings are OK), 1 otherwise.

    Args:
        base_url:             Root URL of the vRA platform.
        catalog_source_id:    Catalog source to entitle.
        project_id:           Project receiving the entitlement.
        access_token:         Bearer token for authentication.
        refresh_token:        API refresh token, exchanged for an access token.
        tls_no_verify:        Skip TLS certificate verification.
        skip_cleanup:         If True, leave a created entitlement on the server.
        json_output:          If True, output results as JSON instead of terminal.
        accept_side_effects:  Must be True to proceed; the check creates and
                              deletes a real entitlement.
        timeout:              Per-request timeout in seconds.
        proxy:                HTTP/HTTPS proxy URL.
        ca_bundle:            Path to a CA bundle file for TLS certificate verification.
    """
    if not accept_side_effects:
        _print_side_effect_warning(base_url, catalog_source_id, project_id, json_output)
        return 1

    client = VRAClient(
        base_url,
        access_token=access_token,
        refresh_token=refresh_token,
        tls_no_verify=tls_no_verify,
        timeout=timeout,
        proxy=proxy,
        ca_bundle=ca_bundle,
    )
    api = CatalogEntitlementsService(client)
    adapter = get_resource_type(RESOURCE_TYPE_NAME)()
    data = ResourceData({"catalog_source_id": catalog_source_id, "project_id": project_id})

    run_timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    results: List[ProbeResult] = []
    created: List[Dict[str, Any]] = []

    with client:
        results.extend(_run_lifecycle(api, adapter, data, created))
        if not skip_cleanup and created:
            _cleanup(api, created, results)

    print_results(results, json_output=json_output, version=__version__,
                  timestamp=run_timestamp)

    has_failures = any(
        r.status in (ProbeResult.FAIL, ProbeResult.ERROR)
        for r in results
    )
    return 1 if has_failures else 0


def _run_lifecycle(api, adapter, data: ResourceData,
                   created: List[Dict[str, Any]]) -> List[ProbeResult]:
    results = check_preflight(api, data)
    if _has_failures(results):
        results.append(ProbeResult("Lifecycle", ProbeResult.SKIP,
                                   message="pre-flight failed", phase=PHASE_CREATE))
        return results

    results.extend(check_create(api, adapter, data, created))
    if _has_failures(results):
        return results

    results.extend(check_read(api, adapter, data))

    entitlement_id = data.id
    delete_results = check_delete(api, adapter, data, created)
    results.extend(delete_results)
    if _has_failures(delete_results):
        return results

    results.extend(check_read_after_delete(api, adapter, data, entitlement_id))
    return results


def _has_failures(results: List[ProbeResult]) -> bool:
    return any(r.status in (ProbeResult.FAIL, ProbeResult.ERROR) for r in results)


def _print_side_effect_warning(base_url: str, catalog_source_id: str, project_id: str,
                               json_output: bool):
    """Warn the user that the check will create and delete an entitlement, then exit."""
    message = (
        f"The lifecycle check will create and delete an entitlement of catalog source "
        f"{catalog_source_id} in project {project_id} on {base_url}. "
        f"Pass --i-accept-side-effects to proceed."
    )
    if json_output:
        print(json.dumps({"error": "Side-effect consent required", "message": message}, indent=2))
    else:
        print(f"\n  {message}\n")


def _cleanup(api, created: List[Dict[str, Any]], results: List[ProbeResult]):
    """Delete entitlements a failed check left behind."""
    for resource in reversed(created):
        rid = resource["id"]
        try:
            api.delete_entitlement(rid)
            results.append(ProbeResult(f"Delete entitlement {rid}", ProbeResult.PASS,
                                       phase="Cleanup"))
        except Exception as exc:
            results.append(ProbeResult(f"Delete entitlement {rid}", ProbeResult.ERROR,
                                       message=str(exc), phase="Cleanup"))
    created.clear()
