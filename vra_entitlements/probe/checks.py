"""Individual lifecycle checks run by the probe.

Each ``check_*`` function drives the resource adapter against a live
entitlements API and returns a list of ``ProbeResult`` objects:

- Phase 1: Pre-flight (list works, no entitlement exists yet)
- Phase 2: Create
- Phase 3: Read (fields match the declaration, repeated reads agree)
- Phase 4: Delete
- Phase 5: Read after delete (resource reported absent)

Checks never raise; API and transport failures become ERROR results.
"""

from typing import Any, Dict, List

from ..models import CATALOG_SOURCE_IDENTIFIER
from ..resource import ABSENT, Resource, ResourceData
from .report import ProbeResult

PHASE_PREFLIGHT = "Phase 1 - Pre-flight"
PHASE_CREATE = "Phase 2 - Create"
PHASE_READ = "Phase 3 - Read"
PHASE_DELETE = "Phase 4 - Delete"
PHASE_READ_AFTER_DELETE = "Phase 5 - Read after delete"


def check_preflight(api, data: ResourceData) -> List[ProbeResult]:
    """List the project's entitlements and make sure the pair is not entitled already.

    An existing entitlement is reported as FAIL so that the probe never
    touches an entitlement it did not create.
    """
    catalog_source_id = data.get("catalog_source_id")
    project_id = data.get("project_id")
    try:
        entitlements = api.list_entitlements(project_id)
    except Exception as exc:
        return [ProbeResult("List entitlements", ProbeResult.ERROR,
                            message=str(exc), phase=PHASE_PREFLIGHT)]

    results = [ProbeResult(
        "List entitlements", ProbeResult.PASS,
        message=f"{len(entitlements)} entitlement(s) in project", phase=PHASE_PREFLIGHT,
    )]
    existing = [e for e in entitlements if e.definition.id == catalog_source_id]
    if existing:
        results.append(ProbeResult(
            "Catalog source not yet entitled", ProbeResult.FAIL,
            message=f"entitlement {existing[0].id} already exists; refusing to modify it",
            phase=PHASE_PREFLIGHT,
        ))
    else:
        results.append(ProbeResult("Catalog source not yet entitled", ProbeResult.PASS,
                                   phase=PHASE_PREFLIGHT))
    return results


class _CreateRecorder:
    """Passes calls through to ``api`` and remembers every id a create returned."""

    def __init__(self, api):
        self._api = api
        self.created_ids: List[str] = []

    def create_entitlement(self, entitlement):
        entitlement_id = self._api.create_entitlement(entitlement)
        self.created_ids.append(entitlement_id)
        return entitlement_id

    def __getattr__(self, name):
        return getattr(self._api, name)


def check_create(api, adapter: Resource, data: ResourceData,
                 created: List[Dict[str, Any]]) -> List[ProbeResult]:
    """Create the entitlement and record the server-assigned id in ``created`` for cleanup.

    The id is recorded as soon as the create call returns, so an entitlement
    whose read-back fails is still cleaned up.
    """
    recorder = _CreateRecorder(api)
    try:
        adapter.create(recorder, data)
    except Exception as exc:
        return [ProbeResult("Create entitlement", ProbeResult.ERROR,
                            message=str(exc), phase=PHASE_CREATE)]
    finally:
        created.extend({"id": rid} for rid in recorder.created_ids)

    if data.state == ABSENT:
        return [ProbeResult(
            "Create entitlement", ProbeResult.FAIL,
            message="created entitlement was not returned by list", phase=PHASE_CREATE,
        )]
    return [ProbeResult("Create entitlement", ProbeResult.PASS,
                        message=f"id {data.id}", phase=PHASE_CREATE)]


def check_read(api, adapter: Resource, data: ResourceData) -> List[ProbeResult]:
    """Verify the read-back fields, duplicate freedom and read idempotence."""
    results: List[ProbeResult] = []
    catalog_source_id = data.get("catalog_source_id")
    project_id = data.get("project_id")
    definition = (data.get("definition") or [{}])[0]

    if definition.get("id") == catalog_source_id:
        results.append(ProbeResult("definition.id matches catalog source", ProbeResult.PASS,
                                   phase=PHASE_READ))
    else:
        results.append(ProbeResult(
            "definition.id matches catalog source", ProbeResult.FAIL,
            message=f"definition.id is {definition.get('id')!r}, expected {catalog_source_id!r}",
            phase=PHASE_READ,
        ))

    if definition.get("type") == CATALOG_SOURCE_IDENTIFIER:
        results.append(ProbeResult("definition.type", ProbeResult.PASS, phase=PHASE_READ))
    else:
        results.append(ProbeResult(
            "definition.type", ProbeResult.WARN,
            message=f"server reports type {definition.get('type')!r}", phase=PHASE_READ,
        ))

    try:
        entitlements = api.list_entitlements(project_id)
    except Exception as exc:
        results.append(ProbeResult("Single entitlement per catalog source", ProbeResult.ERROR,
                                   message=str(exc), phase=PHASE_READ))
        return results
    matches = [e for e in entitlements if e.definition.id == catalog_source_id]
    if len(matches) > 1:
        results.append(ProbeResult(
            "Single entitlement per catalog source", ProbeResult.WARN,
            message=f"{len(matches)} entitlements match; read uses the first ({matches[0].id})",
            phase=PHASE_READ,
        ))
    else:
        results.append(ProbeResult("Single entitlement per catalog source", ProbeResult.PASS,
                                   phase=PHASE_READ))

    before = data.to_dict()
    again = ResourceData(dict(data.attributes), id=data.id)
    try:
        adapter.read(api, again)
    except Exception as exc:
        results.append(ProbeResult("Repeated read is stable", ProbeResult.ERROR,
                                   message=str(exc), phase=PHASE_READ))
        return results
    if again.to_dict() == before:
        results.append(ProbeResult("Repeated read is stable", ProbeResult.PASS, phase=PHASE_READ))
    else:
        results.append(ProbeResult(
            "Repeated read is stable", ProbeResult.FAIL,
            message="second read produced different state", phase=PHASE_READ,
        ))
    return results


def check_delete(api, adapter: Resource, data: ResourceData,
                 created: List[Dict[str, Any]]) -> List[ProbeResult]:
    """Delete the entitlement; on success it is dropped from the cleanup list."""
    entitlement_id = data.id
    try:
        adapter.delete(api, data)
    except Exception as exc:
        return [ProbeResult("Delete entitlement", ProbeResult.ERROR,
                            message=str(exc), phase=PHASE_DELETE)]

    created[:] = [r for r in created if r["id"] != entitlement_id]
    return [ProbeResult("Delete entitlement", ProbeResult.PASS,
                        message=f"id {entitlement_id}", phase=PHASE_DELETE)]


def check_read_after_delete(api, adapter: Resource, data: ResourceData,
                            deleted_id: str) -> List[ProbeResult]:
    """A read after delete must report the resource absent without raising."""
    probe = ResourceData(dict(data.attributes), id=deleted_id)
    try:
        adapter.read(api, probe)
    except Exception as exc:
        return [ProbeResult("Entitlement absent after delete", ProbeResult.ERROR,
                            message=str(exc), phase=PHASE_READ_AFTER_DELETE)]
    if probe.state == ABSENT:
        return [ProbeResult("Entitlement absent after delete", ProbeResult.PASS,
                            phase=PHASE_READ_AFTER_DELETE)]
    return [ProbeResult(
        "Entitlement absent after delete", ProbeResult.FAIL,
        message=f"entitlement {probe.id} still listed", phase=PHASE_READ_AFTER_DELETE,
    )]
