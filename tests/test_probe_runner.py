"""Integration tests for the lifecycle check against mock vRA servers.

Exercise the full pipeline (runner -> checks -> report):

- Conformant server (all checks pass, nothing left behind)
- Pre-existing entitlement (probe refuses to touch it)
- Duplicate entitlements, ignored deletes, failing creates and deletes
- Side-effect consent gating
- Terminal output
"""

import json
import pytest
from vra_entitlements.probe.runner import run_probe
from tests.mock_vra_server import MockVRAServer

SOURCE = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def conformant_server():
    with MockVRAServer() as s:
        yield s


def _run(server, **kwargs):
    """Helper: run probe with consent, JSON output and the mock's credentials."""
    kwargs.setdefault("accept_side_effects", True)
    kwargs.setdefault("json_output", True)
    kwargs.setdefault("access_token", server.access_token)
    return run_probe(server.base_url, SOURCE, "proj-a", **kwargs)


def _report(capsys):
    return json.loads(capsys.readouterr().out)


def _statuses(report):
    return {r["name"]: r["status"] for r in report["results"]}


class TestConformantServer:

    def test_full_lifecycle_passes(self, conformant_server, capsys):
        exit_code = _run(conformant_server)
        report = _report(capsys)

        assert exit_code == 0
        assert report["summary"]["failed"] == 0
        assert report["summary"]["errors"] == 0
        assert report["summary"]["passed"] == 9
        assert report["issues"] == []
        assert conformant_server.entitlements == []

    def test_refresh_token_login(self, conformant_server, capsys):
        exit_code = _run(conformant_server, access_token=None,
                         refresh_token=conformant_server.refresh_token)
        assert exit_code == 0
        assert _report(capsys)["summary"]["failed"] == 0

    def test_terminal_output(self, conformant_server, capsys):
        exit_code = _run(conformant_server, json_output=False)
        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Phase 2 - Create" in out
        assert "[PASS] Entitlement absent after delete" in out
        assert "9 passed" in out


class TestSideEffectConsent:

    def test_refuses_without_consent(self, conformant_server, capsys):
        exit_code = _run(conformant_server, accept_side_effects=False)
        output = _report(capsys)
        assert exit_code == 1
        assert output["error"] == "Side-effect consent required"
        assert conformant_server.requests == []

    def test_refuses_without_consent_terminal(self, conformant_server, capsys):
        exit_code = _run(conformant_server, accept_side_effects=False, json_output=False)
        assert exit_code == 1
        assert "--i-accept-side-effects" in capsys.readouterr().out


class TestExistingEntitlement:

    def test_existing_entitlement_is_left_alone(self, conformant_server, capsys):
        conformant_server.add_entitlement("proj-a", SOURCE, entitlement_id="keep-me")
        exit_code = _run(conformant_server)
        statuses = _statuses(_report(capsys))

        assert exit_code == 1
        assert statuses["Catalog source not yet entitled"] == "fail"
        assert statuses["Lifecycle"] == "skip"
        assert "Create entitlement" not in statuses
        assert [e["id"] for e in conformant_server.entitlements] == ["keep-me"]


class TestNonConformantServers:

    def test_duplicates_are_warned_and_leftover_detected(self, capsys):
        with MockVRAServer(non_conformances={"duplicate_entitlements": True}) as server:
            exit_code = _run(server)
        statuses = _statuses(_report(capsys))
        assert exit_code == 1
        assert statuses["Single entitlement per catalog source"] == "warn"
        assert statuses["Entitlement absent after delete"] == "fail"

    def test_ignored_delete_is_reported(self, capsys):
        with MockVRAServer(non_conformances={"ignore_delete": True}) as server:
            exit_code = _run(server)
        report = _report(capsys)
        assert exit_code == 1
        assert report["issues"][0]["title"] == "Entitlement still listed after delete"

    def test_failing_create_is_error(self, capsys):
        with MockVRAServer(non_conformances={"fail_create": True}) as server:
            exit_code = _run(server)
        statuses = _statuses(_report(capsys))
        assert exit_code == 1
        assert statuses["Create entitlement"] == "error"
        assert "Delete entitlement" not in statuses

    def test_failing_delete_is_cleaned_up_or_reported(self, capsys):
        with MockVRAServer(non_conformances={"fail_delete": True}) as server:
            exit_code = _run(server)
            leftover = list(server.entitlements)
        report = _report(capsys)
        cleanup = [r for r in report["results"] if r.get("phase") == "Cleanup"]
        assert exit_code == 1
        assert len(cleanup) == 1
        assert cleanup[0]["status"] == "error"
        assert len(leftover) == 1

    def test_skip_cleanup_leaves_entitlement(self, capsys):
        with MockVRAServer(non_conformances={"fail_delete": True}) as server:
            _run(server, skip_cleanup=True)
        report = _report(capsys)
        assert not [r for r in report["results"] if r.get("phase") == "Cleanup"]

    def test_bad_credentials_are_errors(self, conformant_server, capsys):
        exit_code = _run(conformant_server, access_token="wrong")
        report = _report(capsys)
        assert exit_code == 1
        assert _statuses(report)["List entitlements"] == "error"
        assert report["issues"][0]["title"] == "Authentication rejected"


class TestCreateReadBackFailures:

    def test_failing_read_after_create_is_cleaned_up(self, capsys):
        with MockVRAServer(non_conformances={"fail_list_after_create": True}) as server:
            exit_code = _run(server)
            leftover = list(server.entitlements)
        report = _report(capsys)
        statuses = _statuses(report)
        cleanup = [r for r in report["results"] if r.get("phase") == "Cleanup"]
        assert exit_code == 1
        assert statuses["Create entitlement"] == "error"
        assert [r["status"] for r in cleanup] == ["pass"]
        assert leftover == []

    def test_unlisted_created_entitlement_is_cleaned_up(self, capsys):
        with MockVRAServer(non_conformances={"hide_created": True}) as server:
            exit_code = _run(server)
            leftover = list(server.entitlements)
        report = _report(capsys)
        cleanup = [r for r in report["results"] if r.get("phase") == "Cleanup"]
        assert exit_code == 1
        assert _statuses(report)["Create entitlement"] == "fail"
        assert report["issues"][0]["title"] == "Entitlement not listed after create"
        assert [r["status"] for r in cleanup] == ["pass"]
        assert leftover == []
