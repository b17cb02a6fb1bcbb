"""Tests for the vra_catalog_source_entitlement Ansible action plugin.

The plugin runs with fake ``_task`` and ``_play_context`` objects against the
mock vRA server; ``ActionBase.run`` is stubbed so no Ansible play is needed.
"""

import importlib.util
import os

import pytest

action = pytest.importorskip("ansible.plugins.action")

from tests.mock_vra_server import MockVRAServer

SOURCE = "11111111-1111-1111-1111-111111111111"
PLUGIN_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "ansible", "action_plugins", "vra_catalog_source_entitlement.py",
)


class FakeTask:
    def __init__(self, args):
        self.args = args


class FakePlayContext:
    def __init__(self, check_mode=False):
        self.check_mode = check_mode


@pytest.fixture(scope="module")
def plugin():
    spec = importlib.util.spec_from_file_location("vra_catalog_source_entitlement", PLUGIN_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def stub_action_base(monkeypatch):
    monkeypatch.setattr(action.ActionBase, "run", lambda self, tmp=None, task_vars=None: {})


@pytest.fixture
def server():
    with MockVRAServer() as s:
        yield s


def _run(plugin, server, check_mode=False, **overrides):
    args = {
        "url": server.base_url,
        "access_token": server.access_token,
        "catalog_source_id": SOURCE,
        "project_id": "proj-a",
        "state": "present",
    }
    args.update(overrides)
    module = plugin.ActionModule.__new__(plugin.ActionModule)
    module._task = FakeTask(args)
    module._play_context = FakePlayContext(check_mode)
    return module.run(task_vars={})


def test_present_creates_then_is_unchanged(plugin, server):
    first = _run(plugin, server)
    assert first["changed"] is True
    assert first["state"] == "created"
    assert first["definition"][0]["id"] == SOURCE
    assert [e["id"] for e in server.entitlements] == [first["id"]]

    second = _run(plugin, server)
    assert second["changed"] is False
    assert second["id"] == first["id"]
    assert len(server.create_bodies) == 1


def test_check_mode_reports_change_without_creating(plugin, server):
    result = _run(plugin, server, check_mode=True)
    assert result["changed"] is True
    assert result["state"] == "absent"
    assert server.entitlements == []
    assert not [r for r in server.requests if r["method"] == "POST"]


def test_absent_deletes_existing(plugin, server):
    server.add_entitlement("proj-a", SOURCE, entitlement_id="e-1")
    result = _run(plugin, server, state="absent")
    assert result["changed"] is True
    assert result["id"] == ""
    assert server.entitlements == []


def test_absent_when_missing_is_unchanged(plugin, server):
    result = _run(plugin, server, state="absent")
    assert result["changed"] is False
    assert not [r for r in server.requests if r["method"] == "DELETE"]


def test_api_error_fails_task(plugin, server):
    server.non_conformances["fail_create"] = True
    result = _run(plugin, server)
    assert result["failed"] is True
    assert "failed with status 500" in result["msg"]


def test_non_json_response_fails_task(plugin, server):
    server.non_conformances["html_body"] = True
    result = _run(plugin, server)
    assert result["failed"] is True
    assert "response body is not JSON" in result["msg"]


def test_invalid_state_fails_before_any_request(plugin, server):
    result = _run(plugin, server, state="gone")
    assert result["failed"] is True
    assert "state must be 'present' or 'absent'" in result["msg"]
    assert server.requests == []


def test_missing_catalog_source_fails_validation(plugin, server):
    result = _run(plugin, server, catalog_source_id="")
    assert result["failed"] is True
    assert "Invalid entitlement arguments" in result["msg"]
    assert server.requests == []


def test_proxy_is_passed_to_client(plugin, server, monkeypatch):
    captured = {}
    real_client = plugin.VRAClient

    def recording_client(*args, **kwargs):
        captured.update(kwargs)
        kwargs["proxy"] = None
        return real_client(*args, **kwargs)

    monkeypatch.setattr(plugin, "VRAClient", recording_client)
    result = _run(plugin, server, proxy="http://proxy.example.com:3128")
    assert result["changed"] is True
    assert captured["proxy"] == "http://proxy.example.com:3128"
