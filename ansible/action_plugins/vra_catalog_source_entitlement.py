#!/usr/bin/env python
"""
Ansible Action Plugin for vRA catalog source entitlements

Ensures a project is (or is not) entitled to a catalog source, using the
vra-entitlements resource adapter.  Runs on the controller, like any action
plugin that only talks to a remote API.

Example usage:
  - name: Entitle the dev project to the blueprints source
    vra_catalog_source_entitlement:
      url: https://vra.example.com
      refresh_token: "{{ vra_refresh_token }}"
      catalog_source_id: 2c5bc4c4-8f24-4d26-8c6e-0d2e0a0a7b61
      project_id: "{{ dev_project_id }}"
      state: present
      proxy: http://proxy.example.com:3128
    register: entitlement
"""

from ansible.errors import AnsibleError
from ansible.plugins.action import ActionBase

try:
    import requests
    from vra_entitlements.catalog_entitlements import CatalogEntitlementsService
    from vra_entitlements.http_client import ApiError, VRAClient
    from vra_entitlements.resource import ResourceData, get_resource_type
    from vra_entitlements.schema import RESOURCE_TYPE_NAME
    from vra_entitlements.validator import validate_config
    HAS_VRA_ENTITLEMENTS = True
except ImportError:
    HAS_VRA_ENTITLEMENTS = False


class ActionModule(ActionBase):
    """Ansible action plugin driving the catalog source entitlement adapter."""

    TRANSFERS_FILES = False

    def run(self, tmp=None, task_vars=None):
        if task_vars is None:
            task_vars = dict()

        result = super(ActionModule, self).run(tmp, task_vars)
        del tmp  # tmp no longer has any effect

        if not HAS_VRA_ENTITLEMENTS:
            raise AnsibleError(
                "vra-entitlements is not installed. "
                "Install it with: pip install vra-entitlements"
            )

        args = self._task.args
        state = args.get('state', 'present')
        if state not in ('present', 'absent'):
            result['failed'] = True
            result['msg'] = f"state must be 'present' or 'absent', got: {state}"
            return result

        url = args.get('url')
        access_token = args.get('access_token')
        refresh_token = args.get('refresh_token')
        if not url or not (access_token or refresh_token):
            result['failed'] = True
            result['msg'] = "'url' and one of 'access_token' or 'refresh_token' are required"
            return result

        config = {
            'catalog_source_id': args.get('catalog_source_id'),
            'project_id': args.get('project_id'),
        }
        ok, errors = validate_config(config)
        if not ok:
            result['failed'] = True
            result['msg'] = "Invalid entitlement arguments:\n" + "\n".join(
                f"  - {e}" for e in errors
            )
            return result

        client = VRAClient(
            url,
            access_token=access_token,
            refresh_token=refresh_token,
            tls_no_verify=bool(args.get('tls_no_verify', False)),
            timeout=int(args.get('timeout', 30)),
            proxy=args.get('proxy'),
            ca_bundle=args.get('ca_bundle'),
        )
        adapter = get_resource_type(RESOURCE_TYPE_NAME)()
        data = ResourceData(config)

        try:
            with client:
                api = CatalogEntitlementsService(client)
                adapter.read(api, data)
                changed = (state == 'present') != bool(data.id)
                if changed and not self._play_context.check_mode:
                    if state == 'present':
                        adapter.create(api, data)
                    else:
                        adapter.delete(api, data)
        except (ApiError, requests.RequestException) as e:
            result['failed'] = True
            result['msg'] = f"vRA request failed: {e}"
            return result

        result['changed'] = changed
        result['state'] = data.state
        result['id'] = data.id
        result['definition'] = data.get('definition') or []
        return result
