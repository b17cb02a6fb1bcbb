"""Catalog entitlements endpoints of the Service Broker catalog API.

Three calls, each a single request:

- ``create_entitlement``  -> ``POST   /catalog/api/admin/entitlements``
- ``list_entitlements``   -> ``GET    /catalog/api/admin/entitlements?projectId=``
- ``delete_entitlement``  -> ``DELETE /catalog/api/admin/entitlements/{id}``

Any non-2xx answer raises ``ApiError``; transport failures from ``requests``
propagate unchanged.
"""

from typing import Dict, List, Optional

from .http_client import ApiError, VRAClient
from .models import Entitlement

ENTITLEMENTS_PATH = "/catalog/api/admin/entitlements"
API_VERSION = "2020-08-25"


class CatalogEntitlementsService:
    """Typed wrapper over the entitlements endpoints of a ``VRAClient``."""

    def __init__(self, client: VRAClient, api_version: str = API_VERSION):
        self.client = client
        self.api_version = api_version

    def _params(self, **extra: Optional[str]) -> Dict[str, str]:
        params = {"apiVersion": self.api_version}
        for key, value in extra.items():
            if value:
                params[key] = value
        return params

    def create_entitlement(self, entitlement: Entitlement) -> str:
        """Create an entitlement and return the server-assigned id."""
        resp = self.client.post(ENTITLEMENTS_PATH, entitlement.to_dict(), params=self._params())
        resp.raise_for_status()
        body = resp.json() or {}
        if not body.get("id"):
            raise ApiError(resp.status_code, "POST", ENTITLEMENTS_PATH,
                           "create response has no entitlement id")
        return str(body["id"])

    def list_entitlements(self, project_id: Optional[str] = None) -> List[Entitlement]:
        """List entitlements, scoped to ``project_id`` when one is given.

        The endpoint answers with a plain JSON array; a paged
        ``{"content": [...]}`` body is accepted as well.
        """
        resp = self.client.get(ENTITLEMENTS_PATH, params=self._params(projectId=project_id))
        resp.raise_for_status()
        body = resp.json() or []
        if isinstance(body, dict):
            body = body.get("content") or []
        return [Entitlement.from_dict(item) for item in body]

    def delete_entitlement(self, entitlement_id: str) -> None:
        path = f"{ENTITLEMENTS_PATH}/{entitlement_id}"
        self.client.delete(path, params=self._params()).raise_for_status()
