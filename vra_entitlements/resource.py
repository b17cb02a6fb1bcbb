"""Resource adapters and the resource-type table.

A resource adapter turns a flat attribute bag (``ResourceData``) into calls
on an entitlements API service and writes what the server reports back into
the bag.  The API service is passed into every operation; adapters hold no
client state of their own.

Identity lives in ``ResourceData.id``: an empty id means the resource is
absent.  ``read`` signals "gone from the server" by clearing the id, never by
raising, so the host can schedule a re-create.  Errors from the API service
(``ApiError``, ``requests.RequestException``) propagate unchanged.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from .models import Entitlement, make_catalog_source_entitlement
from .schema import CATALOG_SOURCE_ENTITLEMENT_SCHEMA, RESOURCE_TYPE_NAME

logger = logging.getLogger(__name__)

ABSENT = "absent"
CREATED = "created"


class ResourceData:
    """Attribute bag plus identity for a single resource instance."""

    def __init__(self, attributes: Optional[Dict[str, Any]] = None, id: str = ""):
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.id = id or ""

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def set_id(self, resource_id: Optional[str]) -> None:
        self.id = resource_id or ""

    @property
    def state(self) -> str:
        return CREATED if self.id else ABSENT

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id}
        d.update(self.attributes)
        return d

    def __repr__(self):
        return f"ResourceData(id={self.id!r}, attributes={self.attributes!r})"


class Resource:
    """Base class for resource adapters.

    Subclasses implement ``create``, ``read`` and ``delete``.  The default
    ``import_state`` re-attaches by identity alone: it seeds a bag with the
    id and reads it.
    """

    type_name = ""
    schema: Dict[str, Any] = {}

    def create(self, api, data: ResourceData) -> None:
        raise NotImplementedError

    def read(self, api, data: ResourceData) -> None:
        raise NotImplementedError

    def delete(self, api, data: ResourceData) -> None:
        raise NotImplementedError

    def import_state(self, api, resource_id: str) -> ResourceData:
        data = ResourceData(id=resource_id)
        self.read(api, data)
        return data


# Resource type name -> adapter class
RESOURCE_TYPES: Dict[str, Type[Resource]] = {}


def register(type_name: str):
    """Class decorator adding an adapter to ``RESOURCE_TYPES``."""
    def decorator(cls: Type[Resource]) -> Type[Resource]:
        cls.type_name = type_name
        RESOURCE_TYPES[type_name] = cls
        return cls
    return decorator


def get_resource_type(type_name: str) -> Type[Resource]:
    try:
        return RESOURCE_TYPES[type_name]
    except KeyError:
        known = ", ".join(sorted(RESOURCE_TYPES)) or "none"
        raise KeyError(f"Unknown resource type {type_name!r} (known: {known})") from None


def find_entitlement(
    entitlements: Iterable[Entitlement],
    catalog_source_id: str = "",
    entitlement_id: str = "",
) -> Optional[Entitlement]:
    """Return the first entitlement matching the catalog source, in list order.

    Matching compares ``definition.id`` with ``catalog_source_id`` as exact
    strings.  Only when no catalog source is known (a fresh import) does it
    fall back to matching the entitlement's own id.  Later duplicates are
    ignored.
    """
    for entitlement in entitlements:
        if catalog_source_id:
            if entitlement.definition.id == catalog_source_id:
                return entitlement
        elif entitlement_id and entitlement.id == entitlement_id:
            return entitlement
    return None


@register(RESOURCE_TYPE_NAME)
class CatalogSourceEntitlement(Resource):
    """Entitles a project to every item of one catalog source."""

    schema = CATALOG_SOURCE_ENTITLEMENT_SCHEMA

    def create(self, api, data: ResourceData) -> None:
        logger.info("starting to create %s resource", self.type_name)
        entitlement = make_catalog_source_entitlement(
            data.get("catalog_source_id"), data.get("project_id"),
        )
        data.set_id(api.create_entitlement(entitlement))
        logger.info("finished creating %s resource with id %s", self.type_name, data.id)

        self.read(api, data)

    def read(self, api, data: ResourceData) -> None:
        catalog_source_id = data.get("catalog_source_id") or ""
        project_id = data.get("project_id") or ""
        logger.info("reading %s resource for catalog source %r in project %r",
                    self.type_name, catalog_source_id, project_id)

        entitlements: List[Entitlement] = api.list_entitlements(project_id or None)
        match = find_entitlement(entitlements, catalog_source_id, entitlement_id=data.id)
        if match is None:
            logger.info("%s resource %r not found on server, marking absent",
                        self.type_name, data.id)
            data.set_id("")
            return

        data.set_id(match.id)
        data.set("project_id", match.project_id)
        data.set("definition", match.definition.flatten())
        if not catalog_source_id:
            data.set("catalog_source_id", match.definition.id)
        logger.info("finished reading %s resource %s", self.type_name, data.id)

    def delete(self, api, data: ResourceData) -> None:
        logger.info("starting to delete %s resource %s", self.type_name, data.id)
        api.delete_entitlement(data.id)
        deleted = data.id
        data.set_id("")
        logger.info("finished deleting %s resource %s", self.type_name, deleted)
