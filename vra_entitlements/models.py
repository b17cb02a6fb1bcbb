"""Wire objects for the catalog entitlements API.

Decoding ignores unknown keys; encoding omits fields the caller left unset,
so a create request carries only ``id``/``type`` in its definition.
"""

from typing import Any, Dict, List, Optional

# Discriminator sent for every entitlement created by this package
CATALOG_SOURCE_IDENTIFIER = "CatalogSourceIdentifier"


class ContentDefinition:
    """What an entitlement grants: a catalog source (or item) and its type tag.

    ``name``, ``description``, ``num_items``, ``source_type``, ``source_name``
    and ``icon_id`` are populated by the server.
    """

    _WIRE_KEYS = (
        ("id", "id"),
        ("type", "type"),
        ("name", "name"),
        ("description", "description"),
        ("num_items", "numItems"),
        ("source_type", "sourceType"),
        ("source_name", "sourceName"),
        ("icon_id", "iconId"),
    )

    def __init__(
        self,
        id: str,
        type: str = CATALOG_SOURCE_IDENTIFIER,
        name: Optional[str] = None,
        description: Optional[str] = None,
        num_items: Optional[int] = None,
        source_type: Optional[str] = None,
        source_name: Optional[str] = None,
        icon_id: Optional[str] = None,
    ):
        self.id = id
        self.type = type
        self.name = name
        self.description = description
        self.num_items = num_items
        self.source_type = source_type
        self.source_name = source_name
        self.icon_id = icon_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentDefinition":
        kwargs = {attr: data.get(key) for attr, key in cls._WIRE_KEYS}
        kwargs["id"] = str(kwargs["id"]) if kwargs["id"] is not None else ""
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire format.  Omits unset fields."""
        d: Dict[str, Any] = {}
        for attr, key in self._WIRE_KEYS:
            value = getattr(self, attr)
            if value is not None:
                d[key] = value
        return d

    def flatten(self) -> List[Dict[str, Any]]:
        """Project into the resource's computed ``definition`` attribute."""
        return [{
            "description": self.description or "",
            "id": self.id or "",
            "name": self.name or "",
            "number_of_items": self.num_items or 0,
            "source_type": self.source_type or "",
            "type": self.type or "",
        }]

    def __repr__(self):
        return f"ContentDefinition(id={self.id!r}, type={self.type!r}, name={self.name!r})"


class Entitlement:
    """A server-side grant linking a project to a content definition."""

    def __init__(self, definition: ContentDefinition, project_id: str, id: Optional[str] = None):
        self.definition = definition
        self.project_id = project_id
        self.id = id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entitlement":
        rid = data.get("id")
        return cls(
            definition=ContentDefinition.from_dict(data.get("definition") or {}),
            project_id=data.get("projectId") or "",
            id=str(rid) if rid is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "definition": self.definition.to_dict(),
            "projectId": self.project_id,
        }
        if self.id is not None:
            d["id"] = self.id
        return d

    def __repr__(self):
        return (
            f"Entitlement(id={self.id!r}, project_id={self.project_id!r}, "
            f"definition={self.definition!r})"
        )


def make_catalog_source_entitlement(catalog_source_id: str, project_id: str) -> Entitlement:
    """Build the create request entitling ``project_id`` to a catalog source."""
    return Entitlement(
        definition=ContentDefinition(id=catalog_source_id, type=CATALOG_SOURCE_IDENTIFIER),
        project_id=project_id,
    )
