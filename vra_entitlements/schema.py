"""Attribute schema of the catalog source entitlement resource type."""

RESOURCE_TYPE_NAME = "vra_catalog_source_entitlement"

DEFINITION_SUBATTRIBUTES = [
    {"name": "description", "type": "string", "computed": True},
    {"name": "id", "type": "string", "computed": True},
    {"name": "name", "type": "string", "computed": True},
    {"name": "number_of_items", "type": "integer", "computed": True},
    {"name": "source_type", "type": "string", "computed": True},
    {"name": "type", "type": "string", "computed": True},
]

CATALOG_SOURCE_ENTITLEMENT_SCHEMA = {
    "name": RESOURCE_TYPE_NAME,
    "description": "Entitles a project to the items of a catalog source",
    "attributes": [
        {"name": "catalog_source_id", "type": "string", "required": True, "force_new": True},
        {"name": "project_id", "type": "string", "required": True, "force_new": True},
        {"name": "definition", "type": "set", "computed": True,
         "subAttributes": DEFINITION_SUBATTRIBUTES},
    ],
}

SCHEMAS = {
    RESOURCE_TYPE_NAME: CATALOG_SOURCE_ENTITLEMENT_SCHEMA,
}


def get_schema(resource_type: str):
    """Get schema definition by resource type name."""
    return SCHEMAS.get(resource_type)


def get_attribute_def(schema: dict, attr_name: str):
    """Get attribute definition from schema."""
    for attr in schema.get("attributes", []):
        if attr["name"] == attr_name:
            return attr
    return None


def required_attributes(schema: dict):
    return [a["name"] for a in schema.get("attributes", []) if a.get("required")]
