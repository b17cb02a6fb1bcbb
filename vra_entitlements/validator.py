"""Host-side validation of a resource's declared configuration.

The adapter in ``resource.py`` trusts its inputs; the CLI and the Ansible
plugin run ``ConfigValidator`` first and refuse to call the adapter when it
reports errors.
"""

from typing import Any, Dict, List, Tuple

from .schema import RESOURCE_TYPE_NAME, get_attribute_def, get_schema, required_attributes


class ValidationError:
    """Represents a validation error with location and message."""

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path

    def __str__(self):
        loc = f" at {self.path}" if self.path else ""
        return f"{self.message}{loc}"

    def __repr__(self):
        return f"ValidationError({self.message!r}, path={self.path!r})"


class ConfigValidator:
    """Checks an attribute bag against the resource type's schema."""

    def __init__(self, resource_type: str = RESOURCE_TYPE_NAME):
        schema = get_schema(resource_type)
        if schema is None:
            raise KeyError(f"Unknown resource type: {resource_type}")
        self.schema = schema
        self.errors: List[ValidationError] = []

    def validate(self, config: Dict[str, Any]) -> Tuple[bool, List[ValidationError]]:
        """
        Validate declared configuration.

        Args:
            config: attribute name -> value, as written by the user

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        self.errors = []

        for name in required_attributes(self.schema):
            value = config.get(name)
            if value is None or value == "":
                self.errors.append(ValidationError(f"Missing required attribute: '{name}'", name))

        for name, value in config.items():
            attr_def = get_attribute_def(self.schema, name)
            if attr_def is None:
                self.errors.append(ValidationError(f"Unknown attribute: '{name}'", name))
                continue
            if attr_def.get("computed") and not attr_def.get("required"):
                self.errors.append(ValidationError(
                    f"Attribute '{name}' is computed and cannot be set", name))
                continue
            if value is not None and attr_def["type"] == "string" and not isinstance(value, str):
                self.errors.append(ValidationError(
                    f"Attribute '{name}' must be a string, got {type(value).__name__}", name))

        return len(self.errors) == 0, self.errors


def validate_config(config: Dict[str, Any],
                    resource_type: str = RESOURCE_TYPE_NAME) -> Tuple[bool, List[ValidationError]]:
    """Convenience wrapper around ``ConfigValidator(resource_type).validate``."""
    return ConfigValidator(resource_type).validate(config)
