"""Resource types and the registry used to build result containers.

The client does not know the schema of individual resources. A resource is a
JSON object tagged with its :class:`ResourceType`, which names the URL prefix
the object lives under and the field holding its unique key.

Example:
    ```python
    registry = default_registry()
    machine = registry.from_dict("machines", {"Uuid": "3f2c...", "Name": "foo"})
    machine.key  # "3f2c..."
    ```
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from provision_client.errors import UnknownModelError


@dataclass(frozen=True)
class ResourceType:
    """A kind of object the server stores, e.g. ``machines`` keyed by ``Uuid``."""

    prefix: str
    key_field: str = "Name"


@dataclass
class Resource:
    """One object of a registered resource type."""

    type: ResourceType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return self.type.prefix

    @property
    def key(self) -> str:
        value = self.data.get(self.type.key_field)
        return "" if value is None else str(value)

    def same_identity(self, other: "Resource") -> bool:
        """True when both resources have the same prefix and key."""
        return self.prefix == other.prefix and self.key == other.key

    def to_dict(self) -> dict[str, Any]:
        return self.data

    def clone(self) -> "Resource":
        return Resource(self.type, copy.deepcopy(self.data))

    def update(self, data: dict[str, Any] | None) -> "Resource":
        """Replace the contents with ``data`` as returned by the server."""
        self.data = dict(data or {})
        return self

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.data[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)


class ModelRegistry:
    """Maps prefixes to resource types.

    A registry is owned by a session; nothing here is process-wide.
    """

    def __init__(self, types: list[ResourceType] | None = None):
        self._types: dict[str, ResourceType] = {}
        for resource_type in types or []:
            self._types[resource_type.prefix] = resource_type

    def register(self, prefix: str, key_field: str = "Name") -> ResourceType:
        resource_type = ResourceType(prefix, key_field)
        self._types[prefix] = resource_type
        return resource_type

    def get(self, prefix: str) -> ResourceType:
        try:
            return self._types[prefix]
        except KeyError:
            raise UnknownModelError(f"No such Model: {prefix}", model=prefix) from None

    def __contains__(self, prefix: str) -> bool:
        return prefix in self._types

    def prefixes(self) -> list[str]:
        return sorted(self._types)

    def new(self, prefix: str) -> Resource:
        """Return an empty resource of the given type."""
        return Resource(self.get(prefix))

    def from_dict(self, prefix: str, data: dict[str, Any]) -> Resource:
        return Resource(self.get(prefix), dict(data))


STANDARD_TYPES: tuple[ResourceType, ...] = (
    ResourceType("bootenvs"),
    ResourceType("contexts"),
    ResourceType("jobs", "Uuid"),
    ResourceType("leases", "Addr"),
    ResourceType("machines", "Uuid"),
    ResourceType("params"),
    ResourceType("plugins"),
    ResourceType("profiles"),
    ResourceType("reservations", "Addr"),
    ResourceType("roles"),
    ResourceType("stages"),
    ResourceType("subnets"),
    ResourceType("tasks"),
    ResourceType("tenants"),
    ResourceType("templates", "ID"),
    ResourceType("users"),
    ResourceType("workflows"),
)


def default_registry() -> ModelRegistry:
    """Build a new registry holding the standard provisioning types."""
    return ModelRegistry(list(STANDARD_TYPES))
