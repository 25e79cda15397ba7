"""Provision Client - session-oriented client for a provisioning service's REST API.

This library provides:
- Username/password and token sessions with background token renewal
- A chainable request builder that reports configuration errors at execution
- An index filter mini-language compiled into query parameters
- JSON patch generation with optional optimistic-concurrency test operations

Example:
    ```python
    from provision_client import Session

    with Session.authenticate("https://127.0.0.1:8092", "rocketskates", "r0cketsk8ts") as session:
        old, new = session.get_model_for_patch("machines", "Name:foo")
        new["Description"] = "rack 12"
        machine = session.patch_to_full(old, new, paranoid=True)

        found = session.request().filter("machines", "Name", "Eq", "foo", "limit", "10").do()
    ```
"""

from provision_client.config import ClientConfig
from provision_client.errors import APIError
from provision_client.filters import FilterClause, compile_filter, parse_filter_params
from provision_client.models import ModelRegistry, Resource, ResourceType, default_registry
from provision_client.patch import Operation, Patch, apply_patch, generate_patch
from provision_client.request import Request
from provision_client.session import APIPATH, Session

__version__ = "0.1.0"

__all__ = [
    "APIPATH",
    "APIError",
    "ClientConfig",
    "FilterClause",
    "ModelRegistry",
    "Operation",
    "Patch",
    "Request",
    "Resource",
    "ResourceType",
    "Session",
    "__version__",
    "apply_patch",
    "compile_filter",
    "default_registry",
    "generate_patch",
    "parse_filter_params",
]
