"""Wire model for errors reported by the provisioning server."""

from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass
class ErrorBody:
    """JSON error document returned with 4xx/5xx responses.

    The server reports errors as::

        {"Model": "machines", "Key": "foo", "Type": "API_ERROR",
         "Messages": ["Not Found"], "Code": 404}
    """

    type: str | None = None
    model: str = ""
    key: str = ""
    code: int = 0
    messages: list[str] = field(default_factory=list)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ErrorBody | None":
        """Parse an error document from an HTTP response.

        Args:
            response: HTTP response object

        Returns:
            ErrorBody or None if the body is not a JSON error document
        """
        try:
            data = response.json()
        except (ValueError, TypeError, AttributeError):
            return None
        if not isinstance(data, dict):
            return None
        # Must look like an error document (has at least one standard field)
        standard_fields = {"Model", "Key", "Type", "Messages", "Code"}
        if not any(name in data for name in standard_fields):
            return None
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorBody":
        messages = data.get("Messages") or []
        if isinstance(messages, str):
            messages = [messages]
        code = data.get("Code") or 0
        try:
            code = int(code)
        except (ValueError, TypeError):
            code = 0
        return cls(
            type=data.get("Type") or None,
            model=data.get("Model") or "",
            key=data.get("Key") or "",
            code=code,
            messages=[str(m) for m in messages],
        )
