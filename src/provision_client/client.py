"""Resource operations shared by every session.

These are thin compositions of :class:`~provision_client.request.Request`:
resolve a URL from a prefix and key, pick a method, attach a body, execute,
and wrap the JSON result in a :class:`~provision_client.models.Resource`.
"""

from abc import ABC, abstractmethod
from typing import IO, TYPE_CHECKING, Any

from provision_client.errors import NotFoundError
from provision_client.models import ModelRegistry, Resource
from provision_client.patch import Patch

if TYPE_CHECKING:
    from provision_client.request import Request


class ResourceClient(ABC):
    """CRUD helpers mixed into :class:`~provision_client.session.Session`.

    Subclasses provide ``request()`` and a ``registry``.
    """

    registry: ModelRegistry

    @abstractmethod
    def request(self) -> "Request":
        """Start building a new request."""

    # Server information

    def info(self) -> dict[str, Any]:
        """Basic system information about the server."""
        return self.request().url_for("info").do()

    def logs(self) -> list[dict[str, Any]]:
        """Log lines currently buffered by the server."""
        return self.request().url_for("logs").do() or []

    # Blobs

    def list_blobs(self, at: str, *params: str) -> list[str]:
        """Names of the binary objects stored under ``at``."""
        return self.request().url_for(at).params(*params).do() or []

    def get_blob(self, sink: IO[bytes], *at: str) -> int | None:
        """Download a blob into ``sink``."""
        return self.request().url_for(*at).do_stream(sink)

    def post_blob(self, blob: bytes | IO[bytes], *at: str) -> dict[str, Any]:
        """Upload a blob. The caller closes ``blob`` if it is a stream."""
        return self.request().post_raw(blob).url_for(*at).do()

    def delete_blob(self, *at: str) -> None:
        self.request().delete().url_for(*at).do()

    # Indexes

    def all_indexes(self) -> dict[str, dict[str, Any]]:
        """Static indexes for every resource type."""
        return self.request().url_for("indexes").do() or {}

    def indexes(self, prefix: str) -> dict[str, Any]:
        """Static indexes for one resource type."""
        return self.request().url_for("indexes", prefix).do() or {}

    def one_index(self, prefix: str, param: str) -> dict[str, Any]:
        """The index for ``param`` on ``prefix``; empty if there is none."""
        return self.request().url_for("indexes", prefix, param).do() or {}

    # Resources

    def list_models(self, prefix: str, *params: str) -> list[Resource]:
        """List resources of one type, optionally filtered by query params."""
        resource_type = self.registry.get(prefix)
        data = self.request().url_for(prefix).params(*params).do() or []
        return [Resource(resource_type, item) for item in data]

    def get_model(self, prefix: str, key: str, *params: str) -> Resource:
        """Fetch one resource.

        ``key`` is either the resource's key or the value of any index that
        enforces uniqueness, e.g. ``Name:foo``.
        """
        res = self.registry.new(prefix)
        return res.update(self.request().url_for(prefix, key).params(*params).do())

    def get_model_for_patch(self, prefix: str, key: str, *params: str) -> tuple[Resource, Resource]:
        """Fetch a resource and a deep copy to edit and later patch against."""
        ref = self.get_model(prefix, key, *params)
        return ref, ref.clone()

    def exists_model(self, prefix: str, key: str) -> bool:
        """True if the resource exists. Errors other than 404 propagate."""
        try:
            self.request().head().url_for(prefix, key).do()
        except NotFoundError:
            return False
        return True

    def fill_model(self, ref: Resource, key: str) -> Resource:
        """Replace the contents of ``ref`` with the server copy under ``key``."""
        return ref.update(self.request().url_for(ref.prefix, key).do())

    def create_model(self, ref: Resource) -> Resource:
        """Create ``ref`` on the server and update it with the stored copy."""
        return ref.update(self.request().post(ref).url_for(ref.prefix).do())

    def put_model(self, obj: Resource) -> Resource:
        """Replace the server copy of ``obj`` wholesale.

        The server cannot detect conflicting writers this way; prefer
        :meth:`patch_to_full` with ``paranoid=True`` for that.
        """
        return obj.update(self.request().put(obj).url_for_model(obj).do())

    def delete_model(self, prefix: str, key: str) -> Resource:
        """Delete a resource and return the deleted copy."""
        res = self.registry.new(prefix)
        return res.update(self.request().delete().url_for(prefix, key).do())

    def patch_model(self, prefix: str, key: str, patch: Patch | list[dict[str, Any]]) -> Resource:
        """Apply an RFC 6902 patch on the server.

        Include test operations in ``patch`` to have the server reject
        conflicting changes.
        """
        res = self.registry.new(prefix)
        return res.update(self.request().patch(patch).url_for(prefix, key).do())

    def patch_to(self, old: Resource, new: Resource) -> Resource:
        return self.patch_to_full(old, new, False)

    def patch_to_full(self, old: Resource, new: Resource, paranoid: bool) -> Resource:
        """Patch the server copy of ``old`` into ``new``.

        With ``paranoid`` every changed field is tested against its value in
        ``old`` first, so the server rejects the patch if someone else
        changed it in the meantime.

        Returns:
            A new resource holding the server's copy after the patch.
        """
        res = old.clone()
        req = self.request()
        if paranoid:
            req = req.paranoid_patch()
        return res.update(req.patch_to(old, new).do())
