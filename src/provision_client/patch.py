"""JSON patch generation for optimistic concurrency.

:func:`generate_patch` diffs two snapshots of the same object into an
RFC 6902 edit script. In paranoid mode every ``remove`` and ``replace`` is
preceded by a ``test`` of the value being overwritten, so the server rejects
the patch if another writer changed that field after the snapshot was read.
Without paranoid mode the last writer wins.

:func:`apply_patch` applies a script to a JSON document with jsonpatch. The
server does this for real; the client uses it to verify generated scripts
and to simulate the server-side ``test`` check.

Example:
    ```python
    patch = generate_patch({"Name": "a", "Tags": []}, {"Name": "b", "Tags": []}, paranoid=True)
    patch.to_list()
    # [{"op": "test", "path": "/Name", "value": "a"},
    #  {"op": "replace", "path": "/Name", "value": "b"}]
    ```
"""

import copy
from dataclasses import dataclass
from typing import Any

import jsonpatch
from jsonpointer import JsonPointerException, escape

from provision_client.errors import IdentityMismatchError, PatchError, PatchTestError

_VALUE_OPS = frozenset(["add", "replace", "test"])
_FROM_OPS = frozenset(["move", "copy"])


@dataclass
class Operation:
    """A single RFC 6902 operation."""

    op: str
    path: str
    value: Any = None
    from_: str | None = None

    def to_dict(self) -> dict[str, Any]:
        res: dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op in _VALUE_OPS:
            res["value"] = self.value
        if self.op in _FROM_OPS:
            res["from"] = self.from_
        return res

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Operation":
        return cls(
            op=data["op"],
            path=data["path"],
            value=data.get("value"),
            from_=data.get("from"),
        )


class Patch(list):
    """Ordered list of :class:`Operation`."""

    def to_list(self) -> list[dict[str, Any]]:
        return [op.to_dict() for op in self]

    def to_dict(self) -> list[dict[str, Any]]:
        # Lets the request body encoder treat a Patch like any other model.
        return self.to_list()

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> "Patch":
        return cls(Operation.from_dict(item) for item in data)

    def tests(self) -> list[Operation]:
        return [op for op in self if op.op == "test"]


def json_equal(a: Any, b: Any) -> bool:
    """Compare two JSON values, keeping booleans distinct from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return type(a) is type(b) and a == b


def _as_document(obj: Any) -> Any:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return obj


def _diff(old: Any, new: Any, path: str, ops: Patch, paranoid: bool) -> None:
    if json_equal(old, new):
        return
    if isinstance(old, dict) and isinstance(new, dict):
        for key, old_value in old.items():
            child = f"{path}/{escape(str(key))}"
            if key not in new:
                if paranoid:
                    ops.append(Operation("test", child, copy.deepcopy(old_value)))
                ops.append(Operation("remove", child))
            else:
                _diff(old_value, new[key], child, ops, paranoid)
        for key, new_value in new.items():
            if key not in old:
                ops.append(Operation("add", f"{path}/{escape(str(key))}", copy.deepcopy(new_value)))
        return
    if isinstance(old, list) and isinstance(new, list):
        common = min(len(old), len(new))
        for i in range(common):
            _diff(old[i], new[i], f"{path}/{i}", ops, paranoid)
        for i in range(common, len(new)):
            ops.append(Operation("add", f"{path}/{i}", copy.deepcopy(new[i])))
        # Remove from the tail so earlier indexes stay valid.
        for i in range(len(old) - 1, common - 1, -1):
            if paranoid:
                ops.append(Operation("test", f"{path}/{i}", copy.deepcopy(old[i])))
            ops.append(Operation("remove", f"{path}/{i}"))
        return
    if paranoid:
        ops.append(Operation("test", path, copy.deepcopy(old)))
    ops.append(Operation("replace", path, copy.deepcopy(new)))


def generate_patch(old: Any, new: Any, paranoid: bool = False) -> Patch:
    """Compute the edit script that turns ``old`` into ``new``.

    ``old`` and ``new`` may be plain JSON values or resources. Resources must
    share prefix and key, since a patch applies within one object's identity.

    Args:
        old: Snapshot the patch will be applied to.
        new: Desired state.
        paranoid: Precede every remove/replace with a test of the old value.

    Returns:
        The edit script; empty when the snapshots are equal.

    Raises:
        IdentityMismatchError: If old and new are resources with a different
            prefix or key.
    """
    if hasattr(old, "same_identity") and hasattr(new, "same_identity"):
        if not old.same_identity(new):
            raise IdentityMismatchError(
                f"Cannot patch from {old.prefix} to {new.prefix}, or change keys from {old.key} to {new.key}",
                model=old.prefix,
                key=old.key,
            )
    ops = Patch()
    _diff(_as_document(old), _as_document(new), "", ops, paranoid)
    return ops

def apply_patch(patch: list, document: Any) -> Any:
    """Apply an RFC 6902 patch to a copy of ``document``.

    Args:
        patch: A :class:`Patch` or a list of operation dicts.
        document: JSON document; it is not modified.

    Returns:
        The patched document.

    Raises:
        PatchTestError: If a test operation does not match.
        PatchError: If an operation cannot be applied.
    """
    ops = [op.to_dict() if isinstance(op, Operation) else op for op in patch]
    try:
        return jsonpatch.apply_patch(_as_document(document), ops)
    except jsonpatch.JsonPatchTestFailed as e:
        raise PatchTestError(f"Test failed: {e}") from e
    except (jsonpatch.JsonPatchException, JsonPointerException, TypeError) as e:
        raise PatchError(str(e)) from e
