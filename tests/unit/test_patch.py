"""Tests for JSON patch generation and application."""

import copy

import pytest

from provision_client.errors import IdentityMismatchError, PatchError, PatchTestError
from provision_client.models import default_registry
from provision_client.patch import (
    Operation,
    Patch,
    apply_patch,
    generate_patch,
    json_equal,
)

MACHINE = {
    "Uuid": "3f2c",
    "Name": "foo",
    "Description": "",
    "Params": {"rack": 12, "a/b": "x", "m~n": "y"},
    "Profiles": ["base", "lab"],
    "Runnable": True,
}

CHANGES = [
    {"Name": "bar"},
    {"Description": None},
    {"Runnable": False},
    {"Params": {"rack": 13, "a/b": "x", "m~n": "z", "new": [1]}},
    {"Params": {}},
    {"Profiles": ["base"]},
    {"Profiles": ["base", "lab", "extra", "more"]},
    {"Profiles": []},
    {"Profiles": "base"},
    {"Stage": "discover"},
]


def _changed(**fields):
    new = copy.deepcopy(MACHINE)
    new.update(fields)
    return new


class TestGeneratePatch:
    """Diffs between snapshots."""

    @pytest.mark.unit
    def test_equal_snapshots_give_empty_patch(self):
        assert generate_patch(MACHINE, copy.deepcopy(MACHINE)) == []
        assert generate_patch(MACHINE, copy.deepcopy(MACHINE), paranoid=True) == []

    @pytest.mark.unit
    @pytest.mark.parametrize("fields", CHANGES)
    @pytest.mark.parametrize("paranoid", [False, True])
    def test_patch_turns_old_into_new(self, fields, paranoid):
        new = _changed(**fields)

        patch = generate_patch(MACHINE, new, paranoid=paranoid)

        assert apply_patch(patch, MACHINE) == new

    @pytest.mark.unit
    def test_replace_of_scalar(self):
        patch = generate_patch({"Name": "foo"}, {"Name": "bar"})

        assert patch.to_list() == [{"op": "replace", "path": "/Name", "value": "bar"}]

    @pytest.mark.unit
    def test_paranoid_tests_precede_changes(self):
        patch = generate_patch({"Name": "foo", "Old": 1}, {"Name": "bar", "New": 2}, paranoid=True)

        assert patch.to_list() == [
            {"op": "test", "path": "/Name", "value": "foo"},
            {"op": "replace", "path": "/Name", "value": "bar"},
            {"op": "test", "path": "/Old", "value": 1},
            {"op": "remove", "path": "/Old"},
            {"op": "add", "path": "/New", "value": 2},
        ]

    @pytest.mark.unit
    def test_paranoid_emits_one_test_per_changed_field(self):
        new = _changed(Name="bar", Description="rack 12", Runnable=False)

        patch = generate_patch(MACHINE, new, paranoid=True)

        assert sorted(op.path for op in patch.tests()) == ["/Description", "/Name", "/Runnable"]

    @pytest.mark.unit
    def test_non_paranoid_patch_has_no_tests(self):
        patch = generate_patch(MACHINE, _changed(Name="bar", Profiles=[]))

        assert patch.tests() == []

    @pytest.mark.unit
    def test_paranoid_patch_rejects_concurrent_change(self):
        """A paranoid patch fails against a snapshot someone else modified."""
        patch = generate_patch(MACHINE, _changed(Name="bar"), paranoid=True)
        concurrent = _changed(Name="baz")

        with pytest.raises(PatchTestError):
            apply_patch(patch, concurrent)

    @pytest.mark.unit
    def test_non_paranoid_patch_last_writer_wins(self):
        patch = generate_patch(MACHINE, _changed(Name="bar"))

        assert apply_patch(patch, _changed(Name="baz"))["Name"] == "bar"

    @pytest.mark.unit
    def test_pointer_tokens_are_escaped(self):
        new = _changed(Params={"rack": 12, "a/b": "changed", "m~n": "y"})

        patch = generate_patch(MACHINE, new)

        assert [op.path for op in patch] == ["/Params/a~1b"]
        assert apply_patch(patch, MACHINE)["Params"]["a/b"] == "changed"

    @pytest.mark.unit
    def test_bool_and_int_are_different(self):
        assert generate_patch({"Count": 1}, {"Count": True}).to_list() == [
            {"op": "replace", "path": "/Count", "value": True},
        ]
        assert not json_equal(0, False)
        assert json_equal(1, 1.0)

    @pytest.mark.unit
    def test_generated_values_are_copies(self):
        new = _changed(Params={"nested": {"a": 1}})

        patch = generate_patch(MACHINE, new)
        new["Params"]["nested"]["a"] = 2

        assert apply_patch(patch, MACHINE)["Params"] == {"nested": {"a": 1}}

    @pytest.mark.unit
    def test_resources_with_same_identity(self):
        registry = default_registry()
        old = registry.from_dict("machines", MACHINE)
        new = old.clone()
        new["Name"] = "bar"

        assert generate_patch(old, new).to_list() == [{"op": "replace", "path": "/Name", "value": "bar"}]

    @pytest.mark.unit
    def test_identity_mismatch(self):
        registry = default_registry()
        old = registry.from_dict("machines", MACHINE)
        new = registry.from_dict("machines", _changed(Uuid="other"))

        with pytest.raises(IdentityMismatchError) as exc_info:
            generate_patch(old, new)

        assert "change keys from 3f2c to other" in str(exc_info.value)

    @pytest.mark.unit
    def test_type_mismatch(self):
        registry = default_registry()
        old = registry.from_dict("machines", {"Uuid": "foo", "Name": "foo"})
        new = registry.from_dict("profiles", {"Name": "foo"})

        with pytest.raises(IdentityMismatchError):
            generate_patch(old, new)


class TestApplyPatch:
    """Applying edit scripts to documents."""

    @pytest.mark.unit
    def test_document_is_not_modified(self):
        doc = copy.deepcopy(MACHINE)

        apply_patch([{"op": "remove", "path": "/Profiles/0"}], doc)

        assert doc == MACHINE

    @pytest.mark.unit
    def test_move_and_copy(self):
        patch = [
            {"op": "copy", "from": "/Name", "path": "/Alias"},
            {"op": "move", "from": "/Profiles/1", "path": "/Profiles/0"},
        ]

        result = apply_patch(patch, MACHINE)

        assert result["Alias"] == "foo"
        assert result["Profiles"] == ["lab", "base"]

    @pytest.mark.unit
    def test_append_with_dash(self):
        result = apply_patch([{"op": "add", "path": "/Profiles/-", "value": "x"}], MACHINE)

        assert result["Profiles"] == ["base", "lab", "x"]

    @pytest.mark.unit
    def test_replace_root(self):
        assert apply_patch([{"op": "replace", "path": "", "value": {"a": 1}}], MACHINE) == {"a": 1}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "op",
        [
            {"op": "remove", "path": "/Missing"},
            {"op": "replace", "path": "/Missing", "value": 1},
            {"op": "remove", "path": "/Profiles/5"},
            {"op": "add", "path": "Name", "value": "x"},
            {"op": "remove", "path": ""},
            {"op": "frobnicate", "path": "/Name"},
        ],
    )
    def test_invalid_operations(self, op):
        with pytest.raises(PatchError):
            apply_patch([op], MACHINE)

    @pytest.mark.unit
    def test_failed_test_is_patch_test_error(self):
        with pytest.raises(PatchTestError) as exc_info:
            apply_patch([{"op": "test", "path": "/Name", "value": "bar"}], MACHINE)

        assert exc_info.value.messages[0].startswith("Test failed")
        assert exc_info.value.type == "PATCH_ERROR"

    @pytest.mark.unit
    def test_test_of_missing_path_fails(self):
        with pytest.raises(PatchTestError):
            apply_patch([{"op": "test", "path": "/Missing", "value": 1}], MACHINE)

    @pytest.mark.unit
    def test_accepts_operation_objects(self):
        patch = Patch([Operation("test", "/Name", "foo"), Operation("replace", "/Name", "bar")])

        assert apply_patch(patch, MACHINE)["Name"] == "bar"


class TestPatchSerialization:
    """Wire form of patches."""

    @pytest.mark.unit
    def test_operation_fields(self):
        assert Operation("remove", "/a").to_dict() == {"op": "remove", "path": "/a"}
        assert Operation("test", "/a", None).to_dict() == {"op": "test", "path": "/a", "value": None}
        assert Operation("move", "/b", from_="/a").to_dict() == {"op": "move", "path": "/b", "from": "/a"}

    @pytest.mark.unit
    def test_from_list(self):
        data = [{"op": "test", "path": "/Name", "value": "foo"}, {"op": "copy", "path": "/b", "from": "/a"}]

        patch = Patch.from_list(data)

        assert patch.to_list() == data
        assert patch.to_dict() == data
