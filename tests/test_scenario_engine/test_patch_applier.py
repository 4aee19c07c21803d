"""Tests for the patch applier: RFC 6902 operations plus merge."""
from __future__ import annotations

import pytest

from src.scenario_engine.services.patch_applier import apply_patch, expand_patch_operations
from src.shared.errors import (
    InvalidPatchPathError,
    PatchAssertionFailedError,
    PatchError,
    PathNotFoundError,
    ValidationError,
)
from src.shared.models.scenarios import PatchOperation


@pytest.fixture
def document() -> dict:
    return {
        "location": "eastus",
        "tags": {"env": "test"},
        "properties": {"items": [1, 2], "enabled": True},
    }


class TestBasics:
    def test_empty_ops_return_same_reference(self, document):
        """With no operations the input document is returned unchanged."""
        assert apply_patch(document, []) is document

    def test_input_is_not_modified(self, document):
        """Patching works on a copy of the input."""
        result = apply_patch(document, [{"remove": "/tags"}])
        assert "tags" not in result
        assert document["tags"] == {"env": "test"}

    def test_accepts_models_and_raw_dicts(self, document):
        """Operations may be given as models or raw one-key dicts."""
        ops = [
            PatchOperation(op="replace", path="/location", value="westus"),
            {"add": "/tags/owner", "value": "me"},
        ]
        result = apply_patch(document, ops)
        assert result["location"] == "westus"
        assert result["tags"] == {"env": "test", "owner": "me"}


class TestIdempotence:
    def test_replace_twice_yields_same_document(self, document):
        """Applying a replace twice changes nothing the second time."""
        ops = [{"replace": "/location", "value": "westus"}]
        once = apply_patch(document, ops)
        twice = apply_patch(once, ops)
        assert once == twice

    def test_add_on_existing_key_twice_yields_same_document(self, document):
        """Adding an existing object key twice is stable."""
        ops = [{"add": "/tags/env", "value": "prod"}]
        once = apply_patch(document, ops)
        assert apply_patch(once, ops) == once

    def test_append_twice_adds_two_elements(self, document):
        """Appending with - is not idempotent."""
        ops = [{"add": "/properties/items/-", "value": 3}]
        once = apply_patch(document, ops)
        twice = apply_patch(once, ops)
        assert once["properties"]["items"] == [1, 2, 3]
        assert twice["properties"]["items"] == [1, 2, 3, 3]


class TestMerge:
    def test_merge_equals_sequential_adds(self, document):
        """A merge behaves like one add per key, in key order."""
        merged = apply_patch(document, [{"merge": "/tags", "value": {"a": 1, "b": 2}}])
        added = apply_patch(
            document,
            [{"add": "/tags/a", "value": 1}, {"add": "/tags/b", "value": 2}],
        )
        assert merged == added
        assert list(merged["tags"]) == ["env", "a", "b"]

    def test_expansion_keeps_order_and_original_index(self):
        """Expanded adds keep the index of the merge that produced them."""
        expanded = expand_patch_operations(
            [
                {"remove": "/a"},
                {"merge": "/x", "value": {"a": 1, "b": 2}},
                {"replace": "/c", "value": 3},
            ]
        )
        assert [(i, op.op, op.path) for i, op in expanded] == [
            (0, "remove", "/a"),
            (1, "add", "/x/a"),
            (1, "add", "/x/b"),
            (2, "replace", "/c"),
        ]

    def test_merge_keys_are_appended_verbatim(self):
        """Merge keys are joined to the target path without escaping."""
        expanded = expand_patch_operations([{"merge": "/x", "value": {"a/b": 1}}])
        assert expanded[0][1].path == "/x/a/b"

    def test_merge_key_can_address_nested_path(self):
        """A slash in a merge key writes below the target instead of adding a literal key."""
        result = apply_patch({"x": {"tags": {}}}, [{"merge": "/x", "value": {"tags/env": "prod"}}])
        assert result == {"x": {"tags": {"env": "prod"}}}

    def test_merge_value_must_be_object(self):
        """A non-object merge value is rejected."""
        with pytest.raises(ValidationError):
            apply_patch({}, [{"merge": "/x", "value": [1]}])


class TestOperations:
    def test_add_inserts_into_array(self, document):
        """add at an array index inserts before that element."""
        result = apply_patch(document, [{"add": "/properties/items/0", "value": 0}])
        assert result["properties"]["items"] == [0, 1, 2]

    def test_add_replaces_root(self, document):
        """add at the empty path replaces the whole document."""
        assert apply_patch(document, [{"add": "", "value": {"a": 1}}]) == {"a": 1}

    def test_remove_array_element(self, document):
        """remove at an array index shifts the rest down."""
        result = apply_patch(document, [{"remove": "/properties/items/0"}])
        assert result["properties"]["items"] == [2]

    def test_copy(self, document):
        """copy duplicates a value and keeps the source."""
        result = apply_patch(document, [{"copy": "/location", "path": "/tags/region"}])
        assert result["tags"]["region"] == "eastus"
        assert result["location"] == "eastus"

    def test_move(self, document):
        """move relocates a value and drops the source."""
        result = apply_patch(document, [{"move": "/location", "path": "/tags/region"}])
        assert result["tags"]["region"] == "eastus"
        assert "location" not in result

    def test_test_passes(self, document):
        """A matching test leaves the document unchanged."""
        result = apply_patch(
            document,
            [{"test": "/properties", "value": {"items": [1, 2], "enabled": True}}],
        )
        assert result == document

    def test_escaped_tokens(self):
        """Escaped pointer tokens address keys containing slash and tilde."""
        result = apply_patch({"a/b": {"c~d": 1}}, [{"replace": "/a~1b/c~0d", "value": 2}])
        assert result == {"a/b": {"c~d": 2}}


class TestFailures:
    def test_remove_missing_path(self, document):
        """Removing a missing path reports the failing operation index."""
        with pytest.raises(PathNotFoundError) as exc_info:
            apply_patch(document, [{"add": "/a", "value": 1}, {"remove": "/missing"}])
        assert exc_info.value.index == 1
        assert exc_info.value.path == "/missing"

    def test_replace_requires_existing_path(self, document):
        """replace fails when the target does not exist."""
        with pytest.raises(PathNotFoundError):
            apply_patch(document, [{"replace": "/tags/owner", "value": "me"}])

    def test_add_into_missing_parent(self, document):
        """add fails when the parent container is missing."""
        with pytest.raises(PathNotFoundError):
            apply_patch(document, [{"add": "/missing/child", "value": 1}])

    def test_add_past_array_end(self, document):
        """add fails past the end of an array."""
        with pytest.raises(PathNotFoundError):
            apply_patch(document, [{"add": "/properties/items/5", "value": 1}])

    def test_failed_assertion_aborts(self, document):
        """A failing test aborts the patch with expected and actual values."""
        with pytest.raises(PatchAssertionFailedError) as exc_info:
            apply_patch(
                document,
                [{"test": "/location", "value": "westus"}, {"remove": "/tags"}],
            )
        err = exc_info.value
        assert err.index == 0
        assert err.expected == "westus"
        assert err.actual == "eastus"

    def test_boolean_is_not_equal_to_number(self, document):
        """test distinguishes true from 1."""
        with pytest.raises(PatchAssertionFailedError):
            apply_patch(document, [{"test": "/properties/enabled", "value": 1}])

    def test_merge_failure_reports_merge_index(self):
        """A failure inside a merge reports the merge's own index."""
        with pytest.raises(PatchError) as exc_info:
            apply_patch({}, [{"add": "/a", "value": 1}, {"merge": "/missing", "value": {"k": 1}}])
        assert exc_info.value.index == 1

    def test_invalid_pointer(self, document):
        """A path without a leading slash is invalid."""
        with pytest.raises(InvalidPatchPathError):
            apply_patch(document, [{"remove": "location"}])

    def test_invalid_array_index(self, document):
        """Array indexes with leading zeros are invalid."""
        with pytest.raises(InvalidPatchPathError):
            apply_patch(document, [{"remove": "/properties/items/01"}])

    def test_move_into_own_child(self, document):
        """A value cannot be moved into its own child."""
        with pytest.raises(InvalidPatchPathError):
            apply_patch(document, [{"move": "/tags", "path": "/tags/nested"}])

    def test_unknown_operation(self, document):
        """An unknown patch verb fails validation."""
        with pytest.raises(ValidationError):
            apply_patch(document, [{"frobnicate": "/a"}])
