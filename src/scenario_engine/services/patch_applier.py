"""JSON patch application for step requests and responses.

Supports the RFC 6902 operations plus ``merge``, which is shorthand for one
``add`` per key of its object value.  Application is pure: the input document
is never modified.
"""
from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from src.shared.errors import (
    InvalidPatchPathError,
    PatchAssertionFailedError,
    PathNotFoundError,
)
from src.shared.models.scenarios import PatchOperation
from src.shared.utils import split_pointer

_MISSING = object()


def expand_patch_operations(
    ops: Sequence[PatchOperation | dict[str, Any]],
) -> list[tuple[int, PatchOperation]]:
    """Expand ``merge`` operations into ``add`` operations.

    Returns ``(original_index, operation)`` pairs so failures can be reported
    against the operation the author wrote.
    """
    expanded: list[tuple[int, PatchOperation]] = []
    for index, raw in enumerate(ops):
        op = PatchOperation.from_raw(raw)
        if op.op != "merge":
            expanded.append((index, op))
            continue
        for key, value in (op.value or {}).items():
            expanded.append(
                (index, PatchOperation(op="add", path=f"{op.path}/{key}", value=value))
            )
    return expanded


def apply_patch(document: Any, ops: Sequence[PatchOperation | dict[str, Any]]) -> Any:
    """Apply *ops* to *document* and return the patched document.

    With no operations the input is returned as is.  The first failing
    operation aborts the whole patch; the raised :class:`PatchError`
    subclass carries the operation index and path.
    """
    if not ops:
        return document
    result = copy.deepcopy(document)
    for index, op in expand_patch_operations(ops):
        result = _apply_operation(result, op, index)
    return result


# ----------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------


def _apply_operation(document: Any, op: PatchOperation, index: int) -> Any:
    tokens = _tokens(op.path, index)

    if op.op == "add":
        return _add(document, tokens, copy.deepcopy(op.value), index, op.path)
    if op.op == "remove":
        _remove(document, tokens, index, op.path, "remove")
        return document
    if op.op == "replace":
        if not tokens:
            return copy.deepcopy(op.value)
        parent, key = _parent(document, tokens, index, op.path, "replace")
        _get_child(parent, key, index, op.path, "replace")
        parent[key] = copy.deepcopy(op.value)
        return document
    if op.op == "copy":
        from_path = op.from_path or ""
        value = _get(document, _tokens(from_path, index), index, from_path, "copy")
        return _add(document, tokens, copy.deepcopy(value), index, op.path)
    if op.op == "move":
        from_path = op.from_path or ""
        if from_path == op.path:
            return document
        if op.path.startswith(from_path + "/"):
            raise InvalidPatchPathError(index, op.path, f"cannot move {from_path} into its own child")
        from_tokens = _tokens(from_path, index)
        value = _get(document, from_tokens, index, from_path, "move")
        _remove(document, from_tokens, index, from_path, "move")
        return _add(document, tokens, value, index, op.path)
    if op.op == "test":
        actual = _get(document, tokens, index, op.path, "test")
        if not _json_equal(actual, op.value):
            raise PatchAssertionFailedError(index, op.path, op.value, actual)
        return document
    raise InvalidPatchPathError(index, op.path, f"unsupported operation {op.op!r}")


def _add(document: Any, tokens: list[str], value: Any, index: int, path: str) -> Any:
    if not tokens:
        return value
    parent, key = _parent(document, tokens, index, path, "add")
    if isinstance(parent, list):
        if key == "-":
            parent.append(value)
        else:
            position = _array_index(key, index, path)
            if position > len(parent):
                raise PathNotFoundError(index, path, "add")
            parent.insert(position, value)
    else:
        parent[key] = value
    return document


def _remove(document: Any, tokens: list[str], index: int, path: str, op_name: str) -> None:
    if not tokens:
        raise InvalidPatchPathError(index, path, "cannot remove the document root")
    parent, key = _parent(document, tokens, index, path, op_name)
    _get_child(parent, key, index, path, op_name)
    if isinstance(parent, list):
        del parent[_array_index(key, index, path)]
    else:
        del parent[key]


# ----------------------------------------------------------------------
# Pointer helpers
# ----------------------------------------------------------------------


def _tokens(path: str, index: int) -> list[str]:
    try:
        return split_pointer(path)
    except ValueError as exc:
        raise InvalidPatchPathError(index, path, str(exc)) from exc


def _parent(
    document: Any, tokens: list[str], index: int, path: str, op_name: str
) -> tuple[Any, str]:
    parent = _get(document, tokens[:-1], index, path, op_name)
    if not isinstance(parent, (dict, list)):
        raise PathNotFoundError(index, path, op_name)
    return parent, tokens[-1]


def _get(document: Any, tokens: list[str], index: int, path: str, op_name: str) -> Any:
    current = document
    for token in tokens:
        current = _get_child(current, token, index, path, op_name)
    return current


def _get_child(container: Any, token: str, index: int, path: str, op_name: str) -> Any:
    if isinstance(container, dict):
        value = container.get(token, _MISSING)
    elif isinstance(container, list):
        if token == "-":
            value = _MISSING
        else:
            position = _array_index(token, index, path)
            value = container[position] if position < len(container) else _MISSING
    else:
        value = _MISSING
    if value is _MISSING:
        raise PathNotFoundError(index, path, op_name)
    return value


def _array_index(token: str, index: int, path: str) -> int:
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise InvalidPatchPathError(index, path, f"invalid array index {token!r}")
    return int(token)


def _json_equal(left: Any, right: Any) -> bool:
    """Deep equality that keeps booleans distinct from numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(_json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(_json_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return left == right
