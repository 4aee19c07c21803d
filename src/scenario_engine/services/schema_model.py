"""Tagged-variant schema model built over a spec document.

Schema nodes are created lazily from JSON pointers into the spec document.
Every node remembers the pointer of the schema object it was built from (after
local ``$ref`` resolution), so consumers can report *where* in the spec an
annotation was declared.

Polymorphism is modelled explicitly: a schema carrying a ``discriminator``
becomes a :class:`DiscriminatedSchema` whose concrete subtype is picked at
walk time from the discriminator value found in the instance document.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.shared.constants import X_MS_ARM_ID_DETAILS, X_MS_DISCRIMINATOR_VALUE
from src.shared.errors import UnknownDiscriminatorValueError
from src.shared.utils import join_pointer, split_pointer

logger = logging.getLogger(__name__)

# Containers scanned for named schemas (Swagger 2.0 and OpenAPI 3.x).
_SCHEMA_CONTAINERS: tuple[str, ...] = ("/definitions", "/components/schemas")

# Keywords a referring object may set next to its $ref; they override the target.
_REFERENCE_FIELDS: tuple[str, ...] = ("readOnly", X_MS_ARM_ID_DETAILS)


@dataclass(frozen=True, kw_only=True)
class SchemaNode:
    """Fields shared by every schema variant."""
    pointer: str
    resource_types: tuple[str, ...] = ()
    read_only: bool = False


@dataclass(frozen=True, kw_only=True)
class PrimitiveSchema(SchemaNode):
    """A string, number, boolean or untyped schema."""


@dataclass(frozen=True, kw_only=True)
class ObjectSchema(SchemaNode):
    """An object schema with ``allOf`` parents already flattened.

    ``properties`` maps property names to the pointer of their schema, in
    declaration order (inherited properties first).
    """
    properties: dict[str, str] = field(default_factory=dict)
    additional_properties: str | None = None


@dataclass(frozen=True, kw_only=True)
class ArraySchema(SchemaNode):
    items: str | None = None


@dataclass(frozen=True, kw_only=True)
class DiscriminatedSchema(SchemaNode):
    """A polymorphic base schema.

    ``subtypes_by_value`` maps discriminator values to subtype pointers;
    ``base`` is the flattened base object, used when the instance carries the
    base's own discriminator value or no value at all.
    """
    discriminator_property: str
    base: ObjectSchema
    base_value: str | None = None
    subtypes_by_value: dict[str, str] = field(default_factory=dict)


class SchemaResolver:
    """Builds :class:`SchemaNode` objects for one spec document."""

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        self._nodes: dict[tuple[str, bool], SchemaNode | None] = {}
        self._children: dict[str, list[str]] | None = None

    @property
    def document(self) -> dict[str, Any]:
        return self._document

    # ------------------------------------------------------------------
    # Raw document access
    # ------------------------------------------------------------------

    def raw_at(self, pointer: str) -> Any:
        """Return the raw value at *pointer*, or ``None`` if absent."""
        current: Any = self._document
        try:
            tokens = split_pointer(pointer)
        except ValueError:
            return None
        for token in tokens:
            if isinstance(current, dict):
                if token not in current:
                    return None
                current = current[token]
            elif isinstance(current, list):
                if not token.isdigit() or int(token) >= len(current):
                    return None
                current = current[int(token)]
            else:
                return None
        return current

    def dereference(self, pointer: str) -> tuple[str, dict[str, Any]] | None:
        """Follow local ``$ref`` chains starting at *pointer*.

        Returns the final pointer and raw schema object, or ``None`` when the
        chain leaves the document, loops, or ends on a non-object.
        """
        seen: set[str] = set()
        raw = self.raw_at(pointer)
        while isinstance(raw, dict) and isinstance(raw.get("$ref"), str):
            ref: str = raw["$ref"]
            if not ref.startswith("#"):
                logger.debug("Skipping non-local reference %s at %s", ref, pointer)
                return None
            if pointer in seen:
                logger.debug("Reference cycle at %s", pointer)
                return None
            seen.add(pointer)
            pointer = ref[1:]
            raw = self.raw_at(pointer)
        if not isinstance(raw, dict):
            return None
        return pointer, raw

    # ------------------------------------------------------------------
    # Node construction
    # ------------------------------------------------------------------

    def node(self, pointer: str, dispatch: bool = True) -> SchemaNode | None:
        """Return the schema node at *pointer*.

        With ``dispatch=False`` a discriminator on the schema is ignored and
        the plain flattened object is returned; this is how a selected
        subtype (which inherits the discriminator through ``allOf``) is
        built.
        """
        key = (pointer, dispatch)
        if key not in self._nodes:
            self._nodes[key] = self._build(pointer, dispatch)
        return self._nodes[key]

    def select_subtype(
        self, node: DiscriminatedSchema, value: dict[str, Any]
    ) -> ObjectSchema:
        """Pick the concrete subtype of *node* for the instance *value*.

        Raises :class:`UnknownDiscriminatorValueError` when the value matches
        neither the base nor any subtype.
        """
        discriminator_value = value.get(node.discriminator_property)
        if discriminator_value is None or discriminator_value == node.base_value:
            return node.base
        if not isinstance(discriminator_value, str):
            raise UnknownDiscriminatorValueError(
                node.pointer, node.discriminator_property, discriminator_value
            )
        subtype_pointer = node.subtypes_by_value.get(discriminator_value)
        if subtype_pointer is None:
            raise UnknownDiscriminatorValueError(
                node.pointer, node.discriminator_property, discriminator_value
            )
        subtype = self.node(subtype_pointer, dispatch=False)
        if not isinstance(subtype, ObjectSchema):
            raise UnknownDiscriminatorValueError(
                node.pointer, node.discriminator_property, discriminator_value
            )
        return subtype

    def _reference_fields(self, pointer: str) -> dict[str, tuple[str, Any]]:
        """Collect annotations written beside ``$ref`` along a ref chain.

        Returns ``{keyword: (declaring pointer, value)}``; the outermost
        referring object wins.
        """
        fields: dict[str, tuple[str, Any]] = {}
        seen: set[str] = set()
        raw = self.raw_at(pointer)
        while isinstance(raw, dict) and isinstance(raw.get("$ref"), str):
            if not raw["$ref"].startswith("#") or pointer in seen:
                break
            seen.add(pointer)
            for key in _REFERENCE_FIELDS:
                if key in raw:
                    fields.setdefault(key, (pointer, raw[key]))
            pointer = raw["$ref"][1:]
            raw = self.raw_at(pointer)
        return fields

    def _build(self, pointer: str, dispatch: bool) -> SchemaNode | None:
        overrides = self._reference_fields(pointer)
        resolved = self.dereference(pointer)
        if resolved is None:
            return None
        pointer, raw = resolved
        annotated = {**raw, **{key: value for key, (_, value) in overrides.items()}}
        # An id annotation beside a $ref is reported where it was written.
        declared_at = overrides.get(X_MS_ARM_ID_DETAILS, (pointer, None))[0]
        common = {
            "pointer": declared_at,
            "resource_types": _resource_types(annotated),
            "read_only": bool(annotated.get("readOnly", False)),
        }

        discriminator = _discriminator_property(raw)
        if dispatch and discriminator:
            return DiscriminatedSchema(
                discriminator_property=discriminator,
                base=self._build_object(pointer, raw, common),
                base_value=self._discriminator_value(pointer, raw),
                subtypes_by_value=self._subtypes_of(pointer, raw),
                **common,
            )
        if raw.get("type") == "array" or "items" in raw:
            items = join_pointer(pointer, "items") if isinstance(raw.get("items"), dict) else None
            return ArraySchema(items=items, **common)
        if _is_object(raw):
            return self._build_object(pointer, raw, common)
        return PrimitiveSchema(**common)

    def _build_object(
        self, pointer: str, raw: dict[str, Any], common: dict[str, Any]
    ) -> ObjectSchema:
        properties: dict[str, str] = {}
        additional = self._collect_properties(pointer, raw, properties, {pointer})
        return ObjectSchema(properties=properties, additional_properties=additional, **common)

    def _collect_properties(
        self,
        pointer: str,
        raw: dict[str, Any],
        properties: dict[str, str],
        seen: set[str],
    ) -> str | None:
        additional: str | None = None
        for index, _ in enumerate(raw.get("allOf") or []):
            parent = self.dereference(join_pointer(pointer, "allOf", index))
            if parent is None or parent[0] in seen:
                continue
            seen.add(parent[0])
            additional = self._collect_properties(parent[0], parent[1], properties, seen) or additional

        for name in raw.get("properties") or {}:
            properties[name] = join_pointer(pointer, "properties", name)
        if isinstance(raw.get("additionalProperties"), dict):
            additional = join_pointer(pointer, "additionalProperties")
        return additional

    # ------------------------------------------------------------------
    # Polymorphism
    # ------------------------------------------------------------------

    def _discriminator_value(self, pointer: str, raw: dict[str, Any]) -> str | None:
        value = raw.get(X_MS_DISCRIMINATOR_VALUE)
        if isinstance(value, str):
            return value
        return _schema_name(pointer)

    def _subtypes_of(self, pointer: str, raw: dict[str, Any]) -> dict[str, str]:
        subtypes: dict[str, str] = {}

        mapping = raw.get("discriminator", {})
        if isinstance(mapping, dict):
            for value, ref in (mapping.get("mapping") or {}).items():
                if isinstance(ref, str) and ref.startswith("#"):
                    subtypes.setdefault(value, ref[1:])

        # Breadth-first over allOf back-references, so grandchildren are found.
        children = self._children_index()
        queue = list(children.get(pointer, []))
        visited = {pointer}
        while queue:
            child = queue.pop(0)
            if child in visited:
                continue
            visited.add(child)
            child_raw = self.raw_at(child)
            value = self._discriminator_value(child, child_raw) if isinstance(child_raw, dict) else None
            if value is not None and child not in subtypes.values():
                subtypes.setdefault(value, child)
            queue.extend(children.get(child, []))
        return subtypes

    def _children_index(self) -> dict[str, list[str]]:
        """Map each named schema to the named schemas that ``allOf`` it."""
        if self._children is None:
            children: dict[str, list[str]] = {}
            for container in _SCHEMA_CONTAINERS:
                schemas = self.raw_at(container)
                if not isinstance(schemas, dict):
                    continue
                for name, schema in schemas.items():
                    if not isinstance(schema, dict):
                        continue
                    child_pointer = join_pointer(container, name)
                    for parent in schema.get("allOf") or []:
                        ref = parent.get("$ref") if isinstance(parent, dict) else None
                        if isinstance(ref, str) and ref.startswith("#"):
                            children.setdefault(ref[1:], []).append(child_pointer)
            self._children = children
        return self._children


def _discriminator_property(raw: dict[str, Any]) -> str | None:
    discriminator = raw.get("discriminator")
    if isinstance(discriminator, str):
        return discriminator
    if isinstance(discriminator, dict) and isinstance(discriminator.get("propertyName"), str):
        return discriminator["propertyName"]
    return None


def _is_object(raw: dict[str, Any]) -> bool:
    return (
        raw.get("type") == "object"
        or "properties" in raw
        or "allOf" in raw
        or isinstance(raw.get("additionalProperties"), dict)
    )


def _resource_types(raw: dict[str, Any]) -> tuple[str, ...]:
    details = raw.get(X_MS_ARM_ID_DETAILS)
    if not isinstance(details, dict):
        return ()
    types: list[str] = []
    for allowed in details.get("allowedResources") or []:
        if isinstance(allowed, dict) and isinstance(allowed.get("type"), str):
            types.append(allowed["type"])
    return tuple(types)


def _schema_name(pointer: str) -> str | None:
    """Return the schema name for ``/definitions/<name>``-style pointers."""
    for container in _SCHEMA_CONTAINERS:
        prefix = container + "/"
        if pointer.startswith(prefix):
            tokens = split_pointer(pointer)
            if len(tokens) == len(split_pointer(container)) + 1:
                return tokens[-1]
    return None
