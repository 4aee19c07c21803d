"""Conversion of a response body into the request body shape of an operation."""
from __future__ import annotations

import copy
import logging
from typing import Any

from src.scenario_engine.services.schema_model import (
    ArraySchema,
    DiscriminatedSchema,
    ObjectSchema,
    SchemaNode,
    SchemaResolver,
)
from src.shared.errors import UnknownDiscriminatorValueError

logger = logging.getLogger(__name__)


class BodyTransformer:
    """Strips ``readOnly`` properties from a response body.

    The schema describes the *request* body of the target operation; any
    property it marks ``readOnly`` (``id``, ``provisioningState`` ...) is
    server-populated and must not be sent back.  Properties the schema does
    not describe are kept unchanged.
    """

    def response_body_to_request(
        self,
        body: Any,
        resolver: SchemaResolver | None,
        schema_pointer: str | None,
    ) -> Any:
        if resolver is None or schema_pointer is None:
            return copy.deepcopy(body)
        node = resolver.node(schema_pointer)
        if node is None:
            return copy.deepcopy(body)
        return self._convert(resolver, node, body)

    def _convert(self, resolver: SchemaResolver, node: SchemaNode, value: Any) -> Any:
        if isinstance(node, DiscriminatedSchema):
            if not isinstance(value, dict):
                return copy.deepcopy(value)
            try:
                node = resolver.select_subtype(node, value)
            except UnknownDiscriminatorValueError as exc:
                logger.debug("Falling back to base schema: %s", exc.detail)
                node = node.base

        if isinstance(node, ObjectSchema) and isinstance(value, dict):
            converted: dict[str, Any] = {}
            for key, item in value.items():
                child_pointer = node.properties.get(key, node.additional_properties)
                child = resolver.node(child_pointer) if child_pointer is not None else None
                if child is None:
                    converted[key] = copy.deepcopy(item)
                elif not child.read_only:
                    converted[key] = self._convert(resolver, child, item)
            return converted
        if isinstance(node, ArraySchema) and isinstance(value, list):
            item_node = resolver.node(node.items) if node.items is not None else None
            if item_node is None:
                return copy.deepcopy(value)
            return [self._convert(resolver, item_node, item) for item in value]
        return copy.deepcopy(value)
