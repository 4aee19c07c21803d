"""Operation index over one or more spec documents.

Maps operation identifiers to :class:`Operation` objects and example files to
the operations that link them through ``x-ms-examples``.  Built exactly once
by :meth:`OperationIndex.initialize`; read-only afterwards.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from src.scenario_engine.services.document_loader import SpecDocument, SpecLoader
from src.scenario_engine.services.schema_model import SchemaResolver
from src.shared.constants import HTTP_METHODS, X_MS_EXAMPLES
from src.shared.errors import (
    AlreadyInitializedError,
    DuplicateOperationIdError,
    InvalidExampleRefError,
    MissingOperationIdError,
    OperationNotFoundError,
)
from src.shared.models.scenarios import (
    ExampleLink,
    Operation,
    OperationParameter,
    OperationResponse,
    ParameterLocation,
)
from src.shared.utils import join_pointer

logger = logging.getLogger(__name__)

# Example-file path -> {operationId: (operation, exampleName)}
ExampleOwners = dict[str, tuple[Operation, str]]


class OperationIndex:
    """Lookup tables built from a set of spec documents."""

    def __init__(
        self,
        spec_loader: SpecLoader | None = None,
        spec_file_paths: Iterable[str] = (),
    ) -> None:
        self._spec_loader = spec_loader or SpecLoader()
        self._spec_file_paths = list(spec_file_paths)
        self._operations: dict[str, Operation] = {}
        self._example_to_operation: dict[str, ExampleOwners] = {}
        self._resolvers: dict[str, SchemaResolver] = {}
        self._initialized = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Load every spec document and build the lookup tables.

        Specs are processed one after the other; the tables are published
        only once every spec has been indexed, so a failure leaves the index
        empty.

        Raises
        ------
        AlreadyInitializedError
            On a second call.
        MissingOperationIdError, DuplicateOperationIdError, InvalidExampleRefError
            On structural problems in a spec document.
        """
        if self._initialized:
            raise AlreadyInitializedError()

        operations: dict[str, Operation] = {}
        example_to_operation: dict[str, ExampleOwners] = {}
        resolvers: dict[str, SchemaResolver] = {}

        for spec_file_path in self._spec_file_paths:
            spec = self._spec_loader.load(spec_file_path)
            resolver = SchemaResolver(spec.document)
            resolvers[spec.file_path] = resolver

            for operation in _iter_operations(spec, resolver):
                existing = operations.get(operation.operation_id)
                if existing is not None:
                    raise DuplicateOperationIdError(
                        operation.operation_id,
                        operation.path_template,
                        existing.path_template,
                    )
                operations[operation.operation_id] = operation
                for link in operation.examples:
                    owners = example_to_operation.setdefault(link.file_path, {})
                    owners[operation.operation_id] = (operation, link.name)

            logger.info(
                "Indexed spec %s: %d operations total", spec.file_path, len(operations)
            )

        self._operations = operations
        self._example_to_operation = example_to_operation
        self._resolvers = resolvers
        self._initialized = True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def operations(self) -> list[Operation]:
        """All operations, in load order."""
        return list(self._operations.values())

    def find_operation(self, operation_id: str) -> Operation | None:
        return self._operations.get(operation_id)

    def get_operation(self, operation_id: str) -> Operation:
        operation = self._operations.get(operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return operation

    def operations_for_example(self, example_file_path: str | Path) -> ExampleOwners:
        """Return ``{operationId: (operation, exampleName)}`` for a file."""
        key = str(Path(example_file_path).resolve())
        return dict(self._example_to_operation.get(key, {}))

    def example_file_paths(self) -> list[str]:
        return list(self._example_to_operation)

    def spec_file_paths(self) -> list[str]:
        return list(self._resolvers)

    def resolver_for(self, operation: Operation) -> SchemaResolver:
        return self._resolvers[operation.spec_file_path]


# ----------------------------------------------------------------------
# Spec traversal
# ----------------------------------------------------------------------


def _iter_operations(spec: SpecDocument, resolver: SchemaResolver) -> Iterator[Operation]:
    paths = spec.document.get("paths") or {}
    extra_paths = spec.document.get("x-ms-paths") or {}
    for container, entries in (("paths", paths), ("x-ms-paths", extra_paths)):
        for path_template, path_item in entries.items():
            if not isinstance(path_item, dict):
                continue
            path_pointer = join_pointer("", container, path_template)
            for method in HTTP_METHODS:
                raw_operation = path_item.get(method)
                if not isinstance(raw_operation, dict):
                    continue
                yield _parse_operation(
                    spec,
                    resolver,
                    path_template,
                    method,
                    raw_operation,
                    path_item,
                    join_pointer(path_pointer, method),
                    path_pointer,
                )


def _parse_operation(
    spec: SpecDocument,
    resolver: SchemaResolver,
    path_template: str,
    method: str,
    raw: dict[str, Any],
    path_item: dict[str, Any],
    pointer: str,
    path_pointer: str,
) -> Operation:
    operation_id = raw.get("operationId")
    if not operation_id:
        raise MissingOperationIdError(method.upper(), path_template)

    return Operation(
        operation_id=operation_id,
        method=method.upper(),
        path_template=path_template,
        parameters=_parse_parameters(resolver, raw, path_item, pointer, path_pointer),
        responses=_parse_responses(resolver, raw, pointer),
        examples=_parse_examples(spec, operation_id, raw),
        spec_file_path=spec.file_path,
        pointer=pointer,
    )


def _parse_parameters(
    resolver: SchemaResolver,
    raw: dict[str, Any],
    path_item: dict[str, Any],
    pointer: str,
    path_pointer: str,
) -> list[OperationParameter]:
    # Operation-level parameters override path-level ones with the same name+in.
    by_key: dict[tuple[str, str], OperationParameter] = {}
    for owner_pointer, owner in ((path_pointer, path_item), (pointer, raw)):
        for index, _ in enumerate(owner.get("parameters") or []):
            resolved = resolver.dereference(join_pointer(owner_pointer, "parameters", index))
            if resolved is None:
                continue
            param_pointer, param = resolved
            try:
                location = ParameterLocation(param.get("in"))
            except ValueError:
                logger.debug("Ignoring parameter with unknown location at %s", param_pointer)
                continue
            if location == ParameterLocation.BODY:
                schema = param.get("schema") or {}
                schema_pointer = join_pointer(param_pointer, "schema")
            else:
                schema = param
                schema_pointer = param_pointer
            parameter = OperationParameter(
                name=param.get("name", ""),
                location=location,
                required=bool(param.get("required", False)),
                schema_def=schema,
                pointer=schema_pointer,
            )
            by_key[(parameter.name, location.value)] = parameter

    parameters = list(by_key.values())

    # OpenAPI 3 request bodies are exposed as a body parameter.
    request_body = resolver.dereference(join_pointer(pointer, "requestBody"))
    if request_body is not None:
        body_pointer, body = request_body
        media = _first_media_type(body)
        if media is not None:
            parameters.append(
                OperationParameter(
                    name=raw.get("x-ms-requestBody-name", "body"),
                    location=ParameterLocation.BODY,
                    required=bool(body.get("required", False)),
                    schema_def=body["content"][media].get("schema") or {},
                    pointer=join_pointer(body_pointer, "content", media, "schema"),
                )
            )
    return parameters


def _parse_responses(
    resolver: SchemaResolver, raw: dict[str, Any], pointer: str
) -> dict[str, OperationResponse]:
    responses: dict[str, OperationResponse] = {}
    for status_code in raw.get("responses") or {}:
        resolved = resolver.dereference(join_pointer(pointer, "responses", status_code))
        if resolved is None:
            responses[str(status_code)] = OperationResponse(status_code=str(status_code))
            continue
        response_pointer, response = resolved
        schema: dict[str, Any] | None = None
        schema_pointer: str | None = None
        if isinstance(response.get("schema"), dict):
            schema = response["schema"]
            schema_pointer = join_pointer(response_pointer, "schema")
        else:
            media = _first_media_type(response)
            if media is not None and isinstance(response["content"][media].get("schema"), dict):
                schema = response["content"][media]["schema"]
                schema_pointer = join_pointer(response_pointer, "content", media, "schema")
        responses[str(status_code)] = OperationResponse(
            status_code=str(status_code), schema_def=schema, pointer=schema_pointer
        )
    return responses


def _parse_examples(
    spec: SpecDocument, operation_id: str, raw: dict[str, Any]
) -> list[ExampleLink]:
    links: list[ExampleLink] = []
    spec_dir = Path(spec.file_path).parent
    for example_name, example in (raw.get(X_MS_EXAMPLES) or {}).items():
        ref = example.get("$ref") if isinstance(example, dict) else None
        if not isinstance(ref, str) or not ref or "#" in ref:
            raise InvalidExampleRefError(example_name, operation_id)
        links.append(
            ExampleLink(name=example_name, file_path=str((spec_dir / ref).resolve()))
        )
    return links


def _first_media_type(raw: dict[str, Any]) -> str | None:
    content = raw.get("content")
    if not isinstance(content, dict) or not content:
        return None
    if "application/json" in content:
        return "application/json"
    return next(iter(content))
