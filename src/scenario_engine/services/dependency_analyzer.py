"""Resource dependency analysis over operation examples.

Walks every example linked from an operation in lock-step with the
operation's request and response schemas and reports each example location
whose schema is annotated with ``x-ms-arm-id-details`` (i.e. the value is the
id of a resource of some type).

Example pointers for request values are relative to the example's
``parameters`` object (``/<parameterName>/...``); pointers for response values
are relative to its ``responses`` object (``/<statusCode>/body/...``).
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable

from src.scenario_engine.services.document_loader import FileLoader, SpecLoader
from src.scenario_engine.services.operation_index import OperationIndex
from src.scenario_engine.services.schema_model import (
    ArraySchema,
    DiscriminatedSchema,
    ObjectSchema,
    SchemaNode,
    SchemaResolver,
)
from src.shared.errors import UnknownDiscriminatorValueError
from src.shared.models.scenarios import (
    AnalyzerOptions,
    DependencyRecord,
    Operation,
    ParameterLocation,
)
from src.shared.utils import join_pointer

logger = logging.getLogger(__name__)

# (resource_type, example_pointer, schema_pointer)
EmitFn = Callable[[str, str, str], None]

_PROVIDERS_RE = re.compile(r"/providers/", re.IGNORECASE)


def resource_type_chain(path_template: str) -> list[str]:
    """Return the resource types addressed by an ARM path, outermost first.

    ``/subscriptions/{s}/providers/Microsoft.Kusto/clusters/{c}/databases/{d}``
    yields ``["Microsoft.Kusto/clusters", "Microsoft.Kusto/clusters/databases"]``.
    Only the segment after the last ``/providers/`` is considered.
    """
    parts = _PROVIDERS_RE.split(path_template)
    if len(parts) < 2:
        return []
    tokens = [t for t in parts[-1].split("/") if t]
    if not tokens:
        return []
    namespace, type_tokens = tokens[0], tokens[1::2]
    chain: list[str] = []
    current = namespace
    for type_token in type_tokens:
        if type_token.startswith("{"):
            break
        current = f"{current}/{type_token}"
        chain.append(current)
    return chain


class DependencyAnalyzer:
    """Finds resource references in the examples of an :class:`OperationIndex`."""

    def __init__(
        self,
        index: OperationIndex,
        options: AnalyzerOptions | None = None,
        file_loader: FileLoader | None = None,
    ) -> None:
        self._index = index
        self._options = options or AnalyzerOptions()
        self._file_loader = file_loader or FileLoader()

    def analyze_dependency(self) -> dict[str, list[DependencyRecord]]:
        """Return ``{exampleFilePath: [DependencyRecord, ...]}``.

        Every linked example appears as a key, possibly with an empty list.
        Record order follows the walk: operations in load order, examples in
        link order, request before responses.
        """
        declared = self._declared_resource_types()
        result: dict[str, list[DependencyRecord]] = {}

        for operation in self._index.operations():
            own_types = {t.lower() for t in resource_type_chain(operation.path_template)}
            for link in operation.examples:
                records = result.setdefault(link.file_path, [])
                example = self._file_loader.load_structured(link.file_path)
                if not isinstance(example, dict):
                    logger.warning("Example %s is not an object; skipped", link.file_path)
                    continue
                for record in self.analyze_example(operation, link.file_path, example):
                    if not self._should_emit(record.resource_type, own_types, declared):
                        continue
                    if record not in records:
                        records.append(record)

        logger.info(
            "Dependency analysis found %d records in %d examples",
            sum(len(r) for r in result.values()),
            len(result),
        )
        return result

    def analyze_example(
        self, operation: Operation, example_file_path: str, example: dict[str, Any]
    ) -> list[DependencyRecord]:
        """Walk one example of *operation* and return its unfiltered records."""
        resolver = self._index.resolver_for(operation)
        records: list[DependencyRecord] = []

        def emit(resource_type: str, example_pointer: str, schema_pointer: str) -> None:
            records.append(
                DependencyRecord(
                    resource_type=resource_type,
                    example_json_pointer=example_pointer,
                    swagger_resource_id_json_path=schema_pointer,
                    example_file_path=example_file_path,
                )
            )

        parameters = example.get("parameters") or {}
        body = operation.body_parameter()
        if body is not None and body.name in parameters:
            self._walk(resolver, body.pointer, parameters[body.name], join_pointer("", body.name), emit)
        for param in operation.parameters:
            if param.location == ParameterLocation.BODY or param.name not in parameters:
                continue
            self._walk(resolver, param.pointer, parameters[param.name], join_pointer("", param.name), emit)

        responses = example.get("responses") or {}
        for status_code, response in operation.responses.items():
            example_response = responses.get(status_code)
            if response.pointer is None or not isinstance(example_response, dict):
                continue
            if "body" not in example_response:
                continue
            self._walk(
                resolver,
                response.pointer,
                example_response["body"],
                join_pointer("", status_code, "body"),
                emit,
            )
        return records

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _walk(
        self,
        resolver: SchemaResolver,
        schema_pointer: str,
        value: Any,
        example_pointer: str,
        emit: EmitFn,
    ) -> None:
        node = resolver.node(schema_pointer)
        if node is not None:
            self._walk_node(resolver, node, value, example_pointer, emit)

    def _walk_node(
        self,
        resolver: SchemaResolver,
        node: SchemaNode,
        value: Any,
        example_pointer: str,
        emit: EmitFn,
    ) -> None:
        if node.resource_types and isinstance(value, str) and value:
            for resource_type in node.resource_types:
                emit(resource_type, example_pointer, node.pointer)

        if isinstance(node, DiscriminatedSchema):
            if not isinstance(value, dict):
                return
            try:
                node = resolver.select_subtype(node, value)
            except UnknownDiscriminatorValueError as exc:
                logger.warning("Skipping %s: %s", example_pointer, exc.detail)
                return

        if isinstance(node, ObjectSchema) and isinstance(value, dict):
            for name, child_pointer in node.properties.items():
                if name in value:
                    self._walk(resolver, child_pointer, value[name], join_pointer(example_pointer, name), emit)
            if node.additional_properties is not None:
                for key, item in value.items():
                    if key not in node.properties:
                        self._walk(
                            resolver,
                            node.additional_properties,
                            item,
                            join_pointer(example_pointer, key),
                            emit,
                        )
        elif isinstance(node, ArraySchema) and isinstance(value, list):
            if node.items is None:
                return
            for index, item in enumerate(value):
                self._walk(resolver, node.items, item, join_pointer(example_pointer, index), emit)

    # ------------------------------------------------------------------
    # Emit predicate
    # ------------------------------------------------------------------

    def _declared_resource_types(self) -> set[str]:
        declared: set[str] = set()
        for operation in self._index.operations():
            declared.update(t.lower() for t in resource_type_chain(operation.path_template))
        return declared

    def _should_emit(self, resource_type: str, own_types: set[str], declared: set[str]) -> bool:
        key = resource_type.lower()
        if self._options.filer_top_level_resource_type and key in own_types:
            return False
        if self._options.no_external_dependency_resource_type and key not in declared:
            return False
        return True


class SwaggerAnalyzer:
    """Convenience wrapper building an index and analyzer from options."""

    def __init__(self, index: OperationIndex, analyzer: DependencyAnalyzer) -> None:
        self.index = index
        self.analyzer = analyzer

    @classmethod
    def create(
        cls,
        options: AnalyzerOptions,
        spec_loader: SpecLoader | None = None,
        file_loader: FileLoader | None = None,
    ) -> SwaggerAnalyzer:
        file_loader = file_loader or FileLoader()
        index = OperationIndex(spec_loader or SpecLoader(file_loader), options.swagger_file_paths)
        return cls(index, DependencyAnalyzer(index, options, file_loader))

    def initialize(self) -> None:
        self.index.initialize()

    def analyze_dependency(self) -> dict[str, list[DependencyRecord]]:
        return self.analyzer.analyze_dependency()


def swagger_dependency(
    dependencies: dict[str, list[DependencyRecord]],
    index: OperationIndex,
    file_root: str | Path,
) -> dict[str, list[dict[str, str]]]:
    """Regroup analysis output by spec file, with paths relative to *file_root*.

    The spec file of an example is the one declaring its first linking
    operation. Examples without records are dropped.
    """
    root = Path(file_root).resolve()

    def relative(path: str) -> str:
        try:
            return Path(path).resolve().relative_to(root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    grouped: dict[str, list[dict[str, str]]] = {}
    for example_file_path, records in dependencies.items():
        owners = index.operations_for_example(example_file_path)
        if not records or not owners:
            continue
        operation, _ = next(iter(owners.values()))
        entries = grouped.setdefault(relative(operation.spec_file_path), [])
        for record in records:
            entry = record.model_dump(by_alias=True)
            entry["exampleFilePath"] = relative(record.example_file_path)
            entries.append(entry)
    return grouped
