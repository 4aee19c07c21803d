"""Resolution of individual test steps.

A restCall step goes through ``New -> ResolvingSource -> Patching ->
Tracked``: its request and expected response are taken from an example file
or derived from an earlier step (``fromStep``), patched, and registered so
later steps can chain from it.  Any failure aborts the whole definition load.
"""
from __future__ import annotations

import copy
import json
import logging
from collections import ChainMap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.scenario_engine.services.body_transformer import BodyTransformer
from src.scenario_engine.services.document_loader import FileLoader
from src.scenario_engine.services.operation_index import OperationIndex
from src.scenario_engine.services.patch_applier import apply_patch
from src.shared.constants import DEFAULT_STATUS_CODE, UNNAMED_STEP
from src.shared.errors import (
    AmbiguousExampleOwnerError,
    ConflictingStepSourceError,
    DuplicateStepNameError,
    ExampleNotReferencedError,
    FromStepNotRestCallError,
    MissingStepNameError,
    MissingStepSourceError,
    PatchError,
    ResponseCodeNotFoundError,
    StepPatchError,
    UnknownFromStepError,
    UnsupportedParamTypeError,
    ValidationError,
)
from src.shared.models.scenarios import (
    PatchOperation,
    TestDefinitionFile,
    TestScenario,
    TestStep,
    TestStepArmTemplateDeployment,
    TestStepRestCall,
)

logger = logging.getLogger(__name__)


@dataclass
class TestScenarioContext:
    """State of one definition-file load.

    Prepare steps are tracked definition-wide; while a scenario is being
    compiled its own steps are tracked in a separate layer over them, so
    scenarios can reuse step names but never shadow a prepare step.
    """
    __test__ = False

    test_def: TestDefinitionFile
    definition_dir: Path
    step_tracking: dict[str, TestStep] = field(default_factory=dict)
    scenario_step_tracking: dict[str, TestStep] | None = None
    test_scenario: TestScenario | None = None

    @property
    def tracking(self) -> ChainMap[str, TestStep]:
        if self.scenario_step_tracking is None:
            return ChainMap(self.step_tracking)
        return ChainMap(self.scenario_step_tracking, self.step_tracking)

    def begin_scenario(self, test_scenario: TestScenario) -> None:
        self.test_scenario = test_scenario
        self.scenario_step_tracking = {}

    def end_scenario(self) -> None:
        self.test_scenario = None
        self.scenario_step_tracking = None

    def track(self, step: TestStep) -> None:
        self.tracking[step.step] = step

    def required_variables(self) -> list[str]:
        """The required-variable list new variables are added to."""
        if self.test_scenario is not None:
            return self.test_scenario.required_variables
        return self.test_def.required_variables


class StepResolver:
    """Resolves raw step objects into :data:`TestStep` models."""

    def __init__(
        self,
        index: OperationIndex,
        file_loader: FileLoader | None = None,
        body_transformer: BodyTransformer | None = None,
    ) -> None:
        self._index = index
        self._file_loader = file_loader or FileLoader()
        self._body_transformer = body_transformer or BodyTransformer()

    def resolve_step(self, raw_step: dict[str, Any], ctx: TestScenarioContext) -> TestStep:
        if "armTemplateDeployment" in raw_step:
            return self.resolve_arm_template_step(raw_step, ctx)
        if "exampleFile" in raw_step or "fromStep" in raw_step:
            return self.resolve_rest_call_step(raw_step, ctx)
        raise ValidationError(detail=f"Unknown step type: {json.dumps(raw_step)}")

    # ------------------------------------------------------------------
    # ARM template steps
    # ------------------------------------------------------------------

    def resolve_arm_template_step(
        self, raw_step: dict[str, Any], ctx: TestScenarioContext
    ) -> TestStepArmTemplateDeployment:
        step = TestStepArmTemplateDeployment(
            step=raw_step.get("step", UNNAMED_STEP),
            variables=raw_step.get("variables") or {},
            arm_template_deployment=raw_step["armTemplateDeployment"],
            arm_template_parameters=raw_step.get("armTemplateParameters"),
        )
        named = step.step != UNNAMED_STEP
        if named and step.step in ctx.tracking:
            raise DuplicateStepNameError(step.step)

        step.arm_template_payload = self._file_loader.load_structured(
            ctx.definition_dir / step.arm_template_deployment
        )
        defined: set[str] = set()
        if step.arm_template_parameters is not None:
            step.arm_template_parameters_payload = self._file_loader.load_structured(
                ctx.definition_dir / step.arm_template_parameters
            )
            defined = set((step.arm_template_parameters_payload or {}).get("parameters") or {})

        required = ctx.required_variables()
        for name, param in (step.arm_template_payload.get("parameters") or {}).items():
            if name in defined or "defaultValue" in param:
                continue
            param_type = param.get("type")
            if not isinstance(param_type, str) or param_type.lower() != "string":
                raise UnsupportedParamTypeError(step.step, name, param_type)
            step.required_parameters.append(name)
            if name not in required:
                required.append(name)

        if named:
            ctx.track(step)
        logger.debug(
            "Resolved armTemplateDeployment step %s (%d required parameters)",
            step.step,
            len(step.required_parameters),
        )
        return step

    # ------------------------------------------------------------------
    # restCall steps
    # ------------------------------------------------------------------

    def resolve_rest_call_step(
        self, raw_step: dict[str, Any], ctx: TestScenarioContext
    ) -> TestStepRestCall:
        name = raw_step.get("step")
        if name is None:
            raise MissingStepNameError(raw_step.get("exampleFile") or raw_step.get("fromStep"))
        if name in ctx.tracking:
            raise DuplicateStepNameError(name)

        step = TestStepRestCall(
            step=name,
            from_step=raw_step.get("fromStep"),
            example_file=raw_step.get("exampleFile"),
            variables=raw_step.get("variables") or {},
            operation_id=raw_step.get("operationId") or "",
            patch_request=[PatchOperation.from_raw(op) for op in raw_step.get("patchRequest") or []],
            patch_response=[PatchOperation.from_raw(op) for op in raw_step.get("patchResponse") or []],
            status_code=raw_step.get("statusCode", DEFAULT_STATUS_CODE),
        )

        # ResolvingSource
        if step.operation_id:
            step.operation = self._index.get_operation(step.operation_id)
        if step.from_step is not None:
            self._resolve_from_step(step, ctx)
        else:
            self._resolve_example_file(step, ctx)

        # Patching
        step.request_parameters = self._patch(step, "request", step.request_parameters, step.patch_request)
        step.response_expected = self._patch(step, "response", step.response_expected, step.patch_response)

        # Tracked
        ctx.track(step)
        logger.debug(
            "Resolved restCall step %s -> %s", step.step, step.operation_id,
            extra={"step": step.step, "operation_id": step.operation_id},
        )
        return step

    def _resolve_from_step(self, step: TestStepRestCall, ctx: TestScenarioContext) -> None:
        if step.example_file is not None:
            raise ConflictingStepSourceError(step.step)
        source = ctx.tracking.get(step.from_step)
        if source is None:
            raise UnknownFromStepError(step.step, step.from_step)
        if not isinstance(source, TestStepRestCall):
            raise FromStepNotRestCallError(step.step, step.from_step)

        # Deep copies: the source may be a prepare step shared by every scenario.
        step.request_parameters = copy.deepcopy(source.request_parameters)
        step.response_expected = copy.deepcopy(source.response_expected)
        step.example_id = source.example_id
        if not step.operation_id:
            step.operation_id = source.operation_id
            step.operation = source.operation

        body_param = step.operation.body_parameter() if step.operation is not None else None
        resolver = self._index.resolver_for(step.operation) if step.operation is not None else None
        converted = self._body_transformer.response_body_to_request(
            source.response_expected.get("body"),
            resolver,
            body_param.pointer if body_param is not None else None,
        )
        if body_param is not None:
            step.request_parameters[body_param.name] = converted

    def _resolve_example_file(self, step: TestStepRestCall, ctx: TestScenarioContext) -> None:
        if step.example_file is None:
            raise MissingStepSourceError(step.step)

        example_path = self._file_loader.resolve(ctx.definition_dir / step.example_file)
        example = self._file_loader.load_structured(example_path) or {}

        step.request_parameters = example.get("parameters") or {}
        responses = example.get("responses") or {}
        response = responses.get(str(step.status_code), responses.get(step.status_code))
        if response is None:
            raise ResponseCodeNotFoundError(step.step, step.status_code, str(example_path))
        step.response_expected = response

        owners = self._index.operations_for_example(example_path)
        if not step.operation_id:
            if not owners:
                raise ExampleNotReferencedError(step.step, step.example_file)
            if len(owners) > 1:
                raise AmbiguousExampleOwnerError(step.step, step.example_file, list(owners))
            operation, example_name = next(iter(owners.values()))
            step.operation = operation
            step.operation_id = operation.operation_id
            step.example_id = example_name
        elif step.operation_id in owners:
            step.example_id = owners[step.operation_id][1]

    def _patch(
        self,
        step: TestStepRestCall,
        target: str,
        document: dict[str, Any],
        ops: list[PatchOperation],
    ) -> dict[str, Any]:
        try:
            return apply_patch(document, ops)
        except PatchError as exc:
            raise StepPatchError(step.step, target, exc) from exc
