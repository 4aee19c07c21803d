"""Scenario engine Pydantic v2 data models.

External document shapes (test definitions, analyzer output) use camelCase
keys; every model accepts both the alias and the snake_case field name.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, Field

from src.shared.constants import DEFAULT_SCOPE, DEFAULT_STATUS_CODE, UNNAMED_STEP
from src.shared.errors import ValidationError


# ----------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------


class ParameterLocation(str, Enum):
    """Where an operation parameter is carried."""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    FORM_DATA = "formData"
    COOKIE = "cookie"


class OperationParameter(BaseModel):
    """A parameter of an operation.

    For body parameters ``schema_def``/``pointer`` describe the body schema;
    for the other locations they describe the parameter object itself.
    """
    name: str
    location: ParameterLocation
    required: bool = False
    schema_def: dict[str, Any] = Field(default_factory=dict)
    pointer: str = ""

    model_config = {"from_attributes": True}


class OperationResponse(BaseModel):
    """A declared response of an operation."""
    status_code: str
    schema_def: dict[str, Any] | None = None
    pointer: str | None = None

    model_config = {"from_attributes": True}


class ExampleLink(BaseModel):
    """An ``x-ms-examples`` entry resolved to an absolute file path."""
    name: str
    file_path: str

    model_config = {"from_attributes": True}


class Operation(BaseModel):
    """One method + path entry of a spec document."""
    operation_id: str
    method: str
    path_template: str
    parameters: list[OperationParameter] = Field(default_factory=list)
    responses: dict[str, OperationResponse] = Field(default_factory=dict)
    examples: list[ExampleLink] = Field(default_factory=list)
    spec_file_path: str = ""
    pointer: str = ""

    model_config = {"from_attributes": True}

    def body_parameter(self) -> OperationParameter | None:
        """Return the first ``in: body`` parameter, if any."""
        for param in self.parameters:
            if param.location == ParameterLocation.BODY:
                return param
        return None


# ----------------------------------------------------------------------
# Dependency analysis
# ----------------------------------------------------------------------


class DependencyRecord(BaseModel):
    """A JSON location in an example that refers to a resource type."""
    resource_type: str = Field(alias="resourceType")
    example_json_pointer: str = Field(alias="exampleJsonPointer")
    swagger_resource_id_json_path: str = Field(alias="swaggerResourceIdJsonPath")
    example_file_path: str = Field(alias="exampleFilePath")

    model_config = {"populate_by_name": True, "frozen": True}


class AnalyzerOptions(BaseModel):
    """Dependency analyzer configuration."""
    swagger_file_paths: list[str] = Field(default_factory=list, alias="swaggerFilePaths")
    no_external_dependency_resource_type: bool = Field(
        default=False, alias="noExternalDependencyResourceType"
    )
    filer_top_level_resource_type: bool = Field(
        default=False, alias="filerTopLevelResourceType"
    )

    model_config = {"populate_by_name": True}


# ----------------------------------------------------------------------
# Patch operations
# ----------------------------------------------------------------------

PatchOpName = Literal["add", "remove", "replace", "copy", "move", "test", "merge"]

_PATCH_OP_NAMES: tuple[str, ...] = ("add", "remove", "replace", "copy", "move", "test", "merge")


class PatchOperation(BaseModel):
    """One declarative patch operation.

    ``from_path`` is only set for ``copy`` and ``move``; ``value`` is only
    meaningful for ``add``, ``replace``, ``test`` and ``merge``.
    """
    op: PatchOpName
    path: str
    from_path: str | None = None
    value: Any = None

    model_config = {"frozen": True}

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | PatchOperation) -> PatchOperation:
        """Parse the one-key document form, e.g. ``{"add": "/a", "value": 1}``."""
        if isinstance(raw, PatchOperation):
            return raw
        if not isinstance(raw, dict):
            raise ValidationError(detail=f"Unknown jsonPatchOp: {raw!r}")
        for name in _PATCH_OP_NAMES:
            if name not in raw:
                continue
            if name in ("copy", "move"):
                return cls(op=name, path=raw["path"], from_path=raw[name])
            if name == "merge" and not isinstance(raw.get("value"), dict):
                raise ValidationError(
                    detail=f"merge value must be an object: {raw!r}"
                )
            return cls(op=name, path=raw[name], value=raw.get("value"))
        raise ValidationError(detail=f"Unknown jsonPatchOp: {raw!r}")

    def to_raw(self) -> dict[str, Any]:
        """Return the one-key document form."""
        if self.op in ("copy", "move"):
            return {self.op: self.from_path, "path": self.path}
        if self.op == "remove":
            return {"remove": self.path}
        return {self.op: self.path, "value": self.value}


# ----------------------------------------------------------------------
# Test definitions
# ----------------------------------------------------------------------


class TestStepBase(BaseModel):
    """Fields shared by every step variant."""
    __test__: ClassVar[bool] = False

    step: str = UNNAMED_STEP
    variables: dict[str, Any] = Field(default_factory=dict)
    is_scope_prepare_step: bool = Field(default=False, alias="isScopePrepareStep")

    model_config = {"populate_by_name": True}


class TestStepArmTemplateDeployment(TestStepBase):
    """A step deploying an ARM template."""
    type: Literal["armTemplateDeployment"] = "armTemplateDeployment"
    arm_template_deployment: str = Field(alias="armTemplateDeployment")
    arm_template_parameters: str | None = Field(default=None, alias="armTemplateParameters")
    arm_template_payload: dict[str, Any] = Field(
        default_factory=dict, alias="armTemplatePayload"
    )
    arm_template_parameters_payload: dict[str, Any] | None = Field(
        default=None, alias="armTemplateParametersPayload"
    )
    required_parameters: list[str] = Field(default_factory=list, alias="requiredParameters")

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {"armTemplateDeployment": self.arm_template_deployment}
        if self.step != UNNAMED_STEP:
            raw = {"step": self.step, **raw}
        if self.arm_template_parameters is not None:
            raw["armTemplateParameters"] = self.arm_template_parameters
        if self.variables:
            raw["variables"] = self.variables
        return raw


class TestStepRestCall(TestStepBase):
    """A step issuing one REST call."""
    type: Literal["restCall"] = "restCall"
    from_step: str | None = Field(default=None, alias="fromStep")
    example_file: str | None = Field(default=None, alias="exampleFile")
    operation_id: str = Field(default="", alias="operationId")
    operation: Operation | None = Field(default=None, exclude=True)
    request_parameters: dict[str, Any] = Field(
        default_factory=dict, alias="requestParameters"
    )
    response_expected: dict[str, Any] = Field(
        default_factory=dict, alias="responseExpected"
    )
    patch_request: list[PatchOperation] = Field(default_factory=list, alias="patchRequest")
    patch_response: list[PatchOperation] = Field(default_factory=list, alias="patchResponse")
    status_code: int = Field(default=DEFAULT_STATUS_CODE, alias="statusCode")
    example_id: str = Field(default="", alias="exampleId")

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {"step": self.step}
        if self.example_file is not None:
            raw["exampleFile"] = self.example_file
        if self.from_step is not None:
            raw["fromStep"] = self.from_step
        if self.operation_id:
            raw["operationId"] = self.operation_id
        if self.status_code != DEFAULT_STATUS_CODE:
            raw["statusCode"] = self.status_code
        if self.variables:
            raw["variables"] = self.variables
        if self.patch_request:
            raw["patchRequest"] = [op.to_raw() for op in self.patch_request]
        if self.patch_response:
            raw["patchResponse"] = [op.to_raw() for op in self.patch_response]
        return raw


TestStep = Annotated[
    Union[TestStepArmTemplateDeployment, TestStepRestCall],
    Field(discriminator="type"),
]


class TestScenario(BaseModel):
    """A named sequence of steps.

    ``steps`` is the declaration-order list of the scenario's own steps;
    ``resolved_steps`` is the execution order (prepare steps first).
    """
    __test__: ClassVar[bool] = False

    description: str
    share_test_scope: bool = Field(default=True, alias="shareTestScope")
    variables: dict[str, Any] = Field(default_factory=dict)
    required_variables: list[str] = Field(default_factory=list, alias="requiredVariables")
    steps: list[TestStep] = Field(default_factory=list)
    resolved_steps: list[TestStep] = Field(default_factory=list, alias="resolvedSteps")

    model_config = {"populate_by_name": True}

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {
            "description": self.description,
            "shareTestScope": self.share_test_scope,
        }
        if self.variables:
            raw["variables"] = self.variables
        if self.required_variables:
            raw["requiredVariables"] = list(self.required_variables)
        raw["steps"] = [step.to_raw() for step in self.steps]
        return raw


class TestDefinitionFile(BaseModel):
    """A loaded and fully resolved test definition document."""
    __test__: ClassVar[bool] = False

    scope: str = DEFAULT_SCOPE
    required_variables: list[str] = Field(default_factory=list, alias="requiredVariables")
    variables: dict[str, Any] = Field(default_factory=dict)
    prepare_steps: list[TestStep] = Field(default_factory=list, alias="prepareSteps")
    test_scenarios: list[TestScenario] = Field(default_factory=list, alias="testScenarios")
    file_path: str = Field(default="", alias="filePath")

    model_config = {"populate_by_name": True}

    def to_raw(self) -> dict[str, Any]:
        """Return the normalized document form of this definition."""
        raw: dict[str, Any] = {
            "scope": self.scope,
            "requiredVariables": list(self.required_variables),
        }
        if self.variables:
            raw["variables"] = self.variables
        if self.prepare_steps:
            raw["prepareSteps"] = [step.to_raw() for step in self.prepare_steps]
        raw["testScenarios"] = [scenario.to_raw() for scenario in self.test_scenarios]
        return raw


class LoadTestDefinitionRequest(BaseModel):
    """Request to load and resolve a test definition file."""
    test_definition_path: str = Field(alias="testDefinitionPath")
    swagger_file_paths: list[str] = Field(default_factory=list, alias="swaggerFilePaths")

    model_config = {"populate_by_name": True}
