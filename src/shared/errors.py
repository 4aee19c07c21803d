"""Custom exception classes and FastAPI exception handlers."""
from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str, status_code: int = 500) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class ValidationError(AppError):
    """Validation error (422)."""

    def __init__(self, detail: str = "Validation error") -> None:
        super().__init__(detail=detail, status_code=422)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(detail=detail, status_code=404)


class ConflictError(AppError):
    """Conflict error (409)."""

    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(detail=detail, status_code=409)


class ParsingError(AppError):
    """Parsing error (400)."""

    def __init__(self, detail: str = "Parsing error") -> None:
        super().__init__(detail=detail, status_code=400)


# ----------------------------------------------------------------------
# Operation index (load-time structural errors)
# ----------------------------------------------------------------------


class AlreadyInitializedError(ConflictError):
    """The operation index was initialized twice."""

    def __init__(self, detail: str = "Already initialized") -> None:
        super().__init__(detail=detail)


class MissingOperationIdError(ValidationError):
    """An operation in a spec document has no operationId."""

    def __init__(self, method: str, path_template: str) -> None:
        self.method = method
        self.path_template = path_template
        super().__init__(
            detail=f"OperationId is undefined for operation {method} {path_template}"
        )


class DuplicateOperationIdError(ConflictError):
    """Two operations share the same operationId."""

    def __init__(
        self, operation_id: str, path_template: str, conflicting_path_template: str
    ) -> None:
        self.operation_id = operation_id
        self.path_template = path_template
        self.conflicting_path_template = conflicting_path_template
        super().__init__(
            detail=(
                f"Duplicated operationId {operation_id}: {path_template}\n"
                f"Conflict with path: {conflicting_path_template}"
            )
        )


class InvalidExampleRefError(ValidationError):
    """An x-ms-examples entry is not a plain ``$ref`` to a file."""

    def __init__(self, example_name: str, operation_id: str = "") -> None:
        self.example_name = example_name
        self.operation_id = operation_id
        super().__init__(detail=f"Example doesn't use $ref: {example_name}")


class UnknownDiscriminatorValueError(ValidationError):
    """A discriminator value in an example matches no known subtype."""

    def __init__(self, schema_pointer: str, discriminator_property: str, value: Any) -> None:
        self.schema_pointer = schema_pointer
        self.discriminator_property = discriminator_property
        self.value = value
        super().__init__(
            detail=(
                f"Unknown discriminator value {value!r} for property "
                f"{discriminator_property!r} of schema {schema_pointer}"
            )
        )


class OperationNotFoundError(NotFoundError):
    """No loaded operation has the requested operationId."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(detail=f"Operation not found for {operation_id}")


# ----------------------------------------------------------------------
# Test definition documents
# ----------------------------------------------------------------------


class SchemaValidationError(ValidationError):
    """A test definition document does not match the test definition schema."""

    def __init__(self, file_path: str, path: str, message: str) -> None:
        self.file_path = file_path
        self.path = path
        self.message = message
        super().__init__(
            detail=f"Failed to validate test resource file {file_path}: {path} {message}"
        )


# ----------------------------------------------------------------------
# Step resolution
# ----------------------------------------------------------------------


class StepResolutionError(ValidationError):
    """Base class for errors raised while resolving a test step."""

    def __init__(self, detail: str, step: str | None = None) -> None:
        self.step = step
        super().__init__(detail=detail)


class MissingStepNameError(StepResolutionError):
    """A restCall step has no ``step`` name."""

    def __init__(self, source: str | None) -> None:
        super().__init__(
            detail=f'Property "step" as step name is required for restCall step: {source}'
        )


class DuplicateStepNameError(StepResolutionError):
    """A step name is already tracked in the current scope."""

    def __init__(self, step: str) -> None:
        super().__init__(detail=f"Duplicated step name: {step}", step=step)


class ConflictingStepSourceError(StepResolutionError):
    """Both ``fromStep`` and ``exampleFile`` are set on a step."""

    def __init__(self, step: str) -> None:
        super().__init__(
            detail=f"Cannot use fromStep along with exampleFile for step: {step}",
            step=step,
        )


class MissingStepSourceError(StepResolutionError):
    """Neither ``fromStep`` nor ``exampleFile`` is set on a restCall step."""

    def __init__(self, step: str) -> None:
        super().__init__(
            detail=f'RestCall step must specify "exampleFile" or "fromStep": {step}',
            step=step,
        )


class UnknownFromStepError(StepResolutionError):
    """``fromStep`` names a step that is not tracked."""

    def __init__(self, step: str, from_step: str) -> None:
        self.from_step = from_step
        super().__init__(detail=f"Unknown fromStep name: {from_step}", step=step)


class FromStepNotRestCallError(StepResolutionError):
    """``fromStep`` names a step that is not a restCall step."""

    def __init__(self, step: str, from_step: str) -> None:
        self.from_step = from_step
        super().__init__(
            detail=f"Cannot use fromStep from non restCall type for step: {from_step}",
            step=step,
        )


class ResponseCodeNotFoundError(StepResolutionError):
    """The example file has no response for the expected status code."""

    def __init__(self, step: str, status_code: int, example_file_path: str) -> None:
        self.status_code = status_code
        self.example_file_path = example_file_path
        super().__init__(
            detail=f"Response code {status_code} not defined in example {example_file_path}",
            step=step,
        )


class ExampleNotReferencedError(StepResolutionError):
    """No operation links the example file of a step."""

    def __init__(self, step: str, example_file: str) -> None:
        self.example_file = example_file
        super().__init__(
            detail=f"Example file is not referenced by any operation: {example_file}",
            step=step,
        )


class AmbiguousExampleOwnerError(StepResolutionError):
    """More than one operation links the example file of a step."""

    def __init__(self, step: str, example_file: str, operation_ids: list[str]) -> None:
        self.example_file = example_file
        self.operation_ids = operation_ids
        super().__init__(
            detail=(
                "Example file is referenced by multiple operation: "
                f"{','.join(operation_ids)} {example_file}"
            ),
            step=step,
        )


class UnsupportedParamTypeError(StepResolutionError):
    """An unsatisfied ARM template parameter is not of string type."""

    def __init__(self, step: str, param_name: str, param_type: Any) -> None:
        self.param_name = param_name
        self.param_type = param_type
        super().__init__(
            detail=(
                "Only string type is supported in arm template params, please specify "
                "defaultValue or add it in arm template parameter file with "
                f"armTemplateParameters: {param_name}"
            ),
            step=step,
        )


class StepPatchError(StepResolutionError):
    """Applying ``patchRequest`` or ``patchResponse`` of a step failed."""

    def __init__(self, step: str, target: str, cause: PatchError) -> None:
        self.target = target
        self.cause = cause
        patch_name = "patchRequest" if target == "request" else "patchResponse"
        super().__init__(
            detail=f"Failed to apply {patch_name} in {step}: {cause.detail}",
            step=step,
        )


# ----------------------------------------------------------------------
# JSON patch
# ----------------------------------------------------------------------


class PatchError(AppError):
    """A patch operation could not be applied (422)."""

    def __init__(self, detail: str, index: int, path: str) -> None:
        self.index = index
        self.path = path
        super().__init__(detail=detail, status_code=422)


class PathNotFoundError(PatchError):
    """The path targeted by a patch operation does not exist."""

    def __init__(self, index: int, path: str, op: str) -> None:
        self.op = op
        super().__init__(
            detail=f"Operation {index} ({op}): path not found: {path}",
            index=index,
            path=path,
        )


class PatchAssertionFailedError(PatchError):
    """A ``test`` patch operation did not match."""

    def __init__(self, index: int, path: str, expected: Any, actual: Any) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            detail=(
                f"Operation {index} (test): value at {path} is {actual!r}, "
                f"expected {expected!r}"
            ),
            index=index,
            path=path,
        )


class InvalidPatchPathError(PatchError):
    """A patch path is not a usable JSON pointer for the target document."""

    def __init__(self, index: int, path: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            detail=f"Operation {index}: invalid path {path!r}: {reason}",
            index=index,
            path=path,
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers with a FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )
