"""
Helpers for form-encoded endpoints.

Form submissions are validated with the same Pydantic schemas as JSON bodies;
failures are reported as a field-keyed map of messages before any database
call is made.
"""

import re
from typing import Any, Dict, List, Type, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.datastructures import FormData

ModelT = TypeVar("ModelT", bound=BaseModel)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class FormValidationError(Exception):
    """Raised when a submitted form does not validate."""

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__("Invalid form submission")


def to_snake_case(name: str) -> str:
    """zipCode -> zip_code; snake_case names pass through unchanged."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def form_to_dict(form: FormData) -> Dict[str, Any]:
    """
    Flatten submitted form fields into a dict keyed by schema field name.

    Blank values become None so that clearing an input clears the field.
    File uploads are ignored.
    """
    data: Dict[str, Any] = {}
    for key, value in form.multi_items():
        if not isinstance(value, str):
            continue
        value = value.strip()
        data[to_snake_case(key)] = value or None
    return data


def field_errors(exc: ValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        message = error["msg"].removeprefix("Value error, ")
        errors.setdefault(field, []).append(message)
    return errors


def parse_form(schema: Type[ModelT], form: FormData) -> ModelT:
    """
    Validate a form against schema, keeping only the fields it declares.

    Raises:
        FormValidationError: With the field-keyed error map
    """
    data = {
        key: value for key, value in form_to_dict(form).items() if key in schema.model_fields
    }
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise FormValidationError(field_errors(e)) from e


def form_error_response(exc: FormValidationError, headers: Dict[str, str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"errors": exc.errors},
        headers=headers,
    )
