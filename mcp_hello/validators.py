# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Argument validation for tools and prompts.

Every helper raises InvalidArguments naming the offending field.
"""

import sys
from typing import Any, Dict, Iterable, Optional, Sequence

from mcp_hello.core.errors import InvalidArguments
from mcp_hello.models import PromptArgument


# JSON schema type name -> python type check
_JSON_TYPES = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
    "null": lambda v: v is None,
}


def validate_string(
    value: Any,
    param_name: str,
    required: bool = True,
    min_length: int = 0,
    max_length: int = sys.maxsize
) -> None:
    """
    Validate a string parameter.

    Args:
        value: Value to check
        param_name: Parameter name used in the error message
        required: Whether None is rejected
        min_length: Minimum length
        max_length: Maximum length
    """
    if value is None:
        if required:
            raise InvalidArguments(f"Parameter '{param_name}' is required", field=param_name)
        return

    if not isinstance(value, str):
        raise InvalidArguments(f"Parameter '{param_name}' must be a string", field=param_name)

    if len(value) < min_length:
        raise InvalidArguments(
            f"Parameter '{param_name}' must be at least {min_length} characters long",
            field=param_name,
        )

    if len(value) > max_length:
        raise InvalidArguments(
            f"Parameter '{param_name}' must be no more than {max_length} characters long",
            field=param_name,
        )


def validate_choice(value: Any, param_name: str, choices: Sequence[str]) -> None:
    """Validate an optional string parameter restricted to fixed options."""
    if value is None:
        return
    validate_string(value, param_name, required=False)
    if value not in choices:
        raise InvalidArguments(
            f"Parameter '{param_name}' must be one of: {', '.join(choices)}",
            field=param_name,
        )


def _check_type(value: Any, expected: Any) -> bool:
    if expected is None:
        return True
    if isinstance(expected, list):
        return any(_JSON_TYPES.get(t, lambda v: True)(value) for t in expected)
    return _JSON_TYPES.get(expected, lambda v: True)(value)


def validate_against_schema(arguments: Dict[str, Any], schema: Dict[str, Any]) -> None:
    """
    Validate tool arguments against a declared input schema.

    Only the subset of JSON Schema that tool definitions use is honoured:
    top-level ``required``, per-property ``type`` and ``enum``, and
    ``additionalProperties: false``.

    Args:
        arguments: Arguments supplied by the client
        schema: The tool's ``inputSchema``
    """
    properties: Dict[str, Any] = schema.get("properties", {}) or {}

    for name in schema.get("required", []) or []:
        if arguments.get(name) is None:
            raise InvalidArguments(f"Parameter '{name}' is required", field=name)

    for name, value in arguments.items():
        prop = properties.get(name)
        if prop is None:
            if schema.get("additionalProperties") is False:
                raise InvalidArguments(f"Unexpected parameter '{name}'", field=name)
            continue
        if value is None and name not in (schema.get("required") or []):
            continue
        expected = prop.get("type")
        if not _check_type(value, expected):
            type_name = " or ".join(expected) if isinstance(expected, list) else expected
            raise InvalidArguments(f"Parameter '{name}' must be of type {type_name}", field=name)
        if "enum" in prop and value not in prop["enum"]:
            raise InvalidArguments(
                f"Parameter '{name}' must be one of: {', '.join(map(str, prop['enum']))}",
                field=name,
            )


def validate_prompt_arguments(
    arguments: Dict[str, Any],
    declared: Iterable[PromptArgument],
    allow_unknown: bool = False
) -> None:
    """
    Validate prompt arguments against the prompt's declared argument list.

    Prompt arguments are always strings on the wire.
    """
    declared = list(declared)
    names = {arg.name for arg in declared}

    for arg in declared:
        validate_string(arguments.get(arg.name), arg.name, required=arg.required)

    if not allow_unknown:
        unknown: Optional[str] = next((name for name in arguments if name not in names), None)
        if unknown is not None:
            raise InvalidArguments(f"Unexpected parameter '{unknown}'", field=unknown)
