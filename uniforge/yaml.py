"""
Unified YAML/JSON loading and JSON Schema validation.

Editor payloads arrive as JSON; configuration files are YAML. Both go
through this module so parse errors and schema errors look the same to the
callers.

Usage:
    from uniforge.yaml import load, loads, validate, load_schema

    data = load(Path('project.json'))
    errors = validate(data, load_schema(schema_path), raise_on_error=False)

Environment:
    UNIFORGE_SKIP_SCHEMA_VALIDATION=1   # Skip JSON Schema validation
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml


SKIP_VALIDATION = os.environ.get('UNIFORGE_SKIP_SCHEMA_VALIDATION', '').lower() in ('1', 'true', 'yes')


class SchemaValidationError(Exception):
    """Raised when data does not match its JSON Schema."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        self.errors = errors or []
        self.path = path
        super().__init__(message)


class LoadError(Exception):
    """Raised when text cannot be parsed as JSON or YAML."""


def loads(text: str, fmt: Optional[str] = None) -> Any:
    """
    Parse JSON or YAML text.

    Args:
        text: Document content
        fmt: 'json', 'yaml' or None to detect (JSON when the document
            starts with '{' or '[')

    Returns:
        Parsed document

    Raises:
        LoadError: If the text is not valid in the chosen format
    """
    if fmt is None:
        fmt = 'json' if text.lstrip()[:1] in ('{', '[') else 'yaml'

    if fmt == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise LoadError(f"Invalid JSON at line {e.lineno} column {e.colno}: {e.msg}") from e

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise LoadError(f"Invalid YAML: {e}") from e


def load(path: Union[str, Path]) -> Any:
    """
    Load a JSON or YAML file.

    The format is chosen from the suffix (.json is JSON, anything else is
    detected from content).

    Raises:
        FileNotFoundError: If the file doesn't exist
        LoadError: If the content cannot be parsed
    """
    path = Path(path)
    text = path.read_text(encoding='utf-8')
    fmt = 'json' if path.suffix.lower() == '.json' else None
    return loads(text, fmt=fmt)


def load_schema(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a JSON Schema document."""
    with open(path, encoding='utf-8') as f:
        return json.load(f)


def validate(
    data: Any,
    schema: Dict[str, Any],
    raise_on_error: bool = True,
) -> List[str]:
    """
    Validate data against a JSON Schema.

    Args:
        data: Parsed document
        schema: JSON Schema dict
        raise_on_error: Raise SchemaValidationError instead of returning errors

    Returns:
        List of "path: message" strings (empty if valid or validation skipped)
    """
    if SKIP_VALIDATION:
        return []

    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        path = '.'.join(str(p) for p in error.absolute_path) or '<root>'
        errors.append(f"{path}: {error.message}")

    if errors and raise_on_error:
        raise SchemaValidationError(
            f"Schema validation failed with {len(errors)} error(s): {errors[0]}",
            errors=errors,
        )
    return errors
