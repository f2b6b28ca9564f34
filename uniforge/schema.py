"""Schema validation for editor payloads."""

from pathlib import Path
from typing import Any, Dict, Optional

from uniforge.yaml import SchemaValidationError, load_schema, validate


_project_schema: Optional[Dict[str, Any]] = None
_SCHEMAS_DIR = Path(__file__).parent / 'schemas'


def _get_project_schema() -> Dict[str, Any]:
    """Lazy-load the project schema."""
    global _project_schema
    if _project_schema is None:
        _project_schema = load_schema(_SCHEMAS_DIR / 'project.schema.json')
    return _project_schema


def validate_project_payload(data: Any, source_path: Optional[Path] = None) -> None:
    """Validate a parsed editor payload against the project schema.

    Only structure is checked (object/array shapes and the types of the
    identifying fields). Parameter maps stay free-form; their contents are
    interpreted by the lowering tables.

    Args:
        data: Parsed JSON payload
        source_path: Optional path for error messages

    Raises:
        SchemaValidationError: If validation fails (unless
            UNIFORGE_SKIP_SCHEMA_VALIDATION=1)
    """
    errors = validate(data, _get_project_schema(), raise_on_error=False)
    if errors:
        where = f" in {source_path}" if source_path else ""
        raise SchemaValidationError(
            f"Schema validation error{where}: {errors[0]}",
            errors=errors,
            path=source_path,
        )
