"""Field declarations for entity variables."""

from typing import Any

from pydantic import ValidationError

from uniforge.compiler.naming import (
    csharp_string,
    format_bool,
    format_float,
    format_number,
    parse_bool,
    parse_number,
    sanitize_identifier,
)
from uniforge.compiler.writer import CodeWriter
from uniforge.ir.models import EntityDefinition, Variable
from uniforge.ir.params import Vec2
from uniforge.logging import get_logger

log = get_logger('variables')

CSHARP_TYPES = {
    'int': 'int',
    'float': 'float',
    'bool': 'bool',
    'string': 'string',
    'vector2': 'Vector2',
}

DEFAULT_LITERALS = {
    'int': '0',
    'float': '0f',
    'bool': 'false',
    'string': '""',
    'vector2': 'Vector2.zero',
}


def declare_variables(entity: EntityDefinition, writer: CodeWriter) -> None:
    """Emit one public field per variable, skipping name collisions."""
    declared = set()
    for variable in entity.variables:
        ident = sanitize_identifier(variable.name)
        if ident in declared:
            log.warning("Entity %s: variable %r collides with %s, skipped", entity.id, variable.name, ident)
            writer.comment(f"Skipped variable '{variable.name}': {ident} is already declared")
            continue
        declared.add(ident)
        writer.line(declaration(variable, ident))


def declaration(variable: Variable, ident: str) -> str:
    """`public <type> <name> = <literal>;` for one variable."""
    declared_type = variable.declared_type
    if declared_type in CSHARP_TYPES:
        literal = initial_literal(declared_type, variable.value, ident)
        return f"public {CSHARP_TYPES[declared_type]} {ident} = {literal};"
    if declared_type:
        log.debug("Variable %s has unrecognized type %r, declared as object", ident, variable.type)
    return f"public object {ident} = {object_literal(variable.value)};"


def initial_literal(declared_type: str, value: Any, ident: str = "") -> str:
    """Literal for a variable's initial value; the type default when absent or unusable."""
    if value is None:
        return DEFAULT_LITERALS[declared_type]

    literal = None
    if declared_type in ('int', 'float'):
        number = parse_number(value)
        if number is not None:
            literal = format_number(number, declared_type)
    elif declared_type == 'bool':
        flag = parse_bool(value)
        if flag is None:
            number = parse_number(value)
            flag = None if number is None else number != 0
        if flag is not None:
            literal = format_bool(flag)
    elif declared_type == 'string':
        literal = csharp_string(value)
    elif declared_type == 'vector2':
        try:
            vec = Vec2.model_validate(value)
        except ValidationError:
            vec = None
        if vec is not None:
            literal = f"new Vector2({format_float(vec.x)}, {format_float(vec.y)})"

    if literal is None:
        log.debug("Variable %s: value %r is not a valid %s, using default", ident, value, declared_type)
        return DEFAULT_LITERALS[declared_type]
    return literal


def object_literal(value: Any) -> str:
    """Literal for a variable of unrecognized type."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return format_bool(value)
    number = parse_number(value) if not isinstance(value, str) else None
    if number is not None:
        return format_number(number)
    if isinstance(value, str):
        return csharp_string(value)
    return 'null'
