"""
Condition lowering table.

Maps a condition kind to a C# boolean expression. Unknown kinds lower to
``true`` so an event still fires rather than silently disappearing.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from uniforge.compiler.context import LoweringContext
from uniforge.compiler.naming import format_number, format_value
from uniforge.ir.models import Condition, Node
from uniforge.ir.params import (
    ConditionKind,
    ConditionNodeParams,
    InputParams,
    ThresholdParams,
    VariableCompareParams,
)
from uniforge.logging import get_logger

log = get_logger('conditions')

ConditionLowering = Callable[[Mapping[str, Any], LoweringContext, Optional[str]], str]

_LOWERINGS: Dict[ConditionKind, ConditionLowering] = {}

COMPARISON_OPERATORS = ('==', '!=', '>', '<', '>=', '<=')


def lowers(*kinds: ConditionKind):
    """Register a lowering function for one or more condition kinds."""
    def decorator(func: ConditionLowering) -> ConditionLowering:
        for kind in kinds:
            _LOWERINGS[kind] = func
        return func
    return decorator


def lower_condition(condition: Condition, ctx: LoweringContext) -> str:
    """Lower one event condition to a C# expression."""
    return lower_condition_kind(condition.type, condition.params, ctx, key=condition.key)


def lower_condition_kind(
    kind_name: Optional[str],
    params: Mapping[str, Any],
    ctx: LoweringContext,
    key: Optional[str] = None,
) -> str:
    """
    Lower a condition given by kind name and parameter map.

    Args:
        kind_name: Condition type as authored (aliases accepted)
        params: Raw parameter map
        ctx: Lowering context of the entity
        key: Input key carried on the condition itself

    Returns:
        C# boolean expression; ``true`` for unknown kinds
    """
    kind = ConditionKind.parse(kind_name)
    if kind is None:
        log.fallback('unknown_condition', ctx.entity.id, "unknown condition %r, treating as true", kind_name)
        return 'true'
    log.lowering('condition', kind.value)
    return _LOWERINGS[kind](params, ctx, key)


def combine(expressions: Iterable[str], use_or: bool = False) -> str:
    """Join condition expressions with && (default) or ||."""
    parts = list(expressions)
    if not parts:
        return 'true'
    return (' || ' if use_or else ' && ').join(parts)


def lower_condition_node(node: Node, ctx: LoweringContext) -> str:
    """
    Lower the test of a Condition node.

    A node naming a known condition kind (``condition`` or ``type``) goes
    through the table; otherwise it compares ``variable operator value``
    inline, so a descriptive ``type`` such as "compare" keeps its comparison.
    """
    named = [node.params.get('condition'), node.params.get('type')]
    for kind_name in named:
        if kind_name and ConditionKind.parse(str(kind_name)) is not None:
            return lower_condition_kind(str(kind_name), node.params, ctx, key=node.params.get('key'))

    p = ConditionNodeParams.coerce(node.params)
    if not p.variable:
        unknown = next((str(name) for name in named if name), None)
        if unknown is not None:
            log.fallback('unknown_condition', ctx.entity.id, "unknown condition %r on node %s, treating as true",
                         unknown, node.id)
        else:
            log.fallback('empty_condition', ctx.entity.id, "condition node %s has no variable, treating as true",
                         node.id)
        return 'true'
    operator = p.operator.strip()
    if operator not in COMPARISON_OPERATORS:
        log.debug("Condition node %s: operator %r replaced by ==", node.id, operator)
        operator = '=='
    ident = ctx.variable(p.variable)
    return f"{ident} {operator} {format_value(p.value, ctx.type_of(ident))}"


# =============================================================================
# Variable comparisons
# =============================================================================

def _comparison(operator: str) -> ConditionLowering:
    def lower(params, ctx, key):
        p = VariableCompareParams.coerce(params)
        if not p.variable:
            log.warning("Variable condition without a variable on entity %s, treating as true", ctx.entity.id)
            return 'true'
        ident = ctx.variable(p.variable)
        return f"{ident} {operator} {format_value(p.value, ctx.type_of(ident))}"
    return lower


lowers(ConditionKind.VAR_EQUALS)(_comparison('=='))
lowers(ConditionKind.VAR_NOT_EQUALS)(_comparison('!='))
lowers(ConditionKind.VAR_GREATER_THAN)(_comparison('>'))
lowers(ConditionKind.VAR_LESS_THAN)(_comparison('<'))
lowers(ConditionKind.VAR_GREATER_OR_EQUAL)(_comparison('>='))
lowers(ConditionKind.VAR_LESS_OR_EQUAL)(_comparison('<='))


# =============================================================================
# Status
# =============================================================================

@lowers(ConditionKind.IS_ALIVE)
def _is_alive(params, ctx, key):
    return f"{ctx.health()} > 0"


@lowers(ConditionKind.HP_BELOW)
def _hp_below(params, ctx, key):
    p = ThresholdParams.coerce(params)
    hp = ctx.health()
    return f"{hp} < {format_number(p.value, ctx.type_of(hp))}"


@lowers(ConditionKind.HP_ABOVE)
def _hp_above(params, ctx, key):
    p = ThresholdParams.coerce(params)
    hp = ctx.health()
    return f"{hp} > {format_number(p.value, ctx.type_of(hp))}"


@lowers(ConditionKind.ROLE_EQUALS)
def _role_equals(params, ctx, key):
    return "true /* RoleEquals: role is not tracked at runtime */"


# =============================================================================
# Input
# =============================================================================

KEY_NAMES = {
    'ArrowUp': 'UpArrow',
    'ArrowDown': 'DownArrow',
    'ArrowLeft': 'LeftArrow',
    'ArrowRight': 'RightArrow',
    'Space': 'Space',
    'Enter': 'Return',
    'Escape': 'Escape',
    'ShiftLeft': 'LeftShift',
    'ShiftRight': 'LeftShift',
    'ControlLeft': 'LeftControl',
    'ControlRight': 'LeftControl',
}


def translate_key(web_key: Optional[str]) -> str:
    """Browser KeyboardEvent.code to a Unity KeyCode member name."""
    if web_key is None or web_key == "":
        return 'None'
    web_key = str(web_key)
    if web_key.startswith('Key') and len(web_key) > 3:
        return web_key[3:]
    if web_key in KEY_NAMES:
        return KEY_NAMES[web_key]
    if web_key.startswith('Digit') and len(web_key) > 5:
        return 'Alpha' + web_key[5:]
    return web_key


def _input(method: str) -> ConditionLowering:
    def lower(params, ctx, key):
        if not key:
            key = InputParams.coerce(params).key
        return f"Input.{method}(KeyCode.{translate_key(key)})"
    return lower


lowers(ConditionKind.INPUT_DOWN)(_input('GetKey'))
lowers(ConditionKind.INPUT_UP)(_input('GetKeyUp'))
lowers(ConditionKind.INPUT_PRESSED)(_input('GetKeyDown'))


_missing = [kind.value for kind in ConditionKind if kind not in _LOWERINGS]
if _missing:
    raise RuntimeError(f"Condition kinds without a lowering: {', '.join(_missing)}")
