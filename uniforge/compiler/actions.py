"""
Action lowering table.

Each action kind is registered with the parameter struct it reads and a
function that appends C# statements to a CodeWriter. Positions and speeds
authored in editor pixels are divided by pixels_per_unit, and the Y axis is
flipped (the editor is Y-down, Unity is Y-up).

Actions that declare locals are wrapped in their own { } scope so the same
action can appear twice in one method.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Type

from uniforge.compiler.context import LoweringContext
from uniforge.compiler.naming import (
    csharp_string,
    format_bool,
    format_float,
    format_number,
    parse_bool,
    parse_number,
)
from uniforge.compiler.variables import DEFAULT_LITERALS
from uniforge.compiler.writer import CodeWriter
from uniforge.ir.params import (
    ActionKind,
    AttackParams,
    ChangeSceneParams,
    ChaseTargetParams,
    ClearSignalParams,
    EmitSignalParams,
    EmptyParams,
    EnableParams,
    FireProjectileParams,
    HealthParams,
    IncrementVarParams,
    LogParams,
    MoveParams,
    MoveTowardParams,
    ParamModel,
    ParticleEmitterParams,
    PlayAnimationParams,
    PlayParticleParams,
    PlaySoundParams,
    PulseParams,
    RotateParams,
    RunModuleParams,
    SetVarParams,
    ShowDialogueParams,
    SpawnEntityParams,
    WaitParams,
)
from uniforge.logging import get_logger

log = get_logger('actions')

SELF_TEMPLATE = "__self__"


@dataclass(frozen=True)
class ActionLowering:
    """Registered lowering: typed params in, statements out."""
    kind: ActionKind
    params: Type[ParamModel]
    func: Callable[[Any, CodeWriter, LoweringContext], None]


_LOWERINGS: Dict[ActionKind, ActionLowering] = {}


def lowers(kind: ActionKind, params: Type[ParamModel] = EmptyParams):
    """Register a lowering function for an action kind."""
    def decorator(func):
        _LOWERINGS[kind] = ActionLowering(kind, params, func)
        return func
    return decorator


def lower_action(
    action: Optional[str],
    params: Optional[Mapping[str, Any]],
    writer: CodeWriter,
    ctx: LoweringContext,
) -> None:
    """
    Append the statements for one action.

    Args:
        action: Action identifier as authored; empty means no-op
        params: Raw parameter map
        writer: Destination buffer
        ctx: Lowering context of the entity
    """
    if not action:
        return
    kind = ActionKind.parse(action)
    if kind is None:
        log.fallback('unknown_action', ctx.entity.id, "unknown action %r", action)
        writer.comment(f"Unknown action: {action}")
        return
    lowering = _LOWERINGS[kind]
    log.lowering('action', kind.value)
    lowering.func(lowering.params.coerce(params), writer, ctx)


def _vector3(ctx: LoweringContext, x: float, y: float) -> str:
    """Editor pixel offset -> world-space Vector3 literal (Y flipped)."""
    return f"new Vector3({format_float(ctx.world(x))}, {format_float(-ctx.world(y))}, 0)"


# =============================================================================
# Basic
# =============================================================================

@lowers(ActionKind.LOG, LogParams)
def _log(p: LogParams, writer, ctx):
    writer.line(f"Debug.Log({csharp_string(p.message)});")


# =============================================================================
# Movement
# =============================================================================

@lowers(ActionKind.MOVE, MoveParams)
def _move(p: MoveParams, writer, ctx):
    direction = f"new Vector3({format_float(p.direction.x)}, {format_float(-p.direction.y)}, 0)"
    speed = format_float(ctx.world(p.speed))
    writer.line(f"_transform.Translate({direction}.normalized * {speed} * Time.deltaTime);")


@lowers(ActionKind.ROTATE, RotateParams)
def _rotate(p: RotateParams, writer, ctx):
    writer.line(f"_transform.Rotate(0, 0, {format_float(p.speed)} * Time.deltaTime);")


@lowers(ActionKind.CHASE_TARGET, ChaseTargetParams)
def _chase_target(p: ChaseTargetParams, writer, ctx):
    speed = format_float(ctx.world(p.speed))
    writer.comment(f"ChaseTarget: {p.target_id}")
    with writer.block():
        writer.line(f"var target = GameObject.Find({csharp_string(p.target_id)});")
        with writer.block("if (target != null)"):
            writer.line("Vector3 dir = (target.transform.position - _transform.position).normalized;")
            writer.line(f"_transform.Translate(dir * {speed} * Time.deltaTime);")


@lowers(ActionKind.MOVE_TOWARD, MoveTowardParams)
def _move_toward(p: MoveTowardParams, writer, ctx):
    speed = format_float(ctx.world(p.speed))
    epsilon = format_float(ctx.config.arrive_epsilon)
    writer.comment(f"MoveToward: ({p.x:g}, {p.y:g})")
    with writer.block():
        writer.line(f"Vector3 targetPos = {_vector3(ctx, p.x, p.y)};")
        writer.line("Vector3 direction = (targetPos - _transform.position).normalized;")
        with writer.block(f"if (Vector3.Distance(_transform.position, targetPos) > {epsilon})"):
            writer.line(f"_transform.Translate(direction * {speed} * Time.deltaTime);")


# =============================================================================
# Variables
# =============================================================================

_VARIABLE_KEYS = ('variable', 'var', 'name')


def render_operand(value: Any, ctx: LoweringContext, target_type: Optional[str] = None) -> str:
    """
    C# expression for a SetVar operand.

    Numbers are written in the target variable's type, strings naming a
    declared variable become references, other strings are quoted.
    """
    if value is None:
        return DEFAULT_LITERALS.get(target_type, '0')
    if isinstance(value, dict):
        if str(value.get('type', '')).lower() == 'variable':
            ref = next((value[k] for k in _VARIABLE_KEYS + ('value', 'id') if value.get(k)), None)
            if ref is not None:
                return ctx.variable(str(ref))
        for key in _VARIABLE_KEYS:
            if value.get(key):
                return ctx.variable(str(value[key]))
        if 'value' in value:
            return render_operand(value['value'], ctx, target_type)
        log.debug("SetVar operand %r has no value, using default", value)
        return DEFAULT_LITERALS.get(target_type, '0')
    if isinstance(value, bool):
        return format_bool(value)
    if isinstance(value, (int, float)):
        return format_number(value, target_type)
    if isinstance(value, str):
        if ctx.is_variable(value):
            return ctx.variable(value)
        if target_type == 'string':
            return csharp_string(value)
        flag = parse_bool(value)
        if flag is not None:
            return format_bool(flag)
        number = parse_number(value)
        if number is not None:
            return format_number(number, target_type)
        return csharp_string(value)
    log.debug("SetVar operand %r is not usable, using default", value)
    return DEFAULT_LITERALS.get(target_type, '0')


_ARITHMETIC = {'Add': '+', 'Sub': '-', 'Multiply': '*'}

INT_CAST = '(int)'


def constant_value(operand: str) -> Optional[float]:
    """Value of a rendered numeric literal, or None for anything else.

    An ``(int)`` cast truncates toward zero, as it does in C#, so
    ``(int)0.4f`` is 0.
    """
    text = operand.strip()
    cast = text.startswith(INT_CAST)
    if cast:
        text = text[len(INT_CAST):]
    number = parse_number(text[:-1] if text.endswith('f') else text)
    if number is not None and cast:
        number = float(math.trunc(number))
    return number


@lowers(ActionKind.SET_VAR, SetVarParams)
def _set_var(p: SetVarParams, writer, ctx):
    if not p.name:
        log.warning("SetVar without a variable name on entity %s", ctx.entity.id)
        writer.comment("SetVar: no variable name")
        return
    target = ctx.variable(p.name)
    target_type = ctx.type_of(target)
    op1 = render_operand(p.operand1, ctx, target_type)
    op2 = render_operand(p.operand2, ctx, target_type)
    operation = p.operation.strip()

    if operation in _ARITHMETIC:
        writer.line(f"{target} = {op1} {_ARITHMETIC[operation]} {op2};")
    elif operation == 'Divide':
        zero = DEFAULT_LITERALS.get(target_type, '0')
        if constant_value(op2) == 0:
            # Constant integer division by zero does not compile in C#
            writer.line(f"{target} = {zero};  // divide by zero")
        else:
            writer.line(f"{target} = {op2} != 0 ? {op1} / {op2} : {zero};")
    else:
        if operation != 'Set':
            log.debug("SetVar operation %r treated as Set", operation)
        writer.line(f"{target} = {op1};")


@lowers(ActionKind.INCREMENT_VAR, IncrementVarParams)
def _increment_var(p: IncrementVarParams, writer, ctx):
    if not p.name:
        log.warning("IncrementVar without a variable name on entity %s", ctx.entity.id)
        writer.comment("IncrementVar: no variable name")
        return
    target = ctx.variable(p.name)
    if p.amount == 0:
        if ctx.type_of(target) == 'int':
            log.warning("Entity %s: IncrementVar adds Time.deltaTime to int %s, truncated to whole units",
                        ctx.entity.id, target)
            writer.line(f"{target} += {INT_CAST}Time.deltaTime;")
        else:
            writer.line(f"{target} += Time.deltaTime;")
    else:
        writer.line(f"{target} += {format_number(p.amount, ctx.type_of(target) or 'float')};")


# =============================================================================
# Flow control
# =============================================================================

@lowers(ActionKind.WAIT, WaitParams)
def _wait(p: WaitParams, writer, ctx):
    writer.line(f"yield return new WaitForSeconds({format_float(p.seconds)});")
    writer.suspends = True


@lowers(ActionKind.ENABLE, EnableParams)
def _enable(p: EnableParams, writer, ctx):
    writer.line(f"gameObject.SetActive({format_bool(p.enabled)});")


@lowers(ActionKind.CHANGE_SCENE, ChangeSceneParams)
def _change_scene(p: ChangeSceneParams, writer, ctx):
    if not p.scene_name:
        log.warning("ChangeScene without a scene on entity %s", ctx.entity.id)
        writer.comment("ChangeScene: no scene given")
        return
    writer.line(ctx.call('change_scene', scene=csharp_string(p.scene_name)) + ";")


@lowers(ActionKind.DESTROY)
def _destroy(p, writer, ctx):
    writer.line("Destroy(gameObject);")


@lowers(ActionKind.RUN_MODULE, RunModuleParams)
def _run_module(p: RunModuleParams, writer, ctx):
    writer.comment(f"RunModule: {p.module_id}")
    if not p.module_id:
        log.warning("RunModule without a module id on entity %s", ctx.entity.id)
        return
    if ctx.run_module is None:
        log.warning("RunModule %s outside a traversal, not inlined", p.module_id)
        return
    ctx.run_module(p.module_id, writer)


# =============================================================================
# Combat
# =============================================================================

def _adjust_health(sign: str, label: str):
    def lower(p: HealthParams, writer, ctx):
        hp = ctx.health()
        writer.comment(f"{label}: {p.amount:g}")
        writer.line(f"{hp} {sign}= {format_number(p.amount, ctx.type_of(hp))};")
    return lower


lowers(ActionKind.TAKE_DAMAGE, HealthParams)(_adjust_health('-', 'TakeDamage'))
lowers(ActionKind.HEAL, HealthParams)(_adjust_health('+', 'Heal'))


@lowers(ActionKind.ATTACK, AttackParams)
def _attack(p: AttackParams, writer, ctx):
    radius = format_float(ctx.world(p.range))
    damage = format_float(p.damage)
    writer.comment(f"Attack: range={p.range:g}, damage={p.damage:g}")
    with writer.block():
        writer.line(f"var hits = Physics2D.OverlapCircleAll(_transform.position, {radius});")
        with writer.block("foreach (var hit in hits)"):
            writer.line("if (hit.gameObject != gameObject)")
            with writer.indented():
                writer.line(f'hit.SendMessage("OnTakeDamage", {damage}, SendMessageOptions.DontRequireReceiver);')


@lowers(ActionKind.FIRE_PROJECTILE, FireProjectileParams)
def _fire_projectile(p: FireProjectileParams, writer, ctx):
    call = ctx.call(
        'fire_projectile',
        origin="_transform.position",
        role=csharp_string(p.target_role),
        speed=format_float(ctx.world(p.speed)),
        damage=format_float(p.damage),
    )
    writer.line(call + ";")


@lowers(ActionKind.SPAWN_ENTITY, SpawnEntityParams)
def _spawn_entity(p: SpawnEntityParams, writer, ctx):
    if not p.template_id:
        log.warning("SpawnEntity without a template on entity %s", ctx.entity.id)
        writer.comment("SpawnEntity: no template given")
        return
    if p.position_mode == 'absolute':
        position = _vector3(ctx, p.x, p.y)
    else:
        position = f"_transform.position + {_vector3(ctx, p.offset_x, p.offset_y)}"

    if p.template_id == SELF_TEMPLATE:
        call = ctx.call('spawn_self', position=position)
    else:
        call = ctx.call('spawn', template=csharp_string(p.template_id), position=position)
    writer.line(call + ";")


# =============================================================================
# Visual and audio
# =============================================================================

@lowers(ActionKind.PLAY_ANIMATION, PlayAnimationParams)
def _play_animation(p: PlayAnimationParams, writer, ctx):
    if not p.animation_name:
        log.warning("PlayAnimation without an animation name on entity %s", ctx.entity.id)
        writer.comment("PlayAnimation: no animation given")
        return
    writer.line(f"if (_animator != null) _animator.Play({csharp_string(p.animation_name)});")


@lowers(ActionKind.PULSE, PulseParams)
def _pulse(p: PulseParams, writer, ctx):
    lo, hi, speed = format_float(p.min_scale), format_float(p.max_scale), format_float(p.speed)
    with writer.block():
        writer.line(f"float pulse = Mathf.Lerp({lo}, {hi}, (Mathf.Sin(Time.time * {speed}) + 1f) / 2f);")
        writer.line("_transform.localScale = new Vector3(pulse, pulse, 1f);")


@lowers(ActionKind.PLAY_PARTICLE, PlayParticleParams)
def _play_particle(p: PlayParticleParams, writer, ctx):
    call = ctx.call(
        'play_particle',
        preset=csharp_string(p.preset),
        position="_transform.position",
        scale=format_float(p.scale),
    )
    writer.line(call + ";")


@lowers(ActionKind.START_PARTICLE_EMITTER, ParticleEmitterParams)
def _start_particle_emitter(p: ParticleEmitterParams, writer, ctx):
    writer.comment(f"StartParticleEmitter: {p.emitter_id} ({p.preset}) has no runtime support")


@lowers(ActionKind.STOP_PARTICLE_EMITTER, ParticleEmitterParams)
def _stop_particle_emitter(p: ParticleEmitterParams, writer, ctx):
    writer.comment(f"StopParticleEmitter: {p.emitter_id} has no runtime support")


@lowers(ActionKind.PLAY_SOUND, PlaySoundParams)
def _play_sound(p: PlaySoundParams, writer, ctx):
    writer.line(ctx.call('play_sound', sound=csharp_string(p.sound_id)) + ";")


# =============================================================================
# Signals and dialogue
# =============================================================================

@lowers(ActionKind.EMIT_EVENT_SIGNAL, EmitSignalParams)
def _emit_signal(p: EmitSignalParams, writer, ctx):
    writer.line(ctx.call('emit_signal', key=csharp_string(p.signal_key)) + ";")


@lowers(ActionKind.CLEAR_SIGNAL, ClearSignalParams)
def _clear_signal(p: ClearSignalParams, writer, ctx):
    writer.line(ctx.call('clear_signal', key=csharp_string(p.key)) + ";")


@lowers(ActionKind.SHOW_DIALOGUE, ShowDialogueParams)
def _show_dialogue(p: ShowDialogueParams, writer, ctx):
    writer.line(ctx.call('show_dialogue', text=csharp_string(p.text)) + ";")


_missing = [kind.value for kind in ActionKind if kind not in _LOWERINGS]
if _missing:
    raise RuntimeError(f"Action kinds without a lowering: {', '.join(_missing)}")
