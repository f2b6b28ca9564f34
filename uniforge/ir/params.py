"""
Typed parameters for actions and conditions.

The editor stores parameters as free-form maps. Each action and condition
kind gets a small pydantic model describing the fields it reads, with the
defaults the lowering tables fall back to. ``ParamModel.coerce`` is the one
place a raw map is turned into typed values: fields that fail validation
are dropped and take their defaults, so a malformed parameter never stops
compilation.

Kinds arrive as strings; ActionKind and ConditionKind normalize them.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from uniforge.logging import get_logger

log = get_logger('params')


class ActionKind(str, Enum):
    """Action identifiers understood by the action lowering table."""
    LOG = "Log"
    MOVE = "Move"
    ROTATE = "Rotate"
    CHASE_TARGET = "ChaseTarget"
    MOVE_TOWARD = "MoveToward"
    SET_VAR = "SetVar"
    INCREMENT_VAR = "IncrementVar"
    WAIT = "Wait"
    ENABLE = "Enable"
    CHANGE_SCENE = "ChangeScene"
    DESTROY = "Destroy"
    TAKE_DAMAGE = "TakeDamage"
    HEAL = "Heal"
    ATTACK = "Attack"
    FIRE_PROJECTILE = "FireProjectile"
    SPAWN_ENTITY = "SpawnEntity"
    PLAY_ANIMATION = "PlayAnimation"
    PULSE = "Pulse"
    PLAY_PARTICLE = "PlayParticle"
    START_PARTICLE_EMITTER = "StartParticleEmitter"
    STOP_PARTICLE_EMITTER = "StopParticleEmitter"
    PLAY_SOUND = "PlaySound"
    EMIT_EVENT_SIGNAL = "EmitEventSignal"
    CLEAR_SIGNAL = "ClearSignal"
    SHOW_DIALOGUE = "ShowDialogue"
    RUN_MODULE = "RunModule"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional['ActionKind']:
        """Normalize an action identifier, or None if it is not known."""
        return _parse_kind(cls, name, {})


class ConditionKind(str, Enum):
    """Canonical condition kinds. Editor aliases map onto these."""
    VAR_EQUALS = "VarEquals"
    VAR_NOT_EQUALS = "VarNotEquals"
    VAR_GREATER_THAN = "VarGreaterThan"
    VAR_LESS_THAN = "VarLessThan"
    VAR_GREATER_OR_EQUAL = "VarGreaterOrEqual"
    VAR_LESS_OR_EQUAL = "VarLessOrEqual"
    IS_ALIVE = "IsAlive"
    HP_BELOW = "HpBelow"
    HP_ABOVE = "HpAbove"
    ROLE_EQUALS = "RoleEquals"
    INPUT_DOWN = "InputDown"
    INPUT_UP = "InputUp"
    INPUT_PRESSED = "InputPressed"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional['ConditionKind']:
        """Normalize a condition type (aliases included), or None."""
        return _parse_kind(cls, name, CONDITION_ALIASES)


CONDITION_ALIASES: Dict[str, ConditionKind] = {
    'VariableEquals': ConditionKind.VAR_EQUALS,
    'IfVariableEquals': ConditionKind.VAR_EQUALS,
    'VariableNotEquals': ConditionKind.VAR_NOT_EQUALS,
    'VariableGreaterThan': ConditionKind.VAR_GREATER_THAN,
    'IfVariableGreaterThan': ConditionKind.VAR_GREATER_THAN,
    'VariableLessThan': ConditionKind.VAR_LESS_THAN,
    'IfVariableLessThan': ConditionKind.VAR_LESS_THAN,
    'VariableGreaterOrEqual': ConditionKind.VAR_GREATER_OR_EQUAL,
    'VariableLessOrEqual': ConditionKind.VAR_LESS_OR_EQUAL,
    'InputHeld': ConditionKind.INPUT_DOWN,
    'InputKey': ConditionKind.INPUT_DOWN,
}


def _parse_kind(enum_cls, name, aliases):
    if not name:
        return None
    name = name.strip()
    try:
        return enum_cls(name)
    except ValueError:
        pass
    if name in aliases:
        return aliases[name]
    # Editors are not always consistent about casing
    folded = name.lower()
    for member in enum_cls:
        if member.value.lower() == folded:
            return member
    for alias, member in aliases.items():
        if alias.lower() == folded:
            return member
    return None


class Vec2(BaseModel):
    """A 2D vector parameter, given as {x, y} or [x, y]."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0

    @model_validator(mode='before')
    @classmethod
    def _from_sequence(cls, data):
        if isinstance(data, (list, tuple)) and len(data) == 2:
            return {'x': data[0], 'y': data[1]}
        return data


class ParamModel(BaseModel):
    """Base class for per-kind parameter structs."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra='ignore',
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )

    @classmethod
    def coerce(cls, raw: Optional[Mapping[str, Any]]):
        """
        Build typed parameters from a raw map, never failing.

        Null values and fields that do not validate are dropped so they take
        their defaults. Each drop is logged at DEBUG.

        Args:
            raw: Parameter map from the payload (may be None)

        Returns:
            Instance of cls
        """
        data = {k: v for k, v in (raw or {}).items() if v is not None}
        # At most one retry per field
        for _ in range(len(data) + 1):
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                bad = {err['loc'][0] for err in e.errors() if err['loc']}
                bad &= set(data)
                if not bad:
                    break
                for key in sorted(bad, key=str):
                    log.debug("%s: dropping malformed parameter %s=%r", cls.__name__, key, data[key])
                    del data[key]
        log.debug("%s: falling back to defaults", cls.__name__)
        return cls()


# =============================================================================
# Action parameters
# =============================================================================

class EmptyParams(ParamModel):
    """Actions without parameters (Destroy)."""


class LogParams(ParamModel):
    message: str = ""


class MoveParams(ParamModel):
    speed: float = 200.0
    direction: Vec2 = Field(default_factory=Vec2)


class RotateParams(ParamModel):
    speed: float = 90.0


class ChaseTargetParams(ParamModel):
    target_id: str = Field(default="", alias='targetId')
    speed: float = 80.0


class MoveTowardParams(ParamModel):
    x: float = 0.0
    y: float = 0.0
    speed: float = 100.0


class SetVarParams(ParamModel):
    name: str = ""
    operation: str = "Set"
    operand1: Any = None
    operand2: Any = None


class IncrementVarParams(ParamModel):
    name: str = ""
    amount: float = 0.0


class WaitParams(ParamModel):
    seconds: float = 1.0


class EnableParams(ParamModel):
    enabled: bool = True


class ChangeSceneParams(ParamModel):
    scene_name: str = Field(default="", validation_alias=AliasChoices('sceneName', 'sceneId', 'scene_name'))


class HealthParams(ParamModel):
    """TakeDamage and Heal."""
    amount: float = 10.0


class AttackParams(ParamModel):
    range: float = 100.0
    damage: float = 10.0


class FireProjectileParams(ParamModel):
    speed: float = 500.0
    damage: float = 10.0
    target_role: str = Field(default="enemy", alias='targetRole')


class SpawnEntityParams(ParamModel):
    template_id: str = Field(default="", alias='templateId')
    position_mode: str = Field(default="relative", alias='positionMode')
    offset_x: float = Field(default=0.0, alias='offsetX')
    offset_y: float = Field(default=0.0, alias='offsetY')
    x: float = 0.0
    y: float = 0.0


ANIMATION_NAME_KEYS = ('animationName', 'animName', 'animation', 'name', 'anim', 'clip', 'state')


class PlayAnimationParams(ParamModel):
    animation_name: str = Field(default="", validation_alias=AliasChoices(*ANIMATION_NAME_KEYS))


class PulseParams(ParamModel):
    speed: float = 2.0
    min_scale: float = Field(default=0.9, alias='minScale')
    max_scale: float = Field(default=1.1, alias='maxScale')


class PlayParticleParams(ParamModel):
    preset: str = "hit_spark"
    scale: float = 1.0


class ParticleEmitterParams(ParamModel):
    emitter_id: str = Field(default="", alias='emitterId')
    preset: str = "fire"


class PlaySoundParams(ParamModel):
    sound_id: str = Field(default="", alias='soundId')


class EmitSignalParams(ParamModel):
    signal_key: str = Field(default="", alias='signalKey')


class ClearSignalParams(ParamModel):
    key: str = ""


class ShowDialogueParams(ParamModel):
    text: str = ""


class RunModuleParams(ParamModel):
    module_id: str = Field(default="", alias='moduleId')


# =============================================================================
# Condition parameters
# =============================================================================

class VariableCompareParams(ParamModel):
    variable: str = Field(default="", validation_alias=AliasChoices('variable', 'name', 'var'))
    value: Any = None


class ThresholdParams(ParamModel):
    """HpBelow / HpAbove."""
    value: float = 0.0


class RoleParams(ParamModel):
    role: str = ""


class InputParams(ParamModel):
    key: str = ""


class ConditionNodeParams(ParamModel):
    """Parameters of a Condition node that compares a variable inline."""
    variable: str = Field(default="", validation_alias=AliasChoices('variable', 'name', 'var'))
    operator: str = Field(default="==", validation_alias=AliasChoices('operator', 'op'))
    value: Any = None
