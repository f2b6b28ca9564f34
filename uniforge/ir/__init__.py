"""Intermediate representation of the editor's behavior graph."""

from uniforge.ir.models import (
    Condition,
    Edge,
    EntityDefinition,
    Event,
    Module,
    Node,
    NodeKind,
    ProjectData,
    Scene,
    Variable,
)
from uniforge.ir.params import ActionKind, ConditionKind, ParamModel, Vec2

__all__ = [
    'ActionKind',
    'Condition',
    'ConditionKind',
    'Edge',
    'EntityDefinition',
    'Event',
    'Module',
    'Node',
    'NodeKind',
    'ParamModel',
    'ProjectData',
    'Scene',
    'Variable',
    'Vec2',
]
