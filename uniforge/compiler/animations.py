"""Animation names an entity's logic plays.

The animation pipeline builds one controller state per name, so the scan
mirrors how PlayAnimation reads its parameters.
"""

from typing import Iterator, List, Optional

from uniforge.ir.models import EntityDefinition, NodeKind
from uniforge.ir.params import ActionKind, PlayAnimationParams


def _animation_actions(entity: EntityDefinition) -> Iterator[dict]:
    for event in entity.events:
        if ActionKind.parse(event.action) is ActionKind.PLAY_ANIMATION:
            yield event.params
    for module in entity.modules:
        for node in module.nodes:
            if node.kind == NodeKind.ACTION.value and ActionKind.parse(node.action) is ActionKind.PLAY_ANIMATION:
                yield node.params


def required_animations(entity: EntityDefinition) -> List[str]:
    """Sorted, de-duplicated animation names played by PlayAnimation."""
    names = set()
    for params in _animation_actions(entity):
        name: Optional[str] = PlayAnimationParams.coerce(params).animation_name
        if name:
            names.add(name)
    return sorted(names)
