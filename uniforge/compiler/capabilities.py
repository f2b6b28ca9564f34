"""
Runtime services the generated components call into.

Each capability has two renderings:

- context: through the IUniforgeContext handed to Initialize(), e.g.
  ``_context?.Audio.Play("hit")``. Null-safe, so a component runs (silently)
  before it has been initialized.
- static: the legacy singleton managers, e.g. ``AudioManager.PlayStatic("hit")``.

Only call signatures live here; the services themselves are part of the
runtime package shipped with the Unity project.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet

CONTEXT_FIELD = "_context"


@dataclass(frozen=True)
class Capability:
    """Call templates for one service operation.

    Templates use str.format placeholders; ``{ctx}`` is the context field.
    """
    name: str
    context: str
    static: str
    static_usings: FrozenSet[str] = field(default_factory=frozenset)


CAPABILITIES: Dict[str, Capability] = {c.name: c for c in (
    Capability(
        'spawn',
        context="{ctx}?.Prefabs.Spawn({template}, {position})",
        static="PrefabRegistry.SpawnStatic({template}, {position})",
    ),
    Capability(
        'spawn_self',
        context="{ctx}?.Prefabs.SpawnSelf(gameObject, {position})",
        static="PrefabRegistry.SpawnSelfStatic(gameObject, {position})",
    ),
    Capability(
        'play_particle',
        context="{ctx}?.Particles.Play({preset}, {position}, {scale})",
        static="ParticleManager.PlayStatic({preset}, {position}, {scale})",
    ),
    Capability(
        'play_sound',
        context="{ctx}?.Audio.Play({sound})",
        static="AudioManager.PlayStatic({sound})",
    ),
    Capability(
        'fire_projectile',
        context="{ctx}?.Projectiles.Fire({origin}, {role}, {speed}, {damage})",
        static="ProjectileManager.FireStatic({origin}, {role}, {speed}, {damage})",
    ),
    Capability(
        'emit_signal',
        context="{ctx}?.Events.Emit({key})",
        static="EventBus.Emit({key})",
    ),
    Capability(
        'clear_signal',
        context="{ctx}?.Events.Clear({key})",
        static="EventBus.Clear({key})",
    ),
    Capability(
        'show_dialogue',
        context="{ctx}?.Dialogue.Show({text})",
        static="DialogueManager.Show({text})",
    ),
    Capability(
        'change_scene',
        context="{ctx}?.Scenes.Load({scene})",
        static="SceneManager.LoadScene({scene})",
        static_usings=frozenset({'UnityEngine.SceneManagement'}),
    ),
    # Expression, not a statement: true when the gate opens. Used as a whole if-condition
    Capability(
        'cooldown',
        context="{ctx} == null || {ctx}.Cooldowns.TryUse({key}, {seconds})",
        static="CooldownManager.TryUse({key}, {seconds})",
    ),
)}


def render(name: str, mode: str, **args: str) -> str:
    """
    Render a capability call.

    Args:
        name: Capability name (key of CAPABILITIES)
        mode: 'context' or 'static'
        **args: Already-rendered C# argument expressions

    Returns:
        C# expression (no trailing semicolon)
    """
    capability = CAPABILITIES[name]
    template = capability.context if mode == 'context' else capability.static
    return template.format(ctx=CONTEXT_FIELD, **args)
