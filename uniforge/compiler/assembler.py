"""
Code assembler.

Builds one MonoBehaviour source file per entity:

    usings
    class Gen_<id> : MonoBehaviour
        component references, service context, variables, health
        Awake()          caches component references
        Initialize()     receives the service context (context mode)
        Start()          first module with an entry node, then OnStart events
        Update()         OnUpdate events
        OnCollisionEnter2D(...)  OnCollision events
        OnTakeDamage(float)      when the entity has health
        coroutines for events that Wait inside Update/collision hooks

Bodies are lowered before the class header is written, because lowering
decides which usings, fields and receivers the class needs.
"""

from contextlib import ExitStack
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from uniforge.compiler.actions import lower_action
from uniforge.compiler.animations import required_animations
from uniforge.compiler.capabilities import CONTEXT_FIELD
from uniforge.compiler.conditions import combine, lower_condition
from uniforge.compiler.context import LoweringContext
from uniforge.compiler.naming import class_name_for, csharp_string, format_float, parse_number
from uniforge.compiler.traversal import GraphTraverser
from uniforge.compiler.variables import declare_variables
from uniforge.compiler.writer import CodeWriter
from uniforge.config import CompilerConfig
from uniforge.ir.models import EntityDefinition, Event
from uniforge.logging import get_logger

log = get_logger('assembler')

BASE_USINGS = ('UnityEngine', 'System.Collections')

START_TRIGGER = 'OnStart'


@dataclass(frozen=True)
class Hook:
    """A Unity message method events can be attached to."""
    method: str
    signature: str


HOOKS: Dict[str, Hook] = {
    'OnUpdate': Hook('Update', 'void Update()'),
    'OnCollision': Hook('OnCollisionEnter2D', 'void OnCollisionEnter2D(Collision2D collision)'),
}


@dataclass(frozen=True)
class GeneratedArtifact:
    """Source generated for one entity."""
    entity_id: str
    class_name: str
    file_name: str
    source: str
    animations: Tuple[str, ...] = ()


@dataclass
class _Routine:
    name: str
    flag: str
    body: CodeWriter


class ScriptAssembler:
    """Compiles entities into component source files."""

    def __init__(self, config: Optional[CompilerConfig] = None):
        self.config = config or CompilerConfig()

    def assemble(self, entity: EntityDefinition) -> Optional[GeneratedArtifact]:
        """
        Generate the component for one entity.

        Returns:
            GeneratedArtifact, or None if the entity has no modules, events or
            variables
        """
        if not entity.has_logic:
            log.debug("Entity %s has no logic, skipped", entity.id)
            return None

        ctx = LoweringContext(entity, self.config)
        traverser = GraphTraverser(ctx)
        ctx.run_module = traverser.run_module

        start = CodeWriter()
        hooks = {hook.method: CodeWriter() for hook in HOOKS.values()}
        routines: List[_Routine] = []
        unhandled: Dict[str, int] = {}

        start_module = next((m for m in entity.modules if m.entry_node() is not None), None)
        if start_module is not None:
            start.comment(f"Module: {start_module.name or start_module.id}")
            traverser.traverse(start_module, start_module.entry_node(), start)

        for index, event in enumerate(entity.events):
            trigger = event.trigger.strip()
            if trigger != START_TRIGGER and trigger not in HOOKS:
                log.fallback('unhandled_trigger', entity.id, "trigger %r has no lifecycle hook, event skipped", trigger)
                unhandled[trigger] = unhandled.get(trigger, 0) + 1
                continue

            body = CodeWriter()
            lower_action(event.action, event.params, body, ctx)
            if body.is_empty:
                continue

            if trigger == START_TRIGGER:
                target = start
            else:
                hook = HOOKS[trigger]
                target = hooks[hook.method]
                if body.suspends:
                    routine = self._routine(hook, len(routines), body)
                    routines.append(routine)
                    body = CodeWriter()
                    body.line(f"if (!{routine.flag}) StartCoroutine({routine.name}());")

            with ExitStack() as stack:
                for guard in self._guards(event, index, ctx):
                    stack.enter_context(target.block(f"if ({guard})"))
                target.extend(body)

        out = CodeWriter()
        class_name = class_name_for(entity.id, self.config.class_prefix)
        self._header(out, entity, ctx)
        with out.block(f"public class {class_name} : MonoBehaviour"):
            self._fields(out, entity, ctx, routines)
            self._awake(out)
            if self.config.uses_context:
                out.line()
                with out.block(f"public void Initialize({self.config.context_type} context)"):
                    out.line(f"{CONTEXT_FIELD} = context;")
            if not start.is_empty:
                out.line()
                signature = "IEnumerator Start()" if start.suspends else "void Start()"
                with out.block(signature):
                    out.extend(start)
            for hook in HOOKS.values():
                body = hooks[hook.method]
                if not body.is_empty:
                    out.line()
                    with out.block(hook.signature):
                        out.extend(body)
            self._damage_receiver(out, ctx)
            for routine in routines:
                out.line()
                with out.block(f"IEnumerator {routine.name}()"):
                    out.line(f"{routine.flag} = true;")
                    out.extend(routine.body)
                    out.line(f"{routine.flag} = false;")
            if unhandled:
                out.line()
                for trigger, count in unhandled.items():
                    out.comment(f"Trigger '{trigger or '(none)'}' has no lifecycle hook; {count} event(s) not generated")

        source = out.render(self.config.indent) + "\n"
        log.info("Generated %s for entity %s", class_name, entity.id)
        return GeneratedArtifact(
            entity_id=entity.id,
            class_name=class_name,
            file_name=f"{class_name}.cs",
            source=source,
            animations=tuple(required_animations(entity)),
        )

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def _guards(self, event: Event, index: int, ctx: LoweringContext) -> List[str]:
        """Nested if-conditions for an event: its conditions, then its cooldown."""
        guards = []
        if event.conditions:
            guards.append(combine((lower_condition(c, ctx) for c in event.conditions), event.uses_or))
        cooldown = parse_number(event.trigger_params.get('cooldown'))
        if cooldown is not None and cooldown > 0:
            key = csharp_string(f"{ctx.entity.id}:{index}")
            guards.append(ctx.call('cooldown', key=key, seconds=format_float(cooldown)))
        return guards

    @staticmethod
    def _routine(hook: Hook, number: int, body: CodeWriter) -> _Routine:
        name = f"{hook.method}Routine{number}"
        flag = f"_{name[0].lower()}{name[1:]}Running"
        return _Routine(name=name, flag=flag, body=body)

    # -------------------------------------------------------------------------
    # Class parts
    # -------------------------------------------------------------------------

    def _header(self, out: CodeWriter, entity: EntityDefinition, ctx: LoweringContext) -> None:
        label = ' '.join((entity.name or entity.id).split())
        out.line("// <auto-generated>")
        out.comment(f"Generated by uniforge from entity '{label}' ({entity.id}). Changes will be overwritten.")
        out.line("// </auto-generated>")
        usings = set(ctx.usings)
        if self.config.uses_context:
            usings.add(self.config.runtime_namespace)
        for namespace in BASE_USINGS:
            out.line(f"using {namespace};")
        for namespace in sorted(usings - set(BASE_USINGS)):
            out.line(f"using {namespace};")
        out.line()

    def _fields(self, out: CodeWriter, entity: EntityDefinition, ctx: LoweringContext, routines) -> None:
        out.line("private Transform _transform;")
        out.line("private Animator _animator;")
        if self.config.uses_context:
            out.line(f"private {self.config.context_type} {CONTEXT_FIELD};")

        if entity.variables or self._needs_health_field(ctx):
            out.line()
        declare_variables(entity, out)
        if self._needs_health_field(ctx):
            health = format_float(self.config.default_health)
            out.line(f"public float {ctx.health_field} = {health};")

        if routines:
            out.line()
            for routine in routines:
                out.line(f"private bool {routine.flag};")

    @staticmethod
    def _needs_health_field(ctx: LoweringContext) -> bool:
        return ctx.uses_health and not ctx.declares_health

    @staticmethod
    def _awake(out: CodeWriter) -> None:
        out.line()
        with out.block("void Awake()"):
            out.line("_transform = transform;")
            out.line("_animator = GetComponent<Animator>();")

    def _damage_receiver(self, out: CodeWriter, ctx: LoweringContext) -> None:
        """OnTakeDamage(float) so Attack's SendMessage reaches this entity."""
        if not (ctx.uses_health or ctx.declares_health):
            return
        health_type = ctx.type_of(ctx.health_field)
        if health_type == 'int':
            amount = "Mathf.RoundToInt(amount)"
        elif health_type == 'float':
            amount = "amount"
        else:
            log.debug("Health field %s is %s, no damage receiver", ctx.health_field, health_type)
            return
        out.line()
        with out.block("public void OnTakeDamage(float amount)"):
            out.line(f"{ctx.health_field} -= {amount};")
