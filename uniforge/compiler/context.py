"""Per-entity state shared by the lowering tables."""

from typing import Callable, Dict, Optional, Set

from uniforge.compiler import capabilities
from uniforge.compiler.naming import sanitize_identifier
from uniforge.compiler.writer import CodeWriter
from uniforge.config import CompilerConfig
from uniforge.ir.models import EntityDefinition

# Inlines a module at the call site: (module_id, writer) -> None
ModuleRunner = Callable[[str, CodeWriter], None]

VARIABLE_TYPES = ('int', 'float', 'bool', 'string', 'vector2')


class LoweringContext:
    """
    What the lowering tables need to know about the entity being compiled.

    Besides read access to the entity and config, it records facts the
    assembler needs afterwards: extra using directives and whether the
    health field is referenced.
    """

    def __init__(self, entity: EntityDefinition, config: CompilerConfig):
        self.entity = entity
        self.config = config
        self.usings: Set[str] = set()
        self.uses_health = False
        # Sanitized variable name -> declared type ('object' when unrecognized)
        self.variable_types: Dict[str, str] = {}
        # Raw editor name -> sanitized name
        self.variable_names: Dict[str, str] = {}
        self.run_module: Optional[ModuleRunner] = None

        for variable in entity.variables:
            ident = sanitize_identifier(variable.name)
            if ident in self.variable_types:
                continue
            declared = variable.declared_type
            self.variable_types[ident] = declared if declared in VARIABLE_TYPES else 'object'
            self.variable_names.setdefault(variable.name, ident)

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def variable(self, name: Optional[str]) -> str:
        """C# identifier for a variable referenced by editor name."""
        if name in self.variable_names:
            return self.variable_names[name]
        return sanitize_identifier(name)

    def is_variable(self, name: str) -> bool:
        """True if name refers to a declared variable."""
        return name in self.variable_names or name in self.variable_types

    def type_of(self, ident: str) -> Optional[str]:
        """Declared type of a variable identifier, None if undeclared."""
        if ident == self.health_field and ident not in self.variable_types:
            return 'float'
        return self.variable_types.get(ident)

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @property
    def health_field(self) -> str:
        return self.config.health_field

    def health(self) -> str:
        """Reference the health field, marking it as used."""
        self.uses_health = True
        return self.health_field

    @property
    def declares_health(self) -> bool:
        return self.health_field in self.variable_types

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def call(self, capability: str, **args: str) -> str:
        """Render a service capability and record the usings it needs."""
        mode = self.config.service_mode
        if mode == 'static':
            self.usings.add(self.config.runtime_namespace)
            self.usings.update(capabilities.CAPABILITIES[capability].static_usings)
        return capabilities.render(capability, mode, **args)

    def world(self, pixels: float) -> float:
        """Editor pixels to world units."""
        return pixels / self.config.pixels_per_unit
