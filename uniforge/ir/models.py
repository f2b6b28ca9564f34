"""
Pydantic models for the editor's behavior graph.

These models are the intermediate representation (IR) consumed by the
compiler:
- ProjectData / Scene: the payload envelope
- EntityDefinition: one game object with its variables, events and modules
- Event / Condition: trigger -> (conditions) -> action rules
- Module / Node / Edge: visual logic graphs

Field names are snake_case in Python and camelCase on the wire (aliases),
so payloads validate directly with ``ProjectData.model_validate(data)``.

Parameter maps (``params``) are deliberately left as plain dicts. They are
interpreted only at the lowering boundary, see uniforge.ir.params.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class NodeKind(str, Enum):
    """Kinds of nodes in a logic module."""
    ENTRY = "Entry"
    ACTION = "Action"
    CONDITION = "Condition"
    STOP = "Stop"


class IRModel(BaseModel):
    """Base for IR models: immutable, alias-aware, tolerant of unknown keys."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra='ignore',
        coerce_numbers_to_str=True,
    )


def _empty_if_none(value: Any, empty: Any) -> Any:
    return empty if value is None else value


class Variable(IRModel):
    """A per-entity variable, declared as a field on the generated component."""
    id: Optional[str] = None
    name: str = ""
    type: str = ""
    value: Any = None

    @field_validator('name', 'type', mode='before')
    @classmethod
    def _none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @property
    def declared_type(self) -> str:
        """Declared type, normalized to lower case."""
        return self.type.strip().lower()


class Condition(IRModel):
    """A single condition guarding an event."""
    type: str = ""
    key: Optional[str] = None  # Input conditions carry the key here
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('type', mode='before')
    @classmethod
    def _type_none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('params', mode='before')
    @classmethod
    def _params_none_to_empty(cls, v):
        return _empty_if_none(v, {})


class Event(IRModel):
    """A trigger -> action rule, optionally guarded by conditions."""
    id: Optional[str] = None
    trigger: str = ""
    trigger_params: Dict[str, Any] = Field(default_factory=dict, alias='triggerParams')
    condition_logic: Optional[str] = Field(default=None, alias='conditionLogic')
    conditions: List[Condition] = Field(default_factory=list)
    action: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('trigger', mode='before')
    @classmethod
    def _trigger_none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('trigger_params', 'params', mode='before')
    @classmethod
    def _dict_none_to_empty(cls, v):
        return _empty_if_none(v, {})

    @field_validator('conditions', mode='before')
    @classmethod
    def _list_none_to_empty(cls, v):
        return _empty_if_none(v, [])

    @property
    def uses_or(self) -> bool:
        """True when conditions combine with OR (case-insensitive 'OR')."""
        return (self.condition_logic or "").strip().upper() == "OR"


class Node(IRModel):
    """A node in a logic module."""
    id: str
    kind: str = ""
    action: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('kind', mode='before')
    @classmethod
    def _kind_none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('params', mode='before')
    @classmethod
    def _params_none_to_empty(cls, v):
        return _empty_if_none(v, {})


class Edge(IRModel):
    """A directed connection between two node ports.

    Endpoints are not checked against the module's nodes; an edge pointing
    at a missing node simply has no successor.
    """
    id: Optional[str] = None
    from_node_id: Optional[str] = Field(default=None, alias='fromNodeId')
    from_port: Optional[str] = Field(default=None, alias='fromPort')
    to_node_id: Optional[str] = Field(default=None, alias='toNodeId')
    to_port: Optional[str] = Field(default=None, alias='toPort')


class Module(IRModel):
    """A logic graph owned by an entity.

    Lookups by node id and outgoing edges are indexed once after validation.
    When several nodes share an id the first one wins.
    """
    id: str = ""
    name: str = ""
    entry_node_id: Optional[str] = Field(default=None, alias='entryNodeId')
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    _nodes_by_id: Dict[str, Node] = PrivateAttr(default_factory=dict)
    _edges_by_source: Dict[str, List[Edge]] = PrivateAttr(default_factory=dict)

    @field_validator('id', 'name', mode='before')
    @classmethod
    def _none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('nodes', 'edges', mode='before')
    @classmethod
    def _list_none_to_empty(cls, v):
        return _empty_if_none(v, [])

    def model_post_init(self, __context: Any) -> None:
        for node in self.nodes:
            self._nodes_by_id.setdefault(node.id, node)
        for edge in self.edges:
            if edge.from_node_id is not None:
                self._edges_by_source.setdefault(edge.from_node_id, []).append(edge)

    def node(self, node_id: Optional[str]) -> Optional[Node]:
        """Look up a node by id."""
        if node_id is None:
            return None
        return self._nodes_by_id.get(node_id)

    def outgoing(self, node_id: str) -> List[Edge]:
        """Edges leaving a node, in source order."""
        return self._edges_by_source.get(node_id, [])

    def entry_node(self) -> Optional[Node]:
        """Resolve the node a traversal starts from.

        The node named by entry_node_id wins; otherwise the first node of
        kind Entry. None if the module has neither.
        """
        explicit = self.node(self.entry_node_id)
        if explicit is not None:
            return explicit
        for node in self.nodes:
            if node.kind == NodeKind.ENTRY.value:
                return node
        return None


class EntityDefinition(IRModel):
    """One entity of a scene and the logic attached to it."""
    id: str
    name: str = ""
    type: Optional[str] = None
    texture: Optional[str] = None
    role: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    # Transform is carried for the scene builder; the compiler ignores it
    x: Any = None
    y: Any = None
    rotation: Any = None
    scale_x: Any = Field(default=None, alias='scaleX')
    scale_y: Any = Field(default=None, alias='scaleY')
    variables: List[Variable] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    modules: List[Module] = Field(default_factory=list)

    @field_validator('name', mode='before')
    @classmethod
    def _name_none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('tags', 'variables', 'events', 'modules', mode='before')
    @classmethod
    def _list_none_to_empty(cls, v):
        return _empty_if_none(v, [])

    @property
    def has_logic(self) -> bool:
        """True if the entity has anything to generate code for."""
        return bool(self.modules or self.events or self.variables)

    def module(self, module_id: str) -> Optional[Module]:
        """Find a module by id (first match)."""
        for module in self.modules:
            if module.id == module_id:
                return module
        return None


class Scene(IRModel):
    """A scene and its entities."""
    id: Optional[str] = None
    scene_id: Optional[str] = Field(default=None, alias='sceneId')
    name: str = ""
    entities: List[EntityDefinition] = Field(default_factory=list)

    @field_validator('name', mode='before')
    @classmethod
    def _name_none_to_empty(cls, v):
        return _empty_if_none(v, "")

    @field_validator('entities', mode='before')
    @classmethod
    def _list_none_to_empty(cls, v):
        return _empty_if_none(v, [])

    @property
    def key(self) -> Optional[str]:
        """The scene identifier (sceneId takes precedence over id)."""
        return self.scene_id or self.id


class ProjectData(IRModel):
    """Complete editor payload."""
    format_version: Optional[int] = Field(default=None, alias='formatVersion')
    active_scene_id: Optional[str] = Field(default=None, alias='activeSceneId')
    project_type: Optional[str] = Field(default=None, alias='projectType')
    scenes: List[Scene] = Field(default_factory=list)
    assets: List[Any] = Field(default_factory=list)

    @field_validator('scenes', 'assets', mode='before')
    @classmethod
    def _list_none_to_empty(cls, v):
        return _empty_if_none(v, [])

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'ProjectData':
        """Build a project from any of the accepted payload shapes.

        Accepts a full project ({scenes: [...]}), a bare entity list
        ({entities: [...]}) or a single entity object ({id: ..., ...}).
        The latter two are wrapped in one unnamed scene.
        """
        if 'scenes' in data:
            return cls.model_validate(data)
        if 'entities' in data:
            return cls(scenes=[Scene.model_validate({'entities': data['entities']})])
        return cls(scenes=[Scene(entities=[EntityDefinition.model_validate(data)])])

    def iter_entities(self) -> Iterator[EntityDefinition]:
        """All entities of all scenes, in source order."""
        for scene in self.scenes:
            yield from scene.entities
