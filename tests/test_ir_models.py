"""Tests for the IR models (uniforge/ir/models.py)."""

import pytest
from pydantic import ValidationError

from uniforge.ir.models import EntityDefinition, Event, Module, NodeKind, ProjectData


PROJECT = {
    'formatVersion': 1,
    'activeSceneId': 's1',
    'scenes': [
        {
            'sceneId': 's1',
            'name': 'Main',
            'entities': [
                {
                    'id': 'player-1',
                    'name': 'Player',
                    'variables': [{'id': 'v1', 'name': 'score', 'type': 'int', 'value': 0}],
                    'events': [
                        {
                            'trigger': 'OnUpdate',
                            'conditionLogic': 'OR',
                            'conditions': [{'type': 'InputDown', 'key': 'KeyA'}],
                            'action': 'Move',
                            'params': {'speed': 100},
                            'triggerParams': {'cooldown': 0.5},
                        },
                    ],
                    'modules': [
                        {
                            'id': 'm1',
                            'name': 'Intro',
                            'entryNodeId': 'n1',
                            'nodes': [
                                {'id': 'n1', 'kind': 'Entry'},
                                {'id': 'n2', 'kind': 'Action', 'action': 'Log', 'params': {'message': 'hi'}},
                            ],
                            'edges': [
                                {'id': 'e1', 'fromNodeId': 'n1', 'fromPort': 'out', 'toNodeId': 'n2', 'toPort': 'in'},
                            ],
                        },
                    ],
                },
            ],
        },
        {'id': 's2', 'entities': [{'id': 'enemy-1'}]},
    ],
}


class TestProjectData:
    """Payload envelope parsing."""

    def test_camel_case_aliases(self):
        """Wire names map onto snake_case fields."""
        project = ProjectData.model_validate(PROJECT)
        assert project.format_version == 1
        assert project.active_scene_id == 's1'
        entity = project.scenes[0].entities[0]
        assert entity.events[0].condition_logic == 'OR'
        assert entity.events[0].trigger_params == {'cooldown': 0.5}
        module = entity.modules[0]
        assert module.entry_node_id == 'n1'
        assert module.edges[0].from_node_id == 'n1'
        assert module.edges[0].to_port == 'in'

    def test_iter_entities_in_source_order(self):
        """Entities of all scenes come out in order."""
        project = ProjectData.model_validate(PROJECT)
        assert [e.id for e in project.iter_entities()] == ['player-1', 'enemy-1']

    def test_scene_key_prefers_scene_id(self):
        project = ProjectData.model_validate(PROJECT)
        assert project.scenes[0].key == 's1'
        assert project.scenes[1].key == 's2'

    def test_from_payload_entity_list(self):
        """A bare {entities: [...]} payload becomes one scene."""
        project = ProjectData.from_payload({'entities': [{'id': 'a'}, {'id': 'b'}]})
        assert len(project.scenes) == 1
        assert [e.id for e in project.iter_entities()] == ['a', 'b']

    def test_from_payload_single_entity(self):
        """A single entity object is accepted."""
        project = ProjectData.from_payload({'id': 'solo', 'events': []})
        assert [e.id for e in project.iter_entities()] == ['solo']

    def test_null_lists_are_empty(self):
        """Null lists read as empty lists."""
        project = ProjectData.model_validate({
            'scenes': [{'entities': [{'id': 'x', 'variables': None, 'events': None, 'modules': None}]}],
            'assets': None,
        })
        entity = project.scenes[0].entities[0]
        assert entity.variables == []
        assert entity.events == []
        assert entity.modules == []
        assert project.assets == []

    def test_unknown_keys_ignored(self):
        project = ProjectData.model_validate({'scenes': [], 'editorState': {'zoom': 2}})
        assert project.scenes == []

    def test_numeric_entity_id_coerced(self):
        entity = EntityDefinition.model_validate({'id': 42})
        assert entity.id == '42'

    def test_missing_entity_id_rejected(self):
        with pytest.raises(ValidationError):
            EntityDefinition.model_validate({'name': 'nameless'})


class TestEntity:
    """EntityDefinition helpers."""

    def test_has_logic(self):
        assert not EntityDefinition(id='a').has_logic
        assert EntityDefinition.model_validate({'id': 'a', 'variables': [{'name': 'x'}]}).has_logic
        assert EntityDefinition.model_validate({'id': 'a', 'events': [{'trigger': 'OnStart'}]}).has_logic

    def test_module_lookup(self):
        entity = EntityDefinition.model_validate({'id': 'a', 'modules': [{'id': 'm1'}, {'id': 'm2'}]})
        assert entity.module('m2').id == 'm2'
        assert entity.module('missing') is None

    def test_declared_type_normalized(self):
        entity = EntityDefinition.model_validate({'id': 'a', 'variables': [{'name': 'x', 'type': ' Float '}]})
        assert entity.variables[0].declared_type == 'float'


class TestModule:
    """Module graph indexing."""

    def _module(self, **fields):
        base = {
            'id': 'm',
            'nodes': [
                {'id': 'start', 'kind': 'Entry'},
                {'id': 'a', 'kind': 'Action', 'action': 'Log'},
                {'id': 'other', 'kind': 'Entry'},
            ],
            'edges': [
                {'fromNodeId': 'start', 'fromPort': 'out', 'toNodeId': 'a'},
                {'fromNodeId': 'start', 'fromPort': 'alt', 'toNodeId': 'other'},
                {'fromNodeId': 'a', 'fromPort': 'out', 'toNodeId': 'ghost'},
            ],
        }
        base.update(fields)
        return Module.model_validate(base)

    def test_entry_node_defaults_to_first_entry(self):
        assert self._module().entry_node().id == 'start'

    def test_entry_node_id_wins(self):
        assert self._module(entryNodeId='other').entry_node().id == 'other'

    def test_unknown_entry_node_id_falls_back(self):
        assert self._module(entryNodeId='nope').entry_node().id == 'start'

    def test_no_entry(self):
        module = Module.model_validate({'id': 'm', 'nodes': [{'id': 'a', 'kind': 'Action'}]})
        assert module.entry_node() is None

    def test_outgoing_in_source_order(self):
        ports = [e.from_port for e in self._module().outgoing('start')]
        assert ports == ['out', 'alt']

    def test_dangling_edge_has_no_target(self):
        module = self._module()
        edge = module.outgoing('a')[0]
        assert module.node(edge.to_node_id) is None

    def test_node_kind_values(self):
        assert NodeKind.ENTRY.value == 'Entry'
        assert self._module().node('a').kind == NodeKind.ACTION.value


class TestEvent:
    """Event combinator."""

    @pytest.mark.parametrize("logic,expected", [
        ('OR', True),
        ('or', True),
        ('AND', False),
        (None, False),
        ('', False),
    ])
    def test_uses_or(self, logic, expected):
        assert Event(conditionLogic=logic).uses_or is expected
