"""Tests for the action lowering table (uniforge/compiler/actions.py)."""

import pytest

from uniforge.compiler.actions import constant_value, lower_action, render_operand


VARIABLES = [
    {'name': 'score', 'type': 'int', 'value': 0},
    {'name': 'speed', 'type': 'float', 'value': 1.5},
    {'name': 'timer', 'type': 'float'},
    {'name': 'player name', 'type': 'string'},
]


def lower(ctx, writer, action, **params):
    lower_action(action, params, writer, ctx)
    return writer.lines()


class TestBasicActions:

    def test_log(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Log', message='hi "there"') == ['Debug.Log("hi \\"there\\"");']

    def test_empty_action_is_noop(self, make_ctx, writer):
        lower_action('', {}, writer, make_ctx())
        lower_action(None, None, writer, make_ctx())
        assert writer.is_empty

    def test_unknown_action_comment(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Teleport') == ['// Unknown action: Teleport']

    def test_action_name_case_insensitive(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'destroy') == ['Destroy(gameObject);']

    def test_enable(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Enable', enabled='false') == ['gameObject.SetActive(false);']


class TestMovement:
    """Pixel units are divided by pixels_per_unit and Y is flipped."""

    def test_move(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'Move', speed=200, direction={'x': 1, 'y': 0})
        assert lines == ['_transform.Translate(new Vector3(1f, 0f, 0).normalized * 2f * Time.deltaTime);']

    def test_move_flips_y(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'Move', speed=100, direction=[0, 1])
        assert lines == ['_transform.Translate(new Vector3(0f, -1f, 0).normalized * 1f * Time.deltaTime);']

    def test_rotate(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Rotate', speed=45) == ['_transform.Rotate(0, 0, 45f * Time.deltaTime);']

    def test_chase_target(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'ChaseTarget', targetId='player') == [
            '// ChaseTarget: player',
            '{',
            '    var target = GameObject.Find("player");',
            '    if (target != null)',
            '    {',
            '        Vector3 dir = (target.transform.position - _transform.position).normalized;',
            '        _transform.Translate(dir * 0.8f * Time.deltaTime);',
            '    }',
            '}',
        ]

    def test_move_toward(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'MoveToward', x=100, y=50) == [
            '// MoveToward: (100, 50)',
            '{',
            '    Vector3 targetPos = new Vector3(1f, -0.5f, 0);',
            '    Vector3 direction = (targetPos - _transform.position).normalized;',
            '    if (Vector3.Distance(_transform.position, targetPos) > 0.05f)',
            '    {',
            '        _transform.Translate(direction * 1f * Time.deltaTime);',
            '    }',
            '}',
        ]

    def test_scoped_locals_can_repeat(self, make_ctx, writer):
        """Two MoveToward actions in one body each get their own scope."""
        ctx = make_ctx()
        lower_action('MoveToward', {'x': 1}, writer, ctx)
        lower_action('MoveToward', {'x': 2}, writer, ctx)
        assert [line.strip() for line in writer.lines()].count('{') == 4


class TestSetVar:

    @pytest.fixture
    def ctx(self, make_ctx):
        return make_ctx(variables=VARIABLES)

    def test_set_literal(self, ctx, writer):
        assert lower(ctx, writer, 'SetVar', name='score', operand1=5) == ['score = 5;']

    def test_set_float_from_int(self, ctx, writer):
        assert lower(ctx, writer, 'SetVar', name='speed', operand1=3) == ['speed = 3f;']

    def test_add_variable_reference(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='score', operation='Add',
                      operand1={'variable': 'score'}, operand2=1)
        assert lines == ['score = score + 1;']

    def test_string_naming_variable_is_reference(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='score', operation='Multiply', operand1='score', operand2='2')
        assert lines == ['score = score * 2;']

    def test_typed_variable_operand(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='speed', operation='Sub',
                      operand1={'type': 'variable', 'value': 'timer'}, operand2=0.5)
        assert lines == ['speed = timer - 0.5f;']

    def test_divide_guarded(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='speed', operation='Divide', operand1='speed', operand2=2)
        assert lines == ['speed = 2f != 0 ? speed / 2f : 0f;']

    def test_divide_by_literal_zero(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='score', operation='Divide', operand1='score', operand2=0)
        assert lines == ['score = 0;  // divide by zero']

    def test_divide_int_by_fraction_truncating_to_zero(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='score', operation='Divide', operand1='score', operand2=0.4)
        assert lines == ['score = 0;  // divide by zero']

    def test_divide_int_by_fraction_above_one(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='score', operation='Divide', operand1='score', operand2=1.5)
        assert lines == ['score = (int)1.5f != 0 ? score / (int)1.5f : 0;']

    @pytest.mark.parametrize("operand,value", [
        ('2f', 2.0),
        ('(int)0.4f', 0.0),
        ('(int)-2.7f', -2.0),
        ('0', 0.0),
        ('speed', None),
        ('"0"', None),
    ])
    def test_constant_value(self, operand, value):
        assert constant_value(operand) == value

    def test_string_target_quotes(self, ctx, writer):
        lines = lower(ctx, writer, 'SetVar', name='player name', operand1='bob')
        assert lines == ['player_name = "bob";']

    def test_unknown_operation_is_set(self, ctx, writer):
        assert lower(ctx, writer, 'SetVar', name='score', operation='Modulo', operand1=4) == ['score = 4;']

    def test_missing_operand_uses_default(self, ctx, writer):
        assert lower(ctx, writer, 'SetVar', name='speed') == ['speed = 0f;']

    def test_no_name(self, ctx, writer):
        assert lower(ctx, writer, 'SetVar', operand1=1) == ['// SetVar: no variable name']

    def test_render_operand_bool(self, ctx):
        assert render_operand(True, ctx) == 'true'
        assert render_operand('False', ctx) == 'false'

    def test_render_operand_plain_string(self, ctx):
        assert render_operand('hello', ctx) == '"hello"'


class TestIncrementVar:

    def test_zero_amount_adds_delta_time(self, make_ctx, writer):
        ctx = make_ctx(variables=VARIABLES)
        assert lower(ctx, writer, 'IncrementVar', name='timer') == ['timer += Time.deltaTime;']

    def test_zero_amount_on_int_casts_delta_time(self, make_ctx, writer):
        ctx = make_ctx(variables=VARIABLES)
        assert lower(ctx, writer, 'IncrementVar', name='score') == ['score += (int)Time.deltaTime;']

    def test_int_amount(self, make_ctx, writer):
        ctx = make_ctx(variables=VARIABLES)
        assert lower(ctx, writer, 'IncrementVar', name='score', amount=2) == ['score += 2;']

    def test_undeclared_is_float(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'IncrementVar', name='x', amount=2) == ['x += 2f;']


class TestFlowControl:

    def test_wait_suspends(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Wait', seconds=1.5) == ['yield return new WaitForSeconds(1.5f);']
        assert writer.suspends

    def test_change_scene_context(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'ChangeScene', sceneId='Level2') == ['_context?.Scenes.Load("Level2");']

    def test_change_scene_static_adds_using(self, make_ctx, writer, static_config):
        ctx = make_ctx(cfg=static_config)
        assert lower(ctx, writer, 'ChangeScene', sceneName='Level2') == ['SceneManager.LoadScene("Level2");']
        assert 'UnityEngine.SceneManagement' in ctx.usings
        assert static_config.runtime_namespace in ctx.usings

    def test_change_scene_without_scene(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'ChangeScene') == ['// ChangeScene: no scene given']


class TestRunModule:

    MODULES = [
        {
            'id': 'm2',
            'name': 'Inner',
            'nodes': [
                {'id': 'n1', 'kind': 'Entry'},
                {'id': 'n2', 'kind': 'Action', 'action': 'Log', 'params': {'message': 'inner'}},
            ],
            'edges': [{'fromNodeId': 'n1', 'fromPort': 'out', 'toNodeId': 'n2'}],
        },
        {'id': 'empty', 'nodes': [{'id': 'a', 'kind': 'Action', 'action': 'Destroy'}]},
    ]

    def test_inlines_module(self, make_ctx, writer):
        ctx = make_ctx(modules=self.MODULES)
        assert lower(ctx, writer, 'RunModule', moduleId='m2') == ['// RunModule: m2', 'Debug.Log("inner");']

    def test_missing_module(self, make_ctx, writer):
        ctx = make_ctx(modules=self.MODULES)
        assert lower(ctx, writer, 'RunModule', moduleId='nope') == [
            '// RunModule: nope',
            '// Warning: Module nope not found',
        ]

    def test_module_without_entry(self, make_ctx, writer):
        ctx = make_ctx(modules=self.MODULES)
        assert lower(ctx, writer, 'RunModule', moduleId='empty') == [
            '// RunModule: empty',
            '// Warning: Module empty has no entry node',
        ]

    def test_outside_traversal(self, make_ctx, writer):
        ctx = make_ctx(modules=self.MODULES)
        ctx.run_module = None
        assert lower(ctx, writer, 'RunModule', moduleId='m2') == ['// RunModule: m2']


class TestCombat:

    def test_take_damage_marks_health(self, make_ctx, writer):
        ctx = make_ctx()
        assert lower(ctx, writer, 'TakeDamage', amount=5) == ['// TakeDamage: 5', 'hp -= 5f;']
        assert ctx.uses_health

    def test_heal_int_health(self, make_ctx, writer):
        ctx = make_ctx(variables=[{'name': 'hp', 'type': 'int', 'value': 3}])
        assert lower(ctx, writer, 'Heal', amount=5) == ['// Heal: 5', 'hp += 5;']

    def test_attack(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Attack') == [
            '// Attack: range=100, damage=10',
            '{',
            '    var hits = Physics2D.OverlapCircleAll(_transform.position, 1f);',
            '    foreach (var hit in hits)',
            '    {',
            '        if (hit.gameObject != gameObject)',
            '            hit.SendMessage("OnTakeDamage", 10f, SendMessageOptions.DontRequireReceiver);',
            '    }',
            '}',
        ]

    def test_fire_projectile(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'FireProjectile') == [
            '_context?.Projectiles.Fire(_transform.position, "enemy", 5f, 10f);',
        ]

    def test_fire_projectile_static(self, make_ctx, writer, static_config):
        lines = lower(make_ctx(cfg=static_config), writer, 'FireProjectile', targetRole='player', speed=250)
        assert lines == ['ProjectileManager.FireStatic(_transform.position, "player", 2.5f, 10f);']


class TestSpawnEntity:

    def test_relative(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'SpawnEntity', templateId='coin', offsetX=50, offsetY=20)
        assert lines == ['_context?.Prefabs.Spawn("coin", _transform.position + new Vector3(0.5f, -0.2f, 0));']

    def test_absolute_static(self, make_ctx, writer, static_config):
        lines = lower(make_ctx(cfg=static_config), writer, 'SpawnEntity',
                      templateId='coin', positionMode='absolute', x=100, y=200)
        assert lines == ['PrefabRegistry.SpawnStatic("coin", new Vector3(1f, -2f, 0));']

    def test_self_template(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'SpawnEntity', templateId='__self__')
        assert lines == ['_context?.Prefabs.SpawnSelf(gameObject, _transform.position + new Vector3(0f, 0f, 0));']

    def test_no_template(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'SpawnEntity') == ['// SpawnEntity: no template given']


class TestVisualAndAudio:

    def test_play_animation(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'PlayAnimation', animName='Run')
        assert lines == ['if (_animator != null) _animator.Play("Run");']

    def test_play_animation_without_name(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'PlayAnimation') == ['// PlayAnimation: no animation given']

    def test_pulse(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'Pulse') == [
            '{',
            '    float pulse = Mathf.Lerp(0.9f, 1.1f, (Mathf.Sin(Time.time * 2f) + 1f) / 2f);',
            '    _transform.localScale = new Vector3(pulse, pulse, 1f);',
            '}',
        ]

    def test_play_particle(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'PlayParticle')
        assert lines == ['_context?.Particles.Play("hit_spark", _transform.position, 1f);']

    def test_play_sound(self, make_ctx, writer, static_config):
        assert lower(make_ctx(), writer, 'PlaySound', soundId='jump') == ['_context?.Audio.Play("jump");']
        static_writer = type(writer)()
        assert lower(make_ctx(cfg=static_config), static_writer, 'PlaySound', soundId='jump') == [
            'AudioManager.PlayStatic("jump");',
        ]

    def test_emitters_have_no_runtime(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'StartParticleEmitter', emitterId='smoke')
        assert lines == ['// StartParticleEmitter: smoke (fire) has no runtime support']


class TestSignalsAndDialogue:

    def test_emit_signal(self, make_ctx, writer):
        assert lower(make_ctx(), writer, 'EmitEventSignal', signalKey='door') == ['_context?.Events.Emit("door");']

    def test_clear_signal_static(self, make_ctx, writer, static_config):
        assert lower(make_ctx(cfg=static_config), writer, 'ClearSignal', key='door') == ['EventBus.Clear("door");']

    def test_show_dialogue_escapes(self, make_ctx, writer):
        lines = lower(make_ctx(), writer, 'ShowDialogue', text='Hello\n"you"')
        assert lines == ['_context?.Dialogue.Show("Hello\\n\\"you\\"");']
