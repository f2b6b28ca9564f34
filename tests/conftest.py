"""Shared fixtures for compiler tests."""

import copy

import pytest

from uniforge import logging as uniforge_logging
from uniforge.compiler.context import LoweringContext
from uniforge.compiler.traversal import GraphTraverser
from uniforge.compiler.writer import CodeWriter
from uniforge.config import CompilerConfig
from uniforge.ir.models import EntityDefinition
from uniforge.logging import LogSink, register_sink


@pytest.fixture(autouse=True)
def isolated_logging():
    """Restore global logging config and sinks after each test."""
    saved = copy.deepcopy(uniforge_logging._config)
    yield
    uniforge_logging.close_all_sinks()
    uniforge_logging._config.clear()
    uniforge_logging._config.update(saved)


class RecordingSink(LogSink):
    """Keeps emitted records in memory."""

    def __init__(self):
        self.records = []

    def emit(self, stream, record):
        self.records.append(record)

    def close(self):
        pass


@pytest.fixture
def compiler_records():
    """Records emitted on the compiler stream during the test."""
    sink = RecordingSink()
    register_sink('compiler', sink)
    return sink.records


@pytest.fixture
def config():
    return CompilerConfig()


@pytest.fixture
def static_config():
    return CompilerConfig(service_mode='static')


@pytest.fixture
def make_entity():
    """Factory for entities from payload-shaped keyword arguments."""
    def factory(entity_id="e1", **fields):
        return EntityDefinition.model_validate({'id': entity_id, 'name': 'Hero', **fields})
    return factory


@pytest.fixture
def make_ctx(make_entity, config):
    """Factory for a LoweringContext wired to a traverser, like the assembler does."""
    def factory(variables=None, modules=None, cfg=None):
        entity = make_entity(variables=variables or [], modules=modules or [])
        ctx = LoweringContext(entity, cfg or config)
        ctx.run_module = GraphTraverser(ctx).run_module
        return ctx
    return factory


@pytest.fixture
def writer():
    return CodeWriter()
