"""Lowering of behavior graphs to Unity C# components."""

from uniforge.compiler.animations import required_animations
from uniforge.compiler.assembler import GeneratedArtifact, ScriptAssembler
from uniforge.compiler.context import LoweringContext
from uniforge.compiler.traversal import GraphTraverser
from uniforge.compiler.writer import CodeWriter

__all__ = [
    'CodeWriter',
    'GeneratedArtifact',
    'GraphTraverser',
    'LoweringContext',
    'ScriptAssembler',
    'required_animations',
]
