"""
Uniforge behavior compiler

Lowers the visual editor's behavior graphs (variables, trigger/condition/
action events and node-graph logic modules) into Unity C# MonoBehaviour
components, one per entity.

    from uniforge import load_payload, compile_project, write_artifacts

    project = load_payload(text)
    artifacts = compile_project(project)
    write_artifacts(artifacts, 'Assets/Uniforge_FastTrack/Generated')
"""

from uniforge.compiler import GeneratedArtifact, ScriptAssembler, required_animations
from uniforge.config import CompilerConfig, ConfigError, load_config
from uniforge.importer import (
    PayloadError,
    compile_project,
    load_payload,
    load_payload_file,
    parse_payload,
    write_artifacts,
    write_manifest,
)
from uniforge.ir import ProjectData

__version__ = '0.3.0'

__all__ = [
    'CompilerConfig',
    'ConfigError',
    'GeneratedArtifact',
    'PayloadError',
    'ProjectData',
    'ScriptAssembler',
    'compile_project',
    'load_config',
    'load_payload',
    'load_payload_file',
    'parse_payload',
    'required_animations',
    'write_artifacts',
    'write_manifest',
]
