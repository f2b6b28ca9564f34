"""
Payload import: parse, validate, compile, write.

    project = load_payload(text)               # PayloadError if unusable
    artifacts = compile_project(project, config)
    write_artifacts(artifacts, config.output_dir)
    write_manifest(artifacts, out_dir / 'uniforge_manifest.json')

An unparsable or structurally invalid payload is the only fatal case; it
raises before any entity is compiled. Everything below the structure
(unknown actions, bad parameters, dangling edges) degrades inside the
compiler instead.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from uniforge.compiler.assembler import GeneratedArtifact, ScriptAssembler
from uniforge.config import CompilerConfig
from uniforge.ir.models import ProjectData
from uniforge.logging import emit_record, get_logger
from uniforge.schema import validate_project_payload
from uniforge.yaml import LoadError, SchemaValidationError, loads

log = get_logger('importer')


MANIFEST_VERSION = 1


class PayloadError(Exception):
    """Raised when a payload cannot be parsed or has an invalid structure."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


def _pydantic_errors(error: ValidationError) -> List[str]:
    messages = []
    for err in error.errors():
        path = '.'.join(str(p) for p in err['loc']) or '<root>'
        messages.append(f"{path}: {err['msg']}")
    return messages


def parse_payload(data: Any, source: Optional[str] = None) -> ProjectData:
    """
    Validate an already-parsed payload and build the IR.

    Args:
        data: Parsed JSON/YAML document
        source: Optional origin (file name) for error messages

    Raises:
        PayloadError: If the structure is invalid
    """
    where = f" in {source}" if source else ""
    if not isinstance(data, dict):
        raise PayloadError(f"Payload{where} must be an object, got {type(data).__name__}")

    try:
        validate_project_payload(data, source_path=source)
    except SchemaValidationError as e:
        raise PayloadError(str(e), errors=e.errors) from e

    try:
        return ProjectData.from_payload(data)
    except ValidationError as e:
        errors = _pydantic_errors(e)
        raise PayloadError(f"Invalid payload{where}: {errors[0]}", errors=errors) from e


def load_payload(text: str, source: Optional[str] = None) -> ProjectData:
    """
    Parse payload text (JSON, or YAML as a superset) into the IR.

    Raises:
        PayloadError: If the text cannot be parsed or validated
    """
    try:
        data = loads(text)
    except LoadError as e:
        raise PayloadError(f"Cannot parse payload{' ' + source if source else ''}: {e}") from e
    return parse_payload(data, source=source)


def load_payload_file(path: Union[str, Path]) -> ProjectData:
    """Read and parse a payload file."""
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise PayloadError(f"Cannot read payload {path}: {e.strerror or e}") from e
    return load_payload(text, source=str(path))


def compile_project(
    project: ProjectData,
    config: Optional[CompilerConfig] = None,
    entity_ids: Optional[Iterable[str]] = None,
) -> List[GeneratedArtifact]:
    """
    Compile every entity of every scene, in source order.

    Args:
        project: Parsed project
        config: Compiler settings (defaults if None)
        entity_ids: Restrict compilation to these entity ids

    Returns:
        One artifact per entity that has logic
    """
    assembler = ScriptAssembler(config)
    wanted = set(entity_ids) if entity_ids is not None else None
    artifacts = []
    owners: Dict[str, str] = {}
    for entity in project.iter_entities():
        if wanted is not None and entity.id not in wanted:
            continue
        artifact = assembler.assemble(entity)
        if artifact is None:
            continue
        if artifact.class_name in owners:
            log.warning("Entities %s and %s both compile to %s; %s overwrites the earlier file",
                        owners[artifact.class_name], artifact.entity_id, artifact.file_name, artifact.entity_id)
            emit_record('compiler', {
                'type': 'collision',
                'class_name': artifact.class_name,
                'entity_ids': [owners[artifact.class_name], artifact.entity_id],
            })
        owners[artifact.class_name] = artifact.entity_id
        artifacts.append(artifact)
        emit_record('compiler', {
            'type': 'artifact',
            'entity_id': artifact.entity_id,
            'class_name': artifact.class_name,
            'file_name': artifact.file_name,
            'lines': artifact.source.count('\n'),
            'animations': list(artifact.animations),
        })

    if wanted is not None:
        found = {entity.id for entity in project.iter_entities()}
        for missing in sorted(wanted - found):
            log.warning("Entity %s not found in payload", missing)

    log.info("Compiled %d artifact(s)", len(artifacts))
    return artifacts


def write_artifacts(artifacts: Sequence[GeneratedArtifact], out_dir: Union[str, Path]) -> List[Path]:
    """
    Write artifacts to out_dir, overwriting existing files.

    Returns:
        Paths written, in artifact order
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for artifact in artifacts:
        path = out_dir / artifact.file_name
        with open(path, 'w', encoding='utf-8', newline='\n') as f:
            f.write(artifact.source)
        log.debug("Wrote %s", path)
        written.append(path)
    return written


def manifest(artifacts: Sequence[GeneratedArtifact]) -> dict:
    """Manifest for the component-attachment step: entity id -> class, file, animations."""
    return {
        'version': MANIFEST_VERSION,
        'entities': {
            artifact.entity_id: {
                'class_name': artifact.class_name,
                'file_name': artifact.file_name,
                'animations': list(artifact.animations),
            }
            for artifact in artifacts
        },
    }


def write_manifest(artifacts: Sequence[GeneratedArtifact], path: Union[str, Path]) -> Path:
    """Write the JSON manifest (sorted keys, stable across runs)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        json.dump(manifest(artifacts), f, indent=2, sort_keys=True)
        f.write('\n')
    return path
