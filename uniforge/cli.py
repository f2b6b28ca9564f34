#!/usr/bin/env python3
"""
uniforge-compile - compile an editor payload into Unity C# components

Reads a project payload (JSON or YAML), generates one MonoBehaviour per
entity with logic and writes them to the generated-scripts folder.

Usage:
    # Compile into the default folder
    uniforge-compile project.json

    # Custom output folder and settings
    uniforge-compile project.json --out Assets/Generated --config uniforge.yaml

    # Print the source of one entity instead of writing files
    uniforge-compile project.json --entity player-1 --dry-run
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from uniforge.config import ConfigError, load_config
from uniforge.importer import (
    PayloadError,
    compile_project,
    load_payload,
    load_payload_file,
    write_artifacts,
    write_manifest,
)
from uniforge.logging import (
    FileSink,
    close_all_sinks,
    configure_logging,
    create_sink_for_module,
    get_logger,
    register_sink,
)

log = get_logger('cli')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='uniforge-compile',
        description='Compile a Uniforge editor payload into Unity C# components',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compile every entity into the default folder
  uniforge-compile project.json

  # Read the payload from stdin
  cat project.json | uniforge-compile -

  # Use the legacy static runtime managers
  UNIFORGE_SERVICE_MODE=static uniforge-compile project.json

  # Write a manifest for the component-attachment step
  uniforge-compile project.json --manifest Generated/uniforge_manifest.json
        """
    )

    parser.add_argument(
        'payload',
        help="Payload file (JSON or YAML), or '-' for stdin"
    )
    parser.add_argument(
        '--out',
        type=str,
        default=None,
        help='Output folder (default: output_dir from config)'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='YAML config file'
    )
    parser.add_argument(
        '--entity',
        action='append',
        default=None,
        metavar='ID',
        help='Only compile this entity (repeatable)'
    )
    parser.add_argument(
        '--manifest',
        type=str,
        default=None,
        help='Write a JSON manifest of generated classes to this path'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print generated source to stdout instead of writing files'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'OFF'],
        default=None,
        help='Log level (default: INFO, or UNIFORGE_LOG_LEVEL)'
    )
    parser.add_argument(
        '--trace-lowering',
        action='store_true',
        help='Log every action/condition lowering'
    )
    parser.add_argument(
        '--log-records',
        type=str,
        default=None,
        metavar='DIR',
        help='Write structured compiler records (JSONL) to this folder'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for uniforge-compile."""
    args = build_parser().parse_args(argv)

    if args.log_level or args.trace_lowering:
        configure_logging(level=args.log_level or 'INFO', lowering=args.trace_lowering)

    if args.log_records:
        sink = FileSink(args.log_records, session_name='compile')
    else:
        sink = create_sink_for_module('compiler', session_name='compile')
    register_sink('compiler', sink)

    try:
        return _run(args)
    finally:
        close_all_sinks()


def _run(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
        if args.payload == "-":
            project = load_payload(sys.stdin.read(), source="<stdin>")
        else:
            project = load_payload_file(args.payload)
    except ConfigError as e:
        log.error("%s", e)
        return 2
    except PayloadError as e:
        log.error("%s", e)
        for detail in e.errors[1:]:
            log.error("  %s", detail)
        return 2

    artifacts = compile_project(project, config, entity_ids=args.entity)

    if args.dry_run:
        for artifact in artifacts:
            print(f"// ===== {artifact.file_name} =====")
            print(artifact.source, end="")
        return 0

    out_dir = Path(args.out or config.output_dir)
    for path in write_artifacts(artifacts, out_dir):
        print(f"Generated: {path}")
    if args.manifest:
        print(f"Manifest: {write_manifest(artifacts, args.manifest)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
