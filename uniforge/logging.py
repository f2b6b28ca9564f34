"""
Uniforge Logging System

Two channels, both per module:

Console messages:
    get_logger(name) returns a cached logger printing ``[name] LEVEL: msg``
    to stderr, so generated source on stdout stays clean. Levels are set
    globally or per module, and the lowering tables can trace every
    dispatch decision.

Compiler records:
    Structured JSON records about a compile run, routed to the sink
    registered for their stream. The compiler writes to the 'compiler'
    stream:

        artifact   one per generated class (entity, class, file, animations)
        fallback   one per fail-open decision: unknown action or condition,
                   cycle, depth or budget cut, missing or recursive module

Usage:
    from uniforge.logging import get_logger

    log = get_logger('traversal')
    log.debug("Visiting node %s", node_id)
    log.lowering("action", "Move")                     # opt-in trace
    log.fallback('cycle', entity_id, "node %s revisited", node_id)

    from uniforge.logging import emit_record
    emit_record('compiler', {'type': 'artifact', 'entity_id': 'e1', ...})

Configuration:
    Environment variables:
        UNIFORGE_LOG_LEVEL=DEBUG          # Global default level
        UNIFORGE_LOG_TRAVERSAL=DEBUG      # Module-specific level
        UNIFORGE_LOG_LOWERING=1           # Trace every action/condition lowering
        UNIFORGE_LOG_DIR=/tmp/uniforge    # Directory for FileSink output
        UNIFORGE_LOGGING_COMPILER_ENABLED=true   # Write compiler records

    Or programmatically:
        from uniforge.logging import configure_logging
        configure_logging(level='DEBUG', modules={'actions': 'INFO'})
"""

import json
import os
import sys
import time
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, TextIO


RECORD_STREAM = 'compiler'


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    OFF = 100      # Disable logging


# =============================================================================
# Compiler record sinks
# =============================================================================

class LogSink(ABC):
    """Destination for structured compiler records."""

    @abstractmethod
    def emit(self, stream: str, record: Dict[str, Any]) -> None:
        """
        Write one record.

        Args:
            stream: Record stream (e.g. 'compiler')
            record: JSON-serializable record with a 'type' key
        """

    @abstractmethod
    def close(self) -> None:
        """Finish the session and release resources."""


class FileSink(LogSink):
    """
    Writes records as JSON Lines, one file per stream.

    Files are named ``<session>_<stream>.jsonl``. The first line of each file
    is a header record, and close() appends a footer that counts the records
    of each type, so a reader can tell a finished run from an interrupted one.

    Args:
        log_dir: Directory for record files (default: get_log_dir())
        session_name: Session identifier for file naming (default: timestamp)
    """

    def __init__(self, log_dir: Optional[str] = None, session_name: Optional[str] = None):
        self.log_dir = Path(log_dir) if log_dir else Path(get_log_dir())
        self.session_name = session_name or time.strftime("%Y%m%d_%H%M%S")
        self._files: Dict[str, TextIO] = {}
        self._counts: Dict[str, Dict[str, int]] = {}

    def path_for(self, stream: str) -> Path:
        return self.log_dir / f"{self.session_name}_{stream}.jsonl"

    def _open(self, stream: str) -> TextIO:
        if stream not in self._files:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            f = open(self.path_for(stream), 'a', encoding='utf-8')
            f.write(json.dumps({
                'type': 'header',
                'stream': stream,
                'session_name': self.session_name,
                'start_time': time.time(),
            }) + "\n")
            self._files[stream] = f
            self._counts[stream] = {}
        return self._files[stream]

    def emit(self, stream: str, record: Dict[str, Any]) -> None:
        f = self._open(stream)
        if 'wall_time' not in record:
            record = {'wall_time': time.time(), **record}
        f.write(json.dumps(record) + "\n")
        counts = self._counts[stream]
        kind = str(record.get('type', 'record'))
        counts[kind] = counts.get(kind, 0) + 1

    def close(self) -> None:
        for stream, f in self._files.items():
            f.write(json.dumps({
                'type': 'footer',
                'stream': stream,
                'end_time': time.time(),
                'counts': self._counts[stream],
            }) + "\n")
            f.close()
        self._files.clear()
        self._counts.clear()


class NullSink(LogSink):
    """Discards records; used when record output is disabled."""

    def emit(self, stream: str, record: Dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        pass


_sinks: Dict[str, LogSink] = {}


def register_sink(stream: str, sink: LogSink) -> None:
    """Route records of a stream to sink, replacing any earlier one."""
    _sinks[stream] = sink


def emit_record(stream: str, record: Dict[str, Any]) -> bool:
    """
    Send a record to the sink registered for its stream.

    Returns:
        True if a sink took the record, False if none is registered
    """
    sink = _sinks.get(stream)
    if sink is None:
        return False
    sink.emit(stream, record)
    return True


def close_all_sinks() -> None:
    """Close and unregister every sink."""
    for sink in _sinks.values():
        sink.close()
    _sinks.clear()


def create_sink_for_module(stream: str, session_name: Optional[str] = None) -> LogSink:
    """
    Sink configured for a stream through the environment.

    A FileSink when UNIFORGE_LOGGING_<STREAM>_ENABLED is set (written to
    UNIFORGE_LOGGING_<STREAM>_DIR, or get_log_dir()), NullSink otherwise.
    """
    settings = _config['modules'].get(stream.lower(), {})
    if not settings.get('enabled', False):
        return NullSink()
    return FileSink(log_dir=settings.get('dir'), session_name=session_name)


# =============================================================================
# Global configuration
# =============================================================================

_config: Dict[str, Any] = {
    'default_level': LogLevel.INFO,
    'module_levels': {},
    'lowering': False,       # Trace every action/condition lowering
    'log_dir': None,         # Override record directory (None = platform default)
    'modules': {},           # Per-stream record settings
}


def get_log_dir() -> str:
    """Directory for record files.

    The configured log_dir wins, then UNIFORGE_LOG_DIR, then the platform's
    user data folder (~/.local/share/uniforge/logs on Linux).
    """
    if _config.get('log_dir'):
        return str(Path(_config['log_dir']).expanduser())

    env_dir = os.environ.get('UNIFORGE_LOG_DIR')
    if env_dir:
        return str(Path(env_dir).expanduser())

    if sys.platform == 'darwin':
        user_data = Path.home() / 'Library' / 'Application Support' / 'Uniforge'
    elif sys.platform == 'win32':
        user_data = Path(os.environ.get('APPDATA', str(Path.home()))) / 'Uniforge'
    else:
        user_data = Path(os.environ.get('XDG_DATA_HOME', str(Path.home() / '.local' / 'share'))) / 'uniforge'
    return str(user_data / 'logs')


def _parse_env_value(value: str) -> Any:
    lower = value.lower()
    if lower in ('true', '1', 'yes', 'on'):
        return True
    if lower in ('false', '0', 'no', 'off'):
        return False
    return value


_LEVEL_NAMES = {
    'DEBUG': LogLevel.DEBUG,
    'INFO': LogLevel.INFO,
    'WARNING': LogLevel.WARNING,
    'WARN': LogLevel.WARNING,
    'ERROR': LogLevel.ERROR,
    'OFF': LogLevel.OFF,
}


def _level_from_string(level_str: str) -> LogLevel:
    return _LEVEL_NAMES.get(level_str.upper(), LogLevel.INFO)


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
    lowering: bool = False,
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure the logging system.

    Args:
        level: Default log level for all modules ('OFF' silences everything)
        modules: Dict of module_name -> level for per-module configuration
        lowering: Enable tracing of every action/condition lowering
        log_dir: Directory used by FileSink when none is given explicitly
    """
    _config['default_level'] = _level_from_string(level)

    if modules:
        for mod, mod_level in modules.items():
            _config['module_levels'][mod] = _level_from_string(mod_level)

    _config['lowering'] = lowering
    if log_dir is not None:
        _config['log_dir'] = log_dir


def _load_env_config() -> None:
    """Read UNIFORGE_LOG_* levels and UNIFORGE_LOGGING_<STREAM>_<KEY> record settings."""
    if 'UNIFORGE_LOG_LEVEL' in os.environ:
        _config['default_level'] = _level_from_string(os.environ['UNIFORGE_LOG_LEVEL'])

    if 'UNIFORGE_LOG_DIR' in os.environ:
        _config['log_dir'] = os.environ['UNIFORGE_LOG_DIR']

    reserved = ('UNIFORGE_LOG_LEVEL', 'UNIFORGE_LOG_LOWERING', 'UNIFORGE_LOG_DIR')
    for key, value in os.environ.items():
        if key.startswith('UNIFORGE_LOG_') and key not in reserved:
            _config['module_levels'][key[len('UNIFORGE_LOG_'):].lower()] = _level_from_string(value)

    _config['lowering'] = os.environ.get('UNIFORGE_LOG_LOWERING', '').lower() in ('1', 'true', 'yes')

    for key, value in os.environ.items():
        if key.startswith('UNIFORGE_LOGGING_'):
            parts = key[len('UNIFORGE_LOGGING_'):].lower().split('_', 1)
            if len(parts) == 2:
                stream, setting = parts
                _config['modules'].setdefault(stream, {})[setting] = _parse_env_value(value)


# Load env config on import
_load_env_config()


class UniforgeLogger:
    """
    Logger for a specific module.

    Besides the usual levels it has two compiler-specific methods:
    lowering() traces dispatch decisions when enabled, and fallback()
    reports a fail-open decision both as a warning and as a compiler record.
    """

    def __init__(self, module: str):
        self.module = module
        self._module_key = module.lower().replace('.', '_').replace('/', '_')

    @property
    def level(self) -> LogLevel:
        """Effective level: the module's own if set, else the default."""
        return _config['module_levels'].get(self._module_key, _config['default_level'])

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(self, level: LogLevel, level_name: str, msg: str, *args) -> None:
        if not self.is_enabled_for(level):
            return

        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"

        print(f"[{self.module}] {level_name}: {msg}", file=sys.stderr)

    def debug(self, msg: str, *args) -> None:
        self._log(LogLevel.DEBUG, 'DEBUG', msg, *args)

    def info(self, msg: str, *args) -> None:
        self._log(LogLevel.INFO, 'INFO', msg, *args)

    def warning(self, msg: str, *args) -> None:
        self._log(LogLevel.WARNING, 'WARN', msg, *args)

    def error(self, msg: str, *args) -> None:
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

    def lowering(self, table: str, kind: str, detail: str = '') -> None:
        """
        Trace a single lowering decision.

        Only logs if lowering tracing is enabled.

        Args:
            table: Which table lowered it ('action' or 'condition')
            kind: The action or condition identifier
            detail: Optional extra context (node id, fallback reason)
        """
        if not _config['lowering']:
            return

        suffix = f" ({detail})" if detail else ''
        self._log(LogLevel.INFO, 'LOWER', f"{table}/{kind}{suffix}")

    def fallback(self, reason: str, entity_id: str, msg: str, *args) -> None:
        """
        Report a fail-open decision.

        Logs ``Entity <id>: <msg>`` at WARNING and emits a 'fallback' record
        on the compiler stream, whatever the console level.

        Args:
            reason: Short machine-readable tag ('unknown_action', 'cycle', ...)
            entity_id: Entity being compiled
            msg: printf-style message, formatted with args
        """
        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"
        self._log(LogLevel.WARNING, 'WARN', "Entity %s: %s", entity_id, msg)
        emit_record(RECORD_STREAM, {
            'type': 'fallback',
            'reason': reason,
            'entity_id': entity_id,
            'module': self.module,
            'message': msg,
        })


@lru_cache(maxsize=64)
def get_logger(module: str) -> UniforgeLogger:
    """
    Get a logger for the specified module.

    Loggers are cached, so calling get_logger('foo') multiple times
    returns the same logger instance.

    Args:
        module: Module name (e.g., 'traversal', 'actions', 'importer')
    """
    return UniforgeLogger(module)
