"""C# identifiers and literals."""

import math
import re
from typing import Any, Optional

CSHARP_KEYWORDS = frozenset("""
    abstract as base bool break byte case catch char checked class const
    continue decimal default delegate do double else enum event explicit
    extern false finally fixed float for foreach goto if implicit in int
    interface internal is lock long namespace new null object operator out
    override params private protected public readonly ref return sbyte
    sealed short sizeof stackalloc static string struct switch this throw
    true try typeof uint ulong unchecked unsafe ushort using virtual void
    volatile while
""".split())

_NON_IDENTIFIER = re.compile(r'[^\w]', re.UNICODE)
_NON_ALNUM = re.compile(r'[^A-Za-z0-9]')
_NUMBER = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def sanitize_identifier(name: Optional[str], fallback: str = "unnamed") -> str:
    """Turn a display name into a valid C# identifier.

    Characters outside letters, digits and underscore become '_'; a leading
    digit gets a '_' prefix and keywords are escaped with '@'.
    """
    text = _NON_IDENTIFIER.sub('_', (name or "").strip())
    if not text:
        return fallback
    if text[0].isdigit():
        text = '_' + text
    if text in CSHARP_KEYWORDS:
        text = '@' + text
    return text


def class_name_for(entity_id: str, prefix: str = "Gen_") -> str:
    """Component class name for an entity id (also the file stem)."""
    return prefix + _NON_ALNUM.sub('_', str(entity_id))


def csharp_string(value: Any) -> str:
    """Quoted, escaped C# string literal."""
    out = ['"']
    for ch in str(value):
        if ch == '\\':
            out.append('\\\\')
        elif ch == '"':
            out.append('\\"')
        elif ch == '\n':
            out.append('\\n')
        elif ch == '\r':
            out.append('\\r')
        elif ch == '\t':
            out.append('\\t')
        elif ch == '\0':
            out.append('\\0')
        elif ord(ch) < 0x20 or 0x7f <= ord(ch) < 0xa0 or ch in '\u2028\u2029':
            out.append('\\u%04x' % ord(ch))
        else:
            out.append(ch)
    out.append('"')
    return ''.join(out)


def format_float(value: float) -> str:
    """C# float literal: 2f, 0.5f, -0.3f. Non-finite values become 0f."""
    f = float(value)
    if not math.isfinite(f) or f == 0:
        return '0f'
    if f.is_integer() and abs(f) < 1e15:
        return f"{int(f)}f"
    return f"{f!r}f"


def format_int(value: float) -> str:
    """C# int literal, rounding fractional values toward the nearest int."""
    f = float(value)
    if not math.isfinite(f):
        return '0'
    return str(int(round(f)))


def format_bool(value: bool) -> str:
    return 'true' if value else 'false'


def parse_number(value: Any) -> Optional[float]:
    """Numeric value of a number or numeric string, else None. Bools are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str) and _NUMBER.match(value.strip()):
        return float(value.strip())
    return None


def parse_bool(value: Any) -> Optional[bool]:
    """Bool value of a bool or 'true'/'false' string (any case), else None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    return None


def format_number(value: float, declared_type: Optional[str] = None) -> str:
    """Numeric literal fitted to a declared type.

    int targets get an int literal when the value is integral and a cast
    otherwise; float targets get an f-suffixed literal. Without a declared
    type integral values are written as ints, fractional ones as floats.
    """
    f = float(value)
    if declared_type == 'int':
        if math.isfinite(f) and f.is_integer():
            return format_int(f)
        return f"(int){format_float(f)}"
    if declared_type == 'float':
        return format_float(f)
    if math.isfinite(f) and f.is_integer() and abs(f) < 1e15:
        return str(int(f))
    return format_float(f)


def format_value(value: Any, declared_type: Optional[str] = None) -> str:
    """Literal for a comparison value.

    Numbers and numeric strings become numeric literals, 'true'/'false' in
    any case become C# bools and anything else a quoted string. A missing
    value falls back to the declared type's zero value.
    """
    if value is None:
        if declared_type == 'string':
            return '""'
        if declared_type == 'bool':
            return 'false'
        return format_number(0, declared_type)
    if declared_type == 'string':
        return csharp_string(value)
    as_bool = parse_bool(value)
    if as_bool is not None:
        return format_bool(as_bool)
    number = parse_number(value)
    if number is not None:
        return format_number(number, declared_type)
    return csharp_string(value)
