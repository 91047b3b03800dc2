"""
Type and default normalization for schema comparison.

Declared types are written by hand ("DECIMAL(15, 2)", "INT AUTO_INCREMENT
PRIMARY KEY") while the catalog reports its own spelling ("decimal(15,2)",
"int(11)", "character varying(500)"). Both sides are reduced to a canonical
string and compared with plain equality.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

# Single-quoted literals ('' is an escaped quote) are left untouched
_QUOTED = re.compile(r"('(?:[^']|'')*')")
_ANNOTATIONS = re.compile(r"\b(?:auto_increment|primary\s+key)\b")
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PAREN = re.compile(r"\s*\(\s*")
_SPACE_AFTER_PAREN = re.compile(r"\s*\)")
_SPACE_AROUND_COMMA = re.compile(r"\s*,\s*")
_INT_DISPLAY_WIDTH = re.compile(
    r"\b(tinyint|smallint|mediumint|int|integer|bigint)\(\d+\)"
)

_PG_CAST = re.compile(r"::[a-z_][a-z0-9_ ]*(?:\([0-9, ]*\))?(?:\[\])?$", re.IGNORECASE)
_NUMERIC = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_CURRENT_TIMESTAMP = {"current_timestamp", "current_timestamp()", "now()", "localtimestamp"}


def normalize_type(type_string: str, aliases: Optional[Mapping[str, str]] = None) -> str:
    """Canonicalize a column type so equivalent spellings compare equal.

    Args:
        type_string: Declared or introspected type.
        aliases: Optional dialect table mapping a leading base type
            (e.g. "character varying") to its canonical name ("varchar").

    Returns:
        The canonical type string. Unrecognized tokens pass through.
    """
    if not type_string:
        return ""

    parts = _QUOTED.split(type_string)
    for i in range(0, len(parts), 2):
        chunk = parts[i].lower()
        chunk = _ANNOTATIONS.sub(" ", chunk)
        chunk = _WHITESPACE.sub(" ", chunk)
        chunk = _SPACE_BEFORE_PAREN.sub("(", chunk)
        chunk = _SPACE_AFTER_PAREN.sub(")", chunk)
        chunk = _SPACE_AROUND_COMMA.sub(",", chunk)
        chunk = _INT_DISPLAY_WIDTH.sub(r"\1", chunk)
        parts[i] = chunk

    result = "".join(parts)
    result = _WHITESPACE.sub(" ", result).strip()

    if aliases:
        result = _apply_alias(result, aliases)

    return result


def _apply_alias(type_string: str, aliases: Mapping[str, str]) -> str:
    # Longest alias first so "timestamp with time zone" wins over "timestamp"
    for alias in sorted(aliases, key=len, reverse=True):
        if type_string == alias:
            return aliases[alias]
        if type_string.startswith(alias) and type_string[len(alias)] in "( ":
            return aliases[alias] + type_string[len(alias):]
    return type_string


def normalize_default(value: Any) -> Optional[str]:
    """Canonicalize a declared or introspected default value.

    None and the NULL keyword both mean "no default value" and map to None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return _canonical_number(str(value))

    text = str(value).strip()

    # PostgreSQL reports typed literals, e.g. 'active'::character varying
    previous = None
    while previous != text:
        previous = text
        text = _PG_CAST.sub("", text).strip()
        if text.startswith("(") and text.endswith(")") and "," not in text:
            text = text[1:-1].strip()

    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        text = text[1:-1].replace("''", "'")
        quoted = True
    else:
        quoted = False

    lowered = text.lower()
    if not quoted and lowered == "null":
        return None
    if lowered in ("true", "false"):
        return "1" if lowered == "true" else "0"
    if lowered in _CURRENT_TIMESTAMP:
        return "current_timestamp"
    if _NUMERIC.match(text):
        return _canonical_number(text)
    return text


def _canonical_number(text: str) -> str:
    try:
        number = Decimal(text)
    except InvalidOperation:
        return text
    if number == 0:
        return "0"
    return format(number.normalize(), "f")
