"""
Dedup Key Generator

Derives a deterministic, content-based identity for a workflow so identical
workflows are recognized regardless of file name or path. The same key is
used to filter intake batches and as the catalog id of the analysis result,
which is what makes repeated imports upserts instead of new rows.

The key is a 32-bit rolling hash (hash = hash * 31 + unit, seed 0) over the
compact JSON of a canonical projection, serialized exactly as
JSON.stringify would serialize it:

    {"name": ..., "nodes": [{"type": ..., "position": ...}, ...], "connections": {...}}

The absolute value of the signed result is rendered in base 36. Two distinct
projections can collide; such files are treated as duplicates.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..schemas.workflow import ParsedWorkflow
from .workflow_parser import workflow_parser

logger = logging.getLogger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _js_truthy(value: Any) -> bool:
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == value and value != 0
    return True


def canonical_projection(workflow: ParsedWorkflow) -> Dict[str, Any]:
    """
    The subset of a workflow that defines its identity.

    Fields absent from the source file are omitted rather than emitted as
    null, and a falsy connection graph projects to an empty object.
    """
    projection: Dict[str, Any] = {}
    if "name" in workflow.model_fields_set:
        projection["name"] = workflow.name

    nodes = []
    for node in workflow.nodes:
        entry: Dict[str, Any] = {}
        if "type" in node.model_fields_set:
            entry["type"] = node.type
        if "position" in node.model_fields_set:
            entry["position"] = node.position
        nodes.append(entry)
    projection["nodes"] = nodes
    projection["connections"] = workflow.connections if _js_truthy(workflow.connections) else {}
    return projection


_ARRAY_INDEX_LIMIT = 2 ** 32 - 1
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def _is_array_index(key: str) -> bool:
    return key.isdigit() and key.isascii() and (key == "0" or not key.startswith("0")) and int(key) < _ARRAY_INDEX_LIMIT


def _ordered_keys(obj: Dict[str, Any]) -> List[str]:
    # integer-like keys first in ascending order, then the rest as inserted
    indices = sorted((key for key in obj if _is_array_index(key)), key=int)
    return indices + [key for key in obj if not _is_array_index(key)]


def format_number(value: Any) -> str:
    """Render a number the way ECMAScript Number.prototype.toString does"""
    if isinstance(value, int) and abs(value) < 2 ** 53:
        return str(value)
    try:
        value = float(value)
    except OverflowError:
        return "null"
    if value != value or value in (float("inf"), float("-inf")):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    mantissa, _, exponent = repr(abs(value)).partition("e")
    whole, _, fraction = mantissa.partition(".")
    digits = whole + fraction
    point = len(whole) + int(exponent or 0)
    stripped = digits.lstrip("0")
    point -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    count = len(digits)

    if count <= point <= 21:
        text = digits + "0" * (point - count)
    elif 0 < point <= 21:
        text = digits[:point] + "." + digits[point:]
    elif -6 < point <= 0:
        text = "0." + "0" * -point + digits
    else:
        power = point - 1
        head = digits if count == 1 else digits[0] + "." + digits[1:]
        text = f"{head}e{'+' if power >= 0 else '-'}{abs(power)}"
    return sign + text


def _stringify_string(value: str) -> str:
    encoded = json.dumps(value, ensure_ascii=False)
    return _LONE_SURROGATE.sub(lambda match: f"\\u{ord(match.group()):04x}", encoded)


def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        return _stringify_string(value)
    if isinstance(value, dict):
        members = (f"{_stringify_string(str(key))}:{_stringify(value[key])}" for key in _ordered_keys(value))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_stringify(item) for item in value) + "]"
    raise TypeError(f"Cannot serialize {type(value).__name__} in a workflow projection")


def serialize_projection(projection: Dict[str, Any]) -> str:
    """
    Compact JSON text of a projection, byte-for-byte what JSON.stringify
    produces for the same parsed value (key order, number formatting and
    lone-surrogate escapes included).
    """
    return _stringify(projection)


def rolling_hash(text: str) -> int:
    """Signed 32-bit hash*31 + unit over the UTF-16 code units of text"""
    data = text.encode("utf-16-le", errors="surrogatepass")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def dedup_key_for_workflow(workflow: ParsedWorkflow) -> str:
    """Dedup key of an already parsed workflow"""
    serialized = serialize_projection(canonical_projection(workflow))
    return to_base36(abs(rolling_hash(serialized)))


def dedup_key_for_content(content: str, file_path: Optional[str] = None) -> Optional[str]:
    """
    Dedup key of raw file text.

    Returns None ("indeterminate") when the text is not workflow content;
    callers then fall back to name + path matching.
    """
    workflow = workflow_parser.parse_workflow_file(content, file_path)
    if workflow is None:
        return None
    return dedup_key_for_workflow(workflow)
