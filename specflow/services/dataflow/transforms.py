"""Value transforms applied to a field while it flows between steps.

Every transform is total: it inspects the value and its config before
acting and hands the input back unchanged when either has the wrong shape.
"""

import json
import math
import re
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_CONCAT_SEPARATOR = ", "
TEMPLATE_PLACEHOLDER = "{value}"

_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class TransformType(str, Enum):
    """Closed set of transforms a relationship may declare."""

    COPY = "copy"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    EXTRACT = "extract"
    JOIN = "join"
    SPLIT = "split"
    AGGREGATE = "aggregate"
    MAP = "map"
    TEMPLATE = "template"


class AggregationType(str, Enum):
    CONCAT = "concat"
    SUM = "sum"
    COUNT = "count"
    FIRST = "first"
    LAST = "last"


def stringify(value: Any) -> str:
    """Render a JSON value as text for joins and templates."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            # longer than the interpreter's int-to-str digit limit
            return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def parse_float(value: Any) -> float:
    """Parse the leading number of ``value``; anything unparseable counts as 0.

    Integers beyond the float range parse as signed infinity.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, float):
        return 0.0 if math.isnan(value) else value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        match = _FLOAT_PREFIX.match(value.lstrip())
        if match:
            return float(match.group(0))
    return 0.0


def _separator(config: Mapping[str, Any], default: Optional[str] = None) -> Optional[str]:
    separator = config.get("separator")
    if isinstance(separator, str) and separator:
        return separator
    return default


def _copy(value: Any, config: Mapping[str, Any]) -> Any:
    return value


def _uppercase(value: Any, config: Mapping[str, Any]) -> Any:
    return value.upper() if isinstance(value, str) else value


def _lowercase(value: Any, config: Mapping[str, Any]) -> Any:
    return value.lower() if isinstance(value, str) else value


def _trim(value: Any, config: Mapping[str, Any]) -> Any:
    return value.strip() if isinstance(value, str) else value


def _extract(value: Any, config: Mapping[str, Any]) -> Any:
    field = config.get("field")
    if not field and field != 0:
        return value

    if isinstance(value, dict):
        return value.get(field if isinstance(field, str) else stringify(field))

    if isinstance(value, list):
        index = field if isinstance(field, int) and not isinstance(field, bool) else None
        # only ASCII digits index a list; "²" or "١" are plain keys
        if isinstance(field, str) and field.isascii() and field.isdigit():
            try:
                index = int(field)
            except ValueError:
                # too many digits to convert, so past the end of any list
                return None
        if index is None:
            return value
        return value[index] if 0 <= index < len(value) else None

    return value


def _join(value: Any, config: Mapping[str, Any]) -> Any:
    separator = _separator(config)
    if isinstance(value, list) and separator is not None:
        return separator.join("" if item is None else stringify(item) for item in value)
    return value


def _split(value: Any, config: Mapping[str, Any]) -> Any:
    separator = _separator(config)
    if isinstance(value, str) and separator is not None:
        return value.split(separator)
    return value


def _aggregate(value: Any, config: Mapping[str, Any]) -> Any:
    if not isinstance(value, list):
        return value

    aggregation = config.get("type")

    if aggregation == AggregationType.SUM.value:
        total = sum((parse_float(item) for item in value), 0.0)
        if not math.isfinite(total):
            # JSON has no infinities; stored the way a JSON encoder writes them
            return None
        return int(total) if total.is_integer() else total
    if aggregation == AggregationType.COUNT.value:
        return len(value)
    if aggregation == AggregationType.FIRST.value:
        return value[0] if value else None
    if aggregation == AggregationType.LAST.value:
        return value[-1] if value else None

    # concat, also the fallback for a missing or unknown aggregation type
    separator = _separator(config, DEFAULT_CONCAT_SEPARATOR)
    return separator.join("" if item is None else stringify(item) for item in value)


def _map(value: Any, config: Mapping[str, Any]) -> Any:
    mapping = config.get("mapping")
    if not isinstance(mapping, dict):
        return value

    if isinstance(value, (str, int, float, bool)) or value is None:
        if value in mapping:
            return mapping[value]
        key = stringify(value)
        if key in mapping:
            return mapping[key]
    return value


def _template(value: Any, config: Mapping[str, Any]) -> Any:
    template = config.get("template")
    if isinstance(template, str) and template:
        return template.replace(TEMPLATE_PLACEHOLDER, stringify(value))
    return value


TRANSFORMS: Dict[TransformType, Callable[[Any, Mapping[str, Any]], Any]] = {
    TransformType.COPY: _copy,
    TransformType.UPPERCASE: _uppercase,
    TransformType.LOWERCASE: _lowercase,
    TransformType.TRIM: _trim,
    TransformType.EXTRACT: _extract,
    TransformType.JOIN: _join,
    TransformType.SPLIT: _split,
    TransformType.AGGREGATE: _aggregate,
    TransformType.MAP: _map,
    TransformType.TEMPLATE: _template,
}


def resolve_transform_type(transform_type: Union[TransformType, str, None]) -> Optional[TransformType]:
    """Return the enum member for ``transform_type`` or None when it is not a known transform."""
    if transform_type is None:
        return TransformType.COPY
    try:
        return TransformType(transform_type)
    except ValueError:
        return None


def apply_transform(
    value: Any,
    transform_type: Union[TransformType, str, None],
    config: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Apply a named transform to ``value``.

    Args:
        value: Value extracted from the source document
        transform_type: Transform name; ``None`` means copy
        config: Transform-specific options, ignored when not a mapping

    Returns:
        The transformed value, or ``value`` itself when the transform is
        unknown or does not apply to this value/config.
    """
    kind = resolve_transform_type(transform_type)
    if kind is None:
        LOGGER.debug(f"Unknown transform type {transform_type!r}, passing value through")
        return value

    options = config if isinstance(config, Mapping) else {}
    try:
        return TRANSFORMS[kind](value, options)
    except (ValueError, TypeError, OverflowError, RecursionError) as e:
        LOGGER.warning(f"{kind.value} transform failed on a {type(value).__name__} value, passing it through: {e}")
        return value
