"""Conversion between native Python values and wire datums."""

from __future__ import annotations

import math
import numbers
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Union

from . import ql2
from .errors import UnmarshalableError

MAX_DEPTH = 20
REQL_TYPE_KEY = "$reql_type$"
TIME_TYPE = "TIME"

_TIMEZONE_REGEX = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def _check_depth(depth: int) -> None:
    if depth > MAX_DEPTH:
        raise UnmarshalableError(f"value nesting exceeds maximum depth of {MAX_DEPTH}")


def _check_number(value: numbers.Real) -> float:
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        raise UnmarshalableError("number must be finite")
    return number


def format_timezone(value: datetime) -> str:
    """Render the UTC offset of an aware datetime as ``+HH:MM``."""
    offset = value.utcoffset()
    if offset is None:
        raise UnmarshalableError("datetime value must include timezone info")
    if offset.seconds % 60 or offset.microseconds:
        raise UnmarshalableError(f"timezone offset {offset} is not a whole number of minutes")
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def parse_timezone(value: str) -> timezone:
    if value in ("Z", "z"):
        return timezone.utc
    match = _TIMEZONE_REGEX.match(value)
    if match is None:
        raise UnmarshalableError(f"invalid timezone offset: {value!r}")
    sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes))
    if sign == "-":
        offset = -offset
    return timezone(offset)


def _time_fields(value: datetime) -> Dict[str, Any]:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise UnmarshalableError("datetime value must include timezone info")
    return {
        REQL_TYPE_KEY: TIME_TYPE,
        "epoch_time": value.timestamp(),
        "timezone": format_timezone(value),
    }


def _datum_term(datum: Any) -> Any:
    term = ql2.Term()
    term.type = ql2.TermType.DATUM
    term.datum.CopyFrom(datum)
    return term


def _scalar_datum(value: Any) -> Any:
    datum = ql2.Datum()
    if value is None:
        datum.type = ql2.DatumType.R_NULL
    elif isinstance(value, bool):
        datum.type = ql2.DatumType.R_BOOL
        datum.r_bool = value
    elif isinstance(value, numbers.Real):
        datum.type = ql2.DatumType.R_NUM
        datum.r_num = _check_number(value)
    elif isinstance(value, str):
        datum.type = ql2.DatumType.R_STR
        datum.r_str = value
    else:
        return None
    return datum


def marshal(value: Any, depth: int = 0) -> Any:
    """Convert a native value into a term.

    Scalars become DATUM leaves, sequences MAKE_ARRAY and string-keyed
    mappings MAKE_OBJ. Aware datetimes become a MAKE_OBJ carrying the TIME
    pseudo-type.
    """
    _check_depth(depth)
    datum = _scalar_datum(value)
    if datum is not None:
        return _datum_term(datum)
    if isinstance(value, datetime):
        return marshal(_time_fields(value), depth)
    if isinstance(value, Mapping):
        term = ql2.Term()
        term.type = ql2.TermType.MAKE_OBJ
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnmarshalableError(f"object keys must be strings, got {type(key).__name__}")
            pair = term.optargs.add()
            pair.key = key
            pair.val.CopyFrom(marshal(item, depth + 1))
        return term
    if isinstance(value, (list, tuple)):
        term = ql2.Term()
        term.type = ql2.TermType.MAKE_ARRAY
        for item in value:
            term.args.add().CopyFrom(marshal(item, depth + 1))
        return term
    raise UnmarshalableError(f"cannot marshal value of type {type(value).__name__}")


def to_datum(value: Any, depth: int = 0) -> Any:
    """Convert a native value into a self-contained datum."""
    _check_depth(depth)
    datum = _scalar_datum(value)
    if datum is not None:
        return datum
    if isinstance(value, datetime):
        return to_datum(_time_fields(value), depth)
    datum = ql2.Datum()
    if isinstance(value, Mapping):
        datum.type = ql2.DatumType.R_OBJECT
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnmarshalableError(f"object keys must be strings, got {type(key).__name__}")
            pair = datum.r_object.add()
            pair.key = key
            pair.val.CopyFrom(to_datum(item, depth + 1))
        return datum
    if isinstance(value, (list, tuple)):
        datum.type = ql2.DatumType.R_ARRAY
        for item in value:
            datum.r_array.add().CopyFrom(to_datum(item, depth + 1))
        return datum
    raise UnmarshalableError(f"cannot marshal value of type {type(value).__name__}")


def _convert_pseudo_type(obj: Dict[str, Any], time_format: str) -> Union[Dict[str, Any], datetime]:
    if time_format == "raw" or obj.get(REQL_TYPE_KEY) != TIME_TYPE:
        return obj
    epoch_time = obj.get("epoch_time")
    if not isinstance(epoch_time, (int, float)):
        raise UnmarshalableError("TIME object is missing a numeric epoch_time")
    tz = parse_timezone(obj.get("timezone") or "+00:00")
    try:
        return datetime.fromtimestamp(epoch_time, tz=tz)
    except (OverflowError, OSError, ValueError) as exc:
        raise UnmarshalableError(f"TIME epoch_time {epoch_time!r} is out of range") from exc


def _unmarshal_datum(datum: Any, time_format: str, depth: int) -> Any:
    _check_depth(depth)
    kind = datum.type
    if kind == ql2.DatumType.R_NULL:
        return None
    if kind == ql2.DatumType.R_BOOL:
        return datum.r_bool
    if kind == ql2.DatumType.R_NUM:
        return datum.r_num
    if kind == ql2.DatumType.R_STR:
        return datum.r_str
    if kind == ql2.DatumType.R_ARRAY:
        return [_unmarshal_datum(item, time_format, depth + 1) for item in datum.r_array]
    if kind == ql2.DatumType.R_OBJECT:
        obj = {pair.key: _unmarshal_datum(pair.val, time_format, depth + 1) for pair in datum.r_object}
        return _convert_pseudo_type(obj, time_format)
    raise UnmarshalableError(f"unknown datum type {kind}")


def _unmarshal_term(term: Any, time_format: str, depth: int) -> Any:
    _check_depth(depth)
    if term.type == ql2.TermType.DATUM:
        return _unmarshal_datum(term.datum, time_format, depth)
    if term.type == ql2.TermType.MAKE_ARRAY:
        return [_unmarshal_term(arg, time_format, depth + 1) for arg in term.args]
    if term.type == ql2.TermType.MAKE_OBJ:
        obj = {pair.key: _unmarshal_term(pair.val, time_format, depth + 1) for pair in term.optargs}
        return _convert_pseudo_type(obj, time_format)
    raise UnmarshalableError(f"term of type {term.type} is not a value")


def unmarshal(value: Any, *, time_format: str = "native") -> Any:
    """Convert a datum (or a literal term built by :func:`marshal`) back to Python.

    Numbers always come back as ``float``. TIME objects come back as aware
    datetimes unless ``time_format`` is ``"raw"``.
    """
    if isinstance(value, ql2.Term):
        return _unmarshal_term(value, time_format, 0)
    if isinstance(value, ql2.Datum):
        return _unmarshal_datum(value, time_format, 0)
    raise UnmarshalableError(f"cannot unmarshal value of type {type(value).__name__}")


def unmarshal_all(datums: Any, *, time_format: str = "native") -> List[Any]:
    return [unmarshal(datum, time_format=time_format) for datum in datums]


def is_null(datum: Any) -> bool:
    return datum.type == ql2.DatumType.R_NULL


__all__ = [
    "MAX_DEPTH",
    "REQL_TYPE_KEY",
    "format_timezone",
    "parse_timezone",
    "marshal",
    "to_datum",
    "unmarshal",
    "unmarshal_all",
    "is_null",
]
