"""Protocol constants and protobuf message classes for the query wire format.

The message schema is declared here in Python and registered into a private
descriptor pool at import time, so no generated ``_pb2`` module is needed.
Enumerated fields are carried as plain ``int32`` on the wire; the ``IntEnum``
classes below are the authoritative value tables.
"""

from __future__ import annotations

import enum
from typing import Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

VERSION_MAGIC = 0x3F61BA36
DEFAULT_PORT = 28015


class QueryType(enum.IntEnum):
    START = 1
    CONTINUE = 2
    STOP = 3


class ResponseType(enum.IntEnum):
    SUCCESS_ATOM = 1
    SUCCESS_SEQUENCE = 2
    SUCCESS_PARTIAL = 3
    CLIENT_ERROR = 16
    COMPILE_ERROR = 17
    RUNTIME_ERROR = 18


class DatumType(enum.IntEnum):
    R_NULL = 1
    R_BOOL = 2
    R_NUM = 3
    R_STR = 4
    R_ARRAY = 5
    R_OBJECT = 6


class FrameType(enum.IntEnum):
    POS = 1
    OPT = 2


class TermType(enum.IntEnum):
    DATUM = 1
    MAKE_ARRAY = 2
    MAKE_OBJ = 3
    VAR = 10
    JAVASCRIPT = 11
    ERROR = 12
    IMPLICIT_VAR = 13
    DB = 14
    TABLE = 15
    GET = 16
    GET_ALL = 78
    EQ = 17
    NE = 18
    LT = 19
    LE = 20
    GT = 21
    GE = 22
    NOT = 23
    ADD = 24
    SUB = 25
    MUL = 26
    DIV = 27
    MOD = 28
    APPEND = 29
    PREPEND = 80
    DIFFERENCE = 95
    SET_INSERT = 88
    SET_INTERSECTION = 89
    SET_UNION = 90
    SET_DIFFERENCE = 91
    SLICE = 30
    SKIP = 70
    LIMIT = 71
    INDEXES_OF = 87
    CONTAINS = 93
    GETATTR = 31
    KEYS = 94
    HAS_FIELDS = 32
    WITH_FIELDS = 96
    PLUCK = 33
    WITHOUT = 34
    MERGE = 35
    BETWEEN = 36
    REDUCE = 37
    MAP = 38
    FILTER = 39
    CONCATMAP = 40
    ORDERBY = 41
    DISTINCT = 42
    COUNT = 43
    IS_EMPTY = 86
    UNION = 44
    NTH = 45
    GROUPED_MAP_REDUCE = 46
    GROUPBY = 47
    INNER_JOIN = 48
    OUTER_JOIN = 49
    EQ_JOIN = 50
    ZIP = 72
    INSERT_AT = 82
    DELETE_AT = 83
    CHANGE_AT = 84
    SPLICE_AT = 85
    COERCE_TO = 51
    TYPEOF = 52
    UPDATE = 53
    DELETE = 54
    REPLACE = 55
    INSERT = 56
    DB_CREATE = 57
    DB_DROP = 58
    DB_LIST = 59
    TABLE_CREATE = 60
    TABLE_DROP = 61
    TABLE_LIST = 62
    INDEX_CREATE = 75
    INDEX_DROP = 76
    INDEX_LIST = 77
    FUNCALL = 64
    BRANCH = 65
    ANY = 66
    ALL = 67
    FOREACH = 68
    FUNC = 69
    ASC = 73
    DESC = 74
    INFO = 79
    MATCH = 97
    SAMPLE = 81
    DEFAULT = 92
    JSON = 98
    ISO8601 = 99
    TO_ISO8601 = 100
    EPOCH_TIME = 101
    TO_EPOCH_TIME = 102
    NOW = 103
    IN_TIMEZONE = 104
    DURING = 105
    DATE = 106
    TIME_OF_DAY = 126
    TIMEZONE = 127
    YEAR = 128
    MONTH = 129
    DAY = 130
    DAY_OF_WEEK = 131
    DAY_OF_YEAR = 132
    HOURS = 133
    MINUTES = 134
    SECONDS = 135
    TIME = 136
    MONDAY = 107
    TUESDAY = 108
    WEDNESDAY = 109
    THURSDAY = 110
    FRIDAY = 111
    SATURDAY = 112
    SUNDAY = 113
    JANUARY = 114
    FEBRUARY = 115
    MARCH = 116
    APRIL = 117
    MAY = 118
    JUNE = 119
    JULY = 120
    AUGUST = 121
    SEPTEMBER = 122
    OCTOBER = 123
    NOVEMBER = 124
    DECEMBER = 125
    LITERAL = 137


_PACKAGE = "reql.ql2"
_F = descriptor_pb2.FieldDescriptorProto


def _field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    *,
    repeated: bool = False,
    type_name: Optional[str] = None,
) -> None:
    field = message.field.add()
    field.name = name
    field.number = number
    field.type = field_type
    field.label = _F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL
    if type_name is not None:
        field.type_name = f".{_PACKAGE}.{type_name}"


def _assoc_pair(parent: descriptor_pb2.DescriptorProto, value_type: str) -> None:
    pair = parent.nested_type.add()
    pair.name = "AssocPair"
    _field(pair, "key", 1, _F.TYPE_STRING)
    _field(pair, "val", 2, _F.TYPE_MESSAGE, type_name=value_type)


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto()
    proto.name = "reql/ql2.proto"
    proto.package = _PACKAGE
    proto.syntax = "proto2"

    datum = proto.message_type.add()
    datum.name = "Datum"
    _field(datum, "type", 1, _F.TYPE_INT32)
    _field(datum, "r_bool", 2, _F.TYPE_BOOL)
    _field(datum, "r_num", 3, _F.TYPE_DOUBLE)
    _field(datum, "r_str", 4, _F.TYPE_STRING)
    _field(datum, "r_array", 5, _F.TYPE_MESSAGE, repeated=True, type_name="Datum")
    _field(datum, "r_object", 6, _F.TYPE_MESSAGE, repeated=True, type_name="Datum.AssocPair")
    _assoc_pair(datum, "Datum")

    term = proto.message_type.add()
    term.name = "Term"
    _field(term, "type", 1, _F.TYPE_INT32)
    _field(term, "datum", 2, _F.TYPE_MESSAGE, type_name="Datum")
    _field(term, "args", 3, _F.TYPE_MESSAGE, repeated=True, type_name="Term")
    _field(term, "optargs", 4, _F.TYPE_MESSAGE, repeated=True, type_name="Term.AssocPair")
    _assoc_pair(term, "Term")

    query = proto.message_type.add()
    query.name = "Query"
    _field(query, "type", 1, _F.TYPE_INT32)
    _field(query, "query", 2, _F.TYPE_MESSAGE, type_name="Term")
    _field(query, "token", 3, _F.TYPE_INT64)
    _field(query, "OBSOLETE_noreply", 4, _F.TYPE_BOOL)
    _field(query, "global_optargs", 6, _F.TYPE_MESSAGE, repeated=True, type_name="Query.AssocPair")
    _assoc_pair(query, "Term")

    frame = proto.message_type.add()
    frame.name = "Frame"
    _field(frame, "type", 1, _F.TYPE_INT32)
    _field(frame, "pos", 2, _F.TYPE_INT64)
    _field(frame, "opt", 3, _F.TYPE_STRING)

    backtrace = proto.message_type.add()
    backtrace.name = "Backtrace"
    _field(backtrace, "frames", 1, _F.TYPE_MESSAGE, repeated=True, type_name="Frame")

    response = proto.message_type.add()
    response.name = "Response"
    _field(response, "type", 1, _F.TYPE_INT32)
    _field(response, "token", 2, _F.TYPE_INT64)
    _field(response, "response", 3, _F.TYPE_MESSAGE, repeated=True, type_name="Datum")
    _field(response, "backtrace", 4, _F.TYPE_MESSAGE, type_name="Backtrace")

    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


Datum = _message_class("Datum")
Term = _message_class("Term")
Query = _message_class("Query")
Frame = _message_class("Frame")
Backtrace = _message_class("Backtrace")
Response = _message_class("Response")

__all__ = [
    "VERSION_MAGIC",
    "DEFAULT_PORT",
    "QueryType",
    "ResponseType",
    "DatumType",
    "FrameType",
    "TermType",
    "Datum",
    "Term",
    "Query",
    "Frame",
    "Backtrace",
    "Response",
]
