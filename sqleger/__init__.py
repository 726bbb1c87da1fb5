from .native import (
    load_library, libversion, libversion_number,
    Destructor, OpenFlag, PrepareFlag, DEFAULT_OPEN_FLAGS,
)
from .result import Result, ResultError, is_error, errstr
from .string_span import StringSpan, ss
from .value import Datatype, Value, ValueRef
from .statement import Statement
from .connection import Connection

__all__ = [
    "load_library", "libversion", "libversion_number",
    "Destructor", "OpenFlag", "PrepareFlag", "DEFAULT_OPEN_FLAGS",
    "Result", "ResultError", "is_error", "errstr",
    "StringSpan", "ss",
    "Datatype", "Value", "ValueRef",
    "Statement",
    "Connection",
]

__version__ = "0.1.0"
