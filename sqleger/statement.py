import ctypes
import logging

from .native import Destructor, load_library, native_view
from .result import Result, ResultError, is_error
from .string_span import StringSpan
from .value import Datatype, ValueRef

logger = logging.getLogger(__name__)

_INT32_MIN, _INT32_MAX = -(1 << 31), (1 << 31) - 1
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


class Statement:
    """Owns one ``sqlite3_stmt*`` handle, or nothing.

    * ``Statement()`` is empty; fill it with ``Connection.prepare_v2``.
    * ``Statement(connection, sql)`` prepares or raises ResultError.
    * ``Statement(other)`` moves the handle out of ``other``.

    Status-returning calls (bind_*, step, reset, finalize) never raise for a
    native failure. On an empty statement they return ``Result.MISUSE``
    without reaching the native library.
    """

    def __init__(self, source=None, sql=None):
        self._lib = load_library()
        self._handle = None
        # Spans bound with Destructor.STATIC, kept alive while SQLite reads them.
        self._static_bindings = {}
        if source is None:
            return
        if isinstance(source, Statement):
            self.move_from(source)
            return
        if sql is None:
            raise TypeError("Statement(connection, sql) requires SQL text")
        rc = source.prepare_v2(sql, self)
        if is_error(rc):
            raise ResultError(rc, source.errmsg())
        if self._handle is None:
            raise ResultError(Result.MISUSE, "SQL text contains no statement")

    def _adopt(self, handle):
        self._handle = handle or None

    # -- ownership -------------------------------------------------------

    def c_ptr(self):
        return self._handle

    def take_c_ptr(self):
        """Give up the handle without finalizing it.

        Buffers bound with ``Destructor.STATIC`` are no longer kept alive
        here; the caller keeps them alive while the handle can read them.
        """
        handle, self._handle = self._handle, None
        self._static_bindings = {}
        return handle

    def __bool__(self):
        return self._handle is not None

    def move_from(self, other):
        if other is self:
            return self
        self.finalize()
        bindings = other._static_bindings
        self._adopt(other.take_c_ptr())
        self._static_bindings = bindings
        return self

    def finalize(self):
        """Release the handle; finalizing an empty statement returns OK.

        The status is SQLite's: the result of the most recent evaluation.
        """
        if self._handle is None:
            return Result.OK
        handle, self._handle = self._handle, None
        self._static_bindings = {}
        return Result(self._lib.sqlite3_finalize(handle))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()

    def __del__(self):
        if getattr(self, "_handle", None) is not None:
            self.finalize()

    def _misuse(self, operation):
        logger.debug("%s on an empty statement", operation)
        return Result.MISUSE

    # -- execution -------------------------------------------------------

    def step(self):
        if self._handle is None:
            return self._misuse("step")
        return Result(self._lib.sqlite3_step(self._handle))

    def reset(self):
        """Rewind to the pre-step state. Bindings are kept."""
        if self._handle is None:
            return self._misuse("reset")
        return Result(self._lib.sqlite3_reset(self._handle))

    def clear_bindings(self):
        if self._handle is None:
            return self._misuse("clear_bindings")
        rc = Result(self._lib.sqlite3_clear_bindings(self._handle))
        self._static_bindings = {}
        return rc

    # -- binding (1-based indexes) ---------------------------------------

    def _refuse_bind(self, operation, index):
        # Status for a bind that must not reach SQLite, or None.
        if self._handle is None:
            return self._misuse(operation)
        if not _INT32_MIN <= index <= _INT32_MAX:
            logger.debug("%s: parameter index %d out of range", operation, index)
            return Result.RANGE
        return None

    def bind_int(self, index, value):
        refused = self._refuse_bind("bind_int", index)
        if refused is not None:
            return refused
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise OverflowError(f"{value} does not fit in 32 bits")
        self._static_bindings.pop(index, None)
        return Result(self._lib.sqlite3_bind_int(self._handle, index, value))

    def bind_int64(self, index, value):
        refused = self._refuse_bind("bind_int64", index)
        if refused is not None:
            return refused
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise OverflowError(f"{value} does not fit in 64 bits")
        self._static_bindings.pop(index, None)
        return Result(self._lib.sqlite3_bind_int64(self._handle, index, value))

    def bind_double(self, index, value):
        refused = self._refuse_bind("bind_double", index)
        if refused is not None:
            return refused
        self._static_bindings.pop(index, None)
        return Result(self._lib.sqlite3_bind_double(self._handle, index, value))

    def bind_null(self, index):
        refused = self._refuse_bind("bind_null", index)
        if refused is not None:
            return refused
        self._static_bindings.pop(index, None)
        return Result(self._lib.sqlite3_bind_null(self._handle, index))

    def bind_blob(self, index, data, destructor=Destructor.TRANSIENT):
        """Bind a bytes-like object or StringSpan as a blob.

        With ``Destructor.STATIC`` SQLite reads the caller's buffer at step
        time; the statement keeps the span referenced until the parameter is
        rebound, bindings are cleared or the statement is finalized.
        """
        return self._bind_bytes(self._lib.sqlite3_bind_blob, "bind_blob", index, data, destructor)

    def bind_text(self, index, text, destructor=Destructor.TRANSIENT):
        """Bind UTF-8 text (a str, bytes-like object or StringSpan)."""
        return self._bind_bytes(self._lib.sqlite3_bind_text, "bind_text", index, text, destructor)

    def _bind_bytes(self, native_bind, operation, index, data, destructor):
        refused = self._refuse_bind(operation, index)
        if refused is not None:
            return refused
        span = _exact_span(data)
        if len(span) > _INT32_MAX:
            return Result.TOOBIG
        destructor = Destructor(destructor)
        rc = Result(native_bind(self._handle, index, span.c_ptr(), len(span), destructor.as_parameter()))
        if destructor == Destructor.STATIC and not is_error(rc):
            self._static_bindings[index] = span
        else:
            self._static_bindings.pop(index, None)
        return rc

    def bind_zeroblob(self, index, size):
        refused = self._refuse_bind("bind_zeroblob", index)
        if refused is not None:
            return refused
        if size > _INT32_MAX:
            return Result.TOOBIG
        self._static_bindings.pop(index, None)
        # A negative size binds an empty blob, as in SQLite.
        return Result(self._lib.sqlite3_bind_zeroblob(self._handle, index, max(size, 0)))

    def bind_parameter_count(self):
        return self._lib.sqlite3_bind_parameter_count(self._checked())

    def bind_parameter_index(self, name):
        """1-based index of a named parameter (including its prefix), 0 if absent."""
        return self._lib.sqlite3_bind_parameter_index(self._checked(), name.encode("utf-8"))

    def bind_parameter_name(self, index):
        handle = self._checked()
        if not _INT32_MIN <= index <= _INT32_MAX:
            return None
        name = self._lib.sqlite3_bind_parameter_name(handle, index)
        return name.decode("utf-8") if name is not None else None

    # -- introspection ---------------------------------------------------

    def sql(self):
        """The SQL text SQLite kept for this statement (the consumed prefix)."""
        text = self._lib.sqlite3_sql(self._checked())
        return text.decode("utf-8") if text is not None else None

    def expanded_sql(self):
        address = self._lib.sqlite3_expanded_sql(self._checked())
        if not address:
            return None
        try:
            return ctypes.string_at(address).decode("utf-8")
        finally:
            self._lib.sqlite3_free(address)

    def readonly(self):
        return bool(self._lib.sqlite3_stmt_readonly(self._checked()))

    def busy(self):
        return bool(self._lib.sqlite3_stmt_busy(self._checked()))

    # -- columns of the current row (0-based indexes) --------------------

    def column_count(self):
        return self._lib.sqlite3_column_count(self._checked())

    def data_count(self):
        return self._lib.sqlite3_data_count(self._checked())

    def column_name(self, column):
        name = self._lib.sqlite3_column_name(self._checked(), _column(column))
        return name.decode("utf-8") if name is not None else None

    def column_decltype(self, column):
        decl = self._lib.sqlite3_column_decltype(self._checked(), _column(column))
        return decl.decode("utf-8") if decl is not None else None

    def column_type(self, column):
        return Datatype(self._lib.sqlite3_column_type(self._checked(), _column(column)))

    def column_value(self, column):
        """Borrowed view of a column; valid until the next step/reset/finalize."""
        return ValueRef(self._lib.sqlite3_column_value(self._checked(), _column(column)))

    def column_int(self, column):
        return self._lib.sqlite3_column_int(self._checked(), _column(column))

    def column_int64(self, column):
        return self._lib.sqlite3_column_int64(self._checked(), _column(column))

    def column_double(self, column):
        return self._lib.sqlite3_column_double(self._checked(), _column(column))

    def column_bytes(self, column):
        return self._lib.sqlite3_column_bytes(self._checked(), _column(column))

    def column_blob(self, column):
        handle = self._checked()
        address = self._lib.sqlite3_column_blob(handle, _column(column))
        return native_view(address, self._lib.sqlite3_column_bytes(handle, _column(column)))

    def column_text(self, column):
        handle = self._checked()
        address = self._lib.sqlite3_column_text(handle, _column(column))
        return native_view(address, self._lib.sqlite3_column_bytes(handle, _column(column)))

    def _checked(self):
        if self._handle is None:
            raise ValueError("Statement is empty")
        return self._handle

    def __repr__(self):
        if self._handle is None:
            return "Statement(<empty>)"
        return f"Statement({self.sql()!r})"


def _exact_span(data):
    # Parameters bind in full, embedded NULs included.
    if isinstance(data, StringSpan):
        return data
    if isinstance(data, str):
        data = data.encode("utf-8")
    length = data.nbytes if isinstance(data, memoryview) else len(data)
    return StringSpan(data, length)


def _column(column):
    # SQLite answers an out-of-range column with NULL; keep ctypes from
    # wrapping a huge index onto a real one.
    return column if _INT32_MIN <= column <= _INT32_MAX else -1
