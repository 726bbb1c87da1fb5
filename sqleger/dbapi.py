"""PEP 249 (DB-API 2.0) driver built on the sqleger handle wrappers."""

import collections
import collections.abc
import datetime
import decimal
import json
import logging
import os
import time
import uuid
import weakref

from .connection import Connection as _NativeConnection
from .native import DEFAULT_OPEN_FLAGS, OpenFlag, libversion
from .result import Result, ResultError, is_error
from .statement import Statement
from .value import Datatype

logger = logging.getLogger(__name__)

# DB-API 2.0 Globals
apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections
paramstyle = "qmark"  # :name placeholders are accepted too; SQLite binds both natively

sqlite_version = libversion()
sqlite_version_info = tuple(int(part) for part in sqlite_version.split("."))

# Exceptions
class Error(Exception):
    pass

class Warning(Exception):
    pass

class InterfaceError(Error):
    pass

class DatabaseError(Error):
    pass

class InternalError(DatabaseError):
    pass

class OperationalError(DatabaseError):
    pass

class ProgrammingError(DatabaseError):
    pass

class IntegrityError(DatabaseError):
    pass

class DataError(DatabaseError):
    pass

class NotSupportedError(DatabaseError):
    pass

# Primary result code -> exception class
_ERROR_CLASSES = {
    Result.CONSTRAINT: IntegrityError,
    Result.ERROR: ProgrammingError,
    Result.MISUSE: ProgrammingError,
    Result.RANGE: ProgrammingError,
    Result.INTERNAL: InternalError,
    Result.TOOBIG: DataError,
    Result.MISMATCH: DataError,
    Result.BUSY: OperationalError,
    Result.LOCKED: OperationalError,
    Result.IOERR: OperationalError,
    Result.CANTOPEN: OperationalError,
    Result.READONLY: OperationalError,
    Result.FULL: OperationalError,
    Result.NOMEM: OperationalError,
    Result.INTERRUPT: OperationalError,
    Result.ABORT: OperationalError,
    Result.PERM: OperationalError,
    Result.AUTH: OperationalError,
    Result.SCHEMA: OperationalError,
    Result.CORRUPT: DatabaseError,
    Result.NOTADB: DatabaseError,
}

def _format_value_for_error(v, *, max_str=200, max_bytes=64):
    if v is None:
        return None
    if isinstance(v, (bool, int, float)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        b = bytes(v)
        if len(b) <= max_bytes:
            return {"_type": "bytes", "hex": b.hex(), "len": len(b)}
        head = b[:max_bytes]
        return {"_type": "bytes", "hex_prefix": head.hex(), "len": len(b)}
    if isinstance(v, str):
        if len(v) <= max_str:
            return v
        return v[:max_str] + "…"
    # Fall back to capped repr
    s = repr(v)
    if len(s) <= max_str:
        return s
    return s[:max_str] + "…"

def _format_params_for_error(params, *, max_items=50):
    if params is None:
        return None
    if isinstance(params, collections.abc.Mapping):
        out = {}
        for i, (k, v) in enumerate(params.items()):
            if i >= max_items:
                out["_truncated"] = True
                break
            out[str(k)] = _format_value_for_error(v)
        return out
    try:
        seq = list(params)
    except TypeError:
        return _format_value_for_error(params)
    if len(seq) > max_items:
        seq = seq[:max_items] + ["<truncated>"]
    return [_format_value_for_error(v) for v in seq]

def _raise_error(native, code=None, *, sql=None, params=None):
    if code is None or not is_error(code):
        code = native.extended_errcode()
    code = Result(code)
    msg_str = native.errmsg() or f"Unknown error {int(code)}"

    if sql is not None:
        ctx = {
            "native_code": int(code),
            "sql": sql,
            "params": _format_params_for_error(params),
        }
        msg_str = msg_str + "\nContext: " + json.dumps(ctx, ensure_ascii=False)

    exc_class = _ERROR_CLASSES.get(code.primary, DatabaseError)
    err = exc_class(msg_str)
    err.sqlite_errorcode = int(code)
    err.sqlite_errorname = code.name
    raise err

# Types
Date = datetime.date
Time = datetime.time
Timestamp = datetime.datetime
def DateFromTicks(ticks): return datetime.date.fromtimestamp(ticks)
def TimeFromTicks(ticks): return datetime.datetime.fromtimestamp(ticks).time()
def TimestampFromTicks(ticks): return datetime.datetime.fromtimestamp(ticks)
def Binary(string): return bytes(string)
STRING = str
BINARY = bytes
NUMBER = float
DATETIME = datetime.datetime
ROWID = int


def _bind_parameter(stmt, idx, param):
    if param is None:
        return stmt.bind_null(idx)
    if isinstance(param, bool):
        return stmt.bind_int(idx, 1 if param else 0)
    if isinstance(param, int):
        try:
            return stmt.bind_int64(idx, param)
        except OverflowError as e:
            raise DataError(str(e)) from e
    if isinstance(param, float):
        return stmt.bind_double(idx, param)
    if isinstance(param, str):
        return stmt.bind_text(idx, param)
    if isinstance(param, (bytes, bytearray, memoryview)):
        return stmt.bind_blob(idx, param)
    if isinstance(param, decimal.Decimal):
        # TEXT keeps every digit; NUMERIC columns re-apply affinity.
        return stmt.bind_text(idx, str(param))
    if isinstance(param, uuid.UUID):
        return stmt.bind_blob(idx, param.bytes)
    if isinstance(param, (datetime.date, datetime.time)):
        # datetime is a date subclass; isoformat covers all three.
        return stmt.bind_text(idx, param.isoformat(" ") if isinstance(param, datetime.datetime) else param.isoformat())
    raise ProgrammingError(f"Unsupported parameter type: {type(param).__name__}")


def _read_column(stmt, i):
    value = stmt.column_value(i)
    kind = value.type()
    if kind == Datatype.INTEGER:
        return value.int64()
    if kind == Datatype.FLOAT:
        return value.double()
    if kind == Datatype.TEXT:
        return bytes(value.text()).decode("utf-8", errors="replace")
    if kind == Datatype.BLOB:
        return bytes(value.blob())
    return None


class Cursor:
    def __init__(self, connection):
        self._connection = connection
        self._stmt = None
        self._last_sql = None  # The SQL string for the current _stmt
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self.arraysize = 1
        self._pending_row = None
        self._exhausted = True
        self._closed = False

    @property
    def connection(self):
        return self._connection

    def close(self):
        if self._closed:
            return
        self._release_statement()
        self._closed = True

    def _release_statement(self):
        if self._stmt is not None:
            # Return to cache instead of finalizing directly
            self._connection._recycle_statement(self._last_sql, self._stmt)
            self._stmt = None
            self._last_sql = None
        self._pending_row = None
        self._exhausted = True

    def _check_open(self):
        if self._closed:
            raise ProgrammingError("Cursor is closed")
        self._connection._check_open()

    def _acquire_statement(self, sql):
        if self._stmt is not None and self._last_sql == sql:
            # Same SQL as last time: rewind and rebind in place.
            self._stmt.reset()
            self._stmt.clear_bindings()
            return self._stmt

        self._release_statement()
        stmt = self._connection._get_cached_statement(sql)
        if stmt is None:
            stmt = self._connection._prepare(sql)
        self._stmt = stmt
        self._last_sql = sql
        return stmt

    def _bind(self, stmt, sql, params):
        expected = stmt.bind_parameter_count()
        if params is None:
            params = ()
        if isinstance(params, collections.abc.Mapping):
            for idx in range(1, expected + 1):
                name = stmt.bind_parameter_name(idx)
                if name is None or name[0] == "?":
                    raise ProgrammingError("Mixed parameter styles are not supported: got named parameters with qmark placeholders")
                key = name[1:]
                if key not in params:
                    raise ProgrammingError(f"Missing parameter '{key}'")
                rc = _bind_parameter(stmt, idx, params[key])
                if is_error(rc):
                    _raise_error(self._connection._native, rc, sql=sql, params=params)
            return

        if isinstance(params, (str, bytes, bytearray)):
            raise ProgrammingError("Parameters must be a sequence or a mapping")
        params = list(params)
        for idx in range(1, expected + 1):
            name = stmt.bind_parameter_name(idx)
            if name is not None and name[0] in ":@$":
                raise ProgrammingError("Mixed parameter styles are not supported: got positional parameters with named placeholders")
        if len(params) != expected:
            raise ProgrammingError(f"Incorrect number of parameters: expected {expected}, got {len(params)}")
        for i, param in enumerate(params):
            rc = _bind_parameter(stmt, i + 1, param)
            if is_error(rc):
                _raise_error(self._connection._native, rc, sql=sql, params=params)

    def execute(self, operation, parameters=None):
        self._check_open()
        self._pending_row = None
        self._exhausted = True
        self.description = None
        self.rowcount = -1

        try:
            stmt = self._acquire_statement(operation)
        except ResultError as e:
            _raise_error(self._connection._native, e.code, sql=operation, params=parameters)
        self._bind(stmt, operation, parameters)

        col_count = stmt.column_count()
        if col_count > 0:
            self.description = [
                (stmt.column_name(i), None, None, None, None, None, None)
                for i in range(col_count)
            ]

        native = self._connection._native
        changes_before = native.total_changes()
        rc = stmt.step()
        if rc == Result.ROW:
            self._pending_row = self._read_row()
            self._exhausted = False
        elif rc == Result.DONE:
            if not stmt.readonly():
                self.rowcount = native.total_changes() - changes_before
        else:
            # Leave the statement rewound so a retry starts cleanly.
            try:
                _raise_error(native, rc, sql=operation, params=parameters)
            finally:
                stmt.reset()
        self.lastrowid = native.last_insert_rowid()
        return self

    def executemany(self, operation, seq_of_parameters):
        total = 0
        for params in seq_of_parameters:
            self.execute(operation, params)
            if self.rowcount > 0:
                total += self.rowcount
        self.rowcount = total
        return self

    def executescript(self, script):
        self._check_open()
        self._connection.commit()
        rc = self._connection._native.exec(script)
        if is_error(rc):
            _raise_error(self._connection._native, rc, sql=script)
        return self

    def _read_row(self):
        stmt = self._stmt
        return tuple(_read_column(stmt, i) for i in range(stmt.data_count()))

    def fetchone(self):
        self._check_open()
        if self._pending_row is not None:
            row, self._pending_row = self._pending_row, None
            return row
        if self._exhausted or self._stmt is None:
            return None

        rc = self._stmt.step()
        if rc == Result.ROW:
            return self._read_row()
        self._exhausted = True
        if rc == Result.DONE:
            return None
        try:
            _raise_error(self._connection._native, rc, sql=self._last_sql)
        finally:
            self._stmt.reset()

    def fetchmany(self, size=None):
        if size is None:
            size = self.arraysize
        rows = []
        for _ in range(size):
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def fetchall(self):
        rows = []
        while True:
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def setinputsizes(self, sizes):
        pass

    def setoutputsize(self, size, column=None):
        pass

    def __iter__(self):
        return self

    def __next__(self):
        r = self.fetchone()
        if r is None:
            raise StopIteration
        return r


def _default_stmt_cache_size():
    return int(os.environ.get("SQLEGER_STMT_CACHE_SIZE", "128"))


class Connection:
    def __init__(self, database, timeout=5.0, stmt_cache_size=None, uri=False, flags=DEFAULT_OPEN_FLAGS):
        if uri:
            flags |= OpenFlag.URI
        self._native = _NativeConnection()
        rc = self._native.open_v2(database, flags)
        if is_error(rc):
            msg = self._native.errmsg() or "Failed to open database"
            self._native.close_v2()
            raise OperationalError(msg)
        self._native.busy_timeout(int(timeout * 1000))
        self._closed = False
        self.cursors = weakref.WeakSet()

        # Prepared statement cache
        self._stmt_cache = collections.OrderedDict()
        self._stmt_cache_size = _default_stmt_cache_size() if stmt_cache_size is None else stmt_cache_size

        # Statistics for testing
        self._stats = collections.Counter()

    def _check_open(self):
        if self._closed:
            raise ProgrammingError("Cannot operate on a closed database.")

    def _prepare(self, sql):
        stmt = Statement()
        self._stats['prepare_count'] += 1
        rc = self._native.prepare_v2(sql, stmt)
        if is_error(rc):
            raise ResultError(rc, self._native.errmsg())
        if not stmt:
            raise ProgrammingError("SQL text contains no statement")
        return stmt

    def _get_cached_statement(self, sql):
        """
        Get a prepared statement from the cache if available, else None.
        """
        stmt = self._stmt_cache.pop(sql, None)
        if stmt is not None:
            self._stats['cache_hit'] += 1
            return stmt
        self._stats['cache_miss'] += 1
        return None

    def _recycle_statement(self, sql, stmt):
        """
        Return a statement to the cache.
        Resets execution state and clears bindings.
        """
        if self._closed or not stmt:
            stmt.finalize()
            return

        stmt.reset()
        stmt.clear_bindings()

        # If cache is disabled (size 0), finalize immediately
        if self._stmt_cache_size <= 0:
            stmt.finalize()
            return

        # Add to cache (remove if exists to update LRU position)
        old = self._stmt_cache.pop(sql, None)
        if old is not None and old is not stmt:
            old.finalize()
        self._stmt_cache[sql] = stmt

        # Evict if full
        while len(self._stmt_cache) > self._stmt_cache_size:
            old_sql, old_stmt = self._stmt_cache.popitem(last=False)
            logger.debug("Evicting cached statement %r", old_sql)
            old_stmt.finalize()

    @property
    def in_transaction(self):
        self._check_open()
        return not self._native.get_autocommit()

    @property
    def total_changes(self):
        self._check_open()
        return self._native.total_changes()

    def close(self):
        if self._closed:
            return
        for c in list(self.cursors):
            c.close()
        # Finalize all cached statements
        for stmt in self._stmt_cache.values():
            stmt.finalize()
        self._stmt_cache.clear()

        rc = self._native.close()
        if is_error(rc):
            # Statements still held elsewhere; defer the close until they go.
            logger.debug("close deferred: %s", rc.name)
            self._native.close_v2()
        self._closed = True

    def commit(self):
        self._check_open()
        # Autocommit unless the caller opened a transaction with BEGIN.
        if self.in_transaction:
            self._exec("COMMIT")

    def rollback(self):
        self._check_open()
        if self.in_transaction:
            self._exec("ROLLBACK")

    def _exec(self, sql):
        rc = self._native.exec(sql)
        if is_error(rc):
            _raise_error(self._native, rc, sql=sql)

    def cursor(self):
        self._check_open()
        c = Cursor(self)
        self.cursors.add(c)
        return c

    def execute(self, operation, parameters=None):
        # Convenience method
        c = self.cursor()
        c.execute(operation, parameters)
        return c

    def executemany(self, operation, seq_of_parameters):
        c = self.cursor()
        c.executemany(operation, seq_of_parameters)
        return c

    def executescript(self, script):
        c = self.cursor()
        c.executescript(script)
        return c

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()


def connect(database, **kwargs):
    start = time.perf_counter()
    conn = Connection(database, **kwargs)
    logger.debug("Connected to %r in %.3fs", database, time.perf_counter() - start)
    return conn
