import ctypes
import logging
import os

from .native import DEFAULT_OPEN_FLAGS, PrepareFlag, load_library
from .result import Result, ResultError, is_error
from .string_span import as_span

logger = logging.getLogger(__name__)


def _encode_filename(filename):
    filename = os.fspath(filename)
    if isinstance(filename, bytes):
        return filename
    return filename.encode("utf-8")


class Connection:
    """Owns one ``sqlite3*`` handle, or nothing.

    ``Connection()`` is empty. ``Connection(":memory:")`` opens or raises
    ResultError. ``Connection(other)`` moves the handle out of ``other``.
    The handle is released with ``sqlite3_close_v2`` on close_v2(),
    ``__exit__`` or garbage collection, whichever comes first.
    """

    def __init__(self, filename=None, flags=DEFAULT_OPEN_FLAGS, vfs=None):
        self._lib = load_library()
        self._handle = None
        if isinstance(filename, Connection):
            self._handle = filename.take_c_ptr()
            return
        if filename is None:
            return
        rc = self.open_v2(filename, flags, vfs)
        if is_error(rc):
            msg = self.errmsg()
            self.close_v2()
            raise ResultError(rc, msg)

    # -- ownership -------------------------------------------------------

    def c_ptr(self):
        return self._handle

    def take_c_ptr(self):
        handle, self._handle = self._handle, None
        return handle

    def __bool__(self):
        return self._handle is not None

    def move_from(self, other):
        if other is self:
            return self
        self.close_v2()
        self._handle = other.take_c_ptr()
        return self

    # -- lifecycle -------------------------------------------------------

    def open_v2(self, filename, flags=DEFAULT_OPEN_FLAGS, vfs=None):
        """Open ``filename`` into this wrapper, releasing any handle it held.

        On failure SQLite usually still hands back a handle; it is kept so
        errmsg() can explain the failure, and released by close_v2() or GC.
        """
        self.close_v2()
        handle = ctypes.c_void_p()
        rc = Result(self._lib.sqlite3_open_v2(
            _encode_filename(filename),
            ctypes.byref(handle),
            int(flags),
            vfs.encode("utf-8") if vfs else None,
        ))
        self._handle = handle.value or None
        if is_error(rc):
            logger.debug("Failed to open %r: %s", filename, rc.name)
        else:
            logger.debug("Opened %r", filename)
        return rc

    def close(self):
        """``sqlite3_close``: BUSY while statements are unfinalized, handle kept."""
        if self._handle is None:
            return Result.OK
        rc = Result(self._lib.sqlite3_close(self._handle))
        if not is_error(rc):
            self._handle = None
        return rc

    def close_v2(self):
        """``sqlite3_close_v2``: always gives up the handle, deferring if statements remain."""
        if self._handle is None:
            return Result.OK
        handle, self._handle = self._handle, None
        return Result(self._lib.sqlite3_close_v2(handle))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_v2()

    def __del__(self):
        if getattr(self, "_handle", None) is not None:
            self.close_v2()

    # -- statements ------------------------------------------------------

    def prepare_v2(self, sql, out):
        """Compile the first statement of ``sql`` into ``out``.

        ``str``/``bytes`` text is read up to its terminating NUL; a
        StringSpan, bytearray or memoryview is read for exactly its length.
        Returns the status; ``out`` is left empty on failure.
        """
        return self._prepare(sql, out, None)

    def prepare_v3(self, sql, out, flags=PrepareFlag.NONE):
        return self._prepare(sql, out, flags)

    def _prepare(self, sql, out, flags):
        out.finalize()
        if self._handle is None:
            logger.debug("prepare on an empty connection")
            return Result.MISUSE

        span = as_span(sql)
        # str/bytes end in a NUL; every other source is bounded by its length.
        n_byte = -1 if isinstance(sql, (str, bytes)) else len(span)
        handle = ctypes.c_void_p()
        if flags is None:
            rc = self._lib.sqlite3_prepare_v2(self._handle, span.c_ptr(), n_byte, ctypes.byref(handle), None)
        else:
            rc = self._lib.sqlite3_prepare_v3(
                self._handle, span.c_ptr(), n_byte, int(flags), ctypes.byref(handle), None
            )
        rc = Result(rc)
        if is_error(rc):
            if handle.value:
                self._lib.sqlite3_finalize(handle.value)
            logger.debug("prepare failed (%s): %s", rc.name, self.errmsg())
            return rc
        out._adopt(handle.value or None)
        return rc

    def exec(self, sql):
        """Run every statement in ``sql`` (``sqlite3_exec``), discarding rows."""
        if self._handle is None:
            return Result.MISUSE
        errmsg = ctypes.c_void_p()
        rc = Result(self._lib.sqlite3_exec(self._handle, bytes(as_span(sql)), None, None, ctypes.byref(errmsg)))
        if errmsg.value:
            logger.debug("exec failed: %s", ctypes.string_at(errmsg.value).decode("utf-8", errors="replace"))
            self._lib.sqlite3_free(errmsg.value)
        return rc

    # -- diagnostics -----------------------------------------------------

    def errcode(self):
        return Result(self._lib.sqlite3_errcode(self._handle))

    def extended_errcode(self):
        return Result(self._lib.sqlite3_extended_errcode(self._handle))

    def errmsg(self):
        # sqlite3_errmsg(NULL) reports the out-of-memory message.
        msg = self._lib.sqlite3_errmsg(self._handle)
        return msg.decode("utf-8", errors="replace") if msg else ""

    def extended_result_codes(self, on=True):
        if self._handle is None:
            return Result.MISUSE
        return Result(self._lib.sqlite3_extended_result_codes(self._handle, 1 if on else 0))

    def busy_timeout(self, ms):
        if self._handle is None:
            return Result.MISUSE
        return Result(self._lib.sqlite3_busy_timeout(self._handle, int(ms)))

    def changes(self):
        return self._lib.sqlite3_changes(self._checked())

    def total_changes(self):
        return self._lib.sqlite3_total_changes(self._checked())

    def last_insert_rowid(self):
        return self._lib.sqlite3_last_insert_rowid(self._checked())

    def get_autocommit(self):
        return bool(self._lib.sqlite3_get_autocommit(self._checked()))

    def filename(self, schema="main"):
        name = self._lib.sqlite3_db_filename(self._checked(), schema.encode("utf-8"))
        return name.decode("utf-8") if name is not None else None

    def _checked(self):
        if self._handle is None:
            raise ValueError("Connection is empty")
        return self._handle

    def __repr__(self):
        if self._handle is None:
            return "Connection(<empty>)"
        return f"Connection({self._handle:#x})"
