import ctypes
import ctypes.util
import enum
import logging
import os
from ctypes import c_int, c_int64, c_double, c_char_p, c_void_p, c_uint, POINTER

logger = logging.getLogger(__name__)

# Destructor hints for sqlite3_bind_blob / sqlite3_bind_text.
#
# SQLITE_STATIC tells SQLite the buffer outlives the binding, so it keeps the
# pointer. SQLITE_TRANSIENT makes SQLite copy the bytes before returning.
class Destructor(enum.IntEnum):
    STATIC = 0
    TRANSIENT = -1

    def as_parameter(self):
        return c_void_p(int(self))


class OpenFlag(enum.IntFlag):
    READONLY = 0x00000001
    READWRITE = 0x00000002
    CREATE = 0x00000004
    URI = 0x00000040
    MEMORY = 0x00000080
    NOMUTEX = 0x00008000
    FULLMUTEX = 0x00010000
    SHAREDCACHE = 0x00020000
    PRIVATECACHE = 0x00040000
    NOFOLLOW = 0x01000000
    EXRESCODE = 0x02000000


class PrepareFlag(enum.IntFlag):
    NONE = 0x00
    PERSISTENT = 0x01
    NORMALIZE = 0x02
    NO_VTAB = 0x04


DEFAULT_OPEN_FLAGS = OpenFlag.READWRITE | OpenFlag.CREATE

# File names tried after the env var and ctypes.util.find_library().
_LIB_NAMES = [
    "libsqlite3.so.0",
    "libsqlite3.so",
    "libsqlite3.dylib",
    "sqlite3.dll",
    "winsqlite3.dll",
]

_lib = None


def _candidate_paths():
    env_path = os.environ.get("SQLEGER_NATIVE_LIB")
    if env_path:
        # An explicit path wins; do not silently fall back to another build.
        return [env_path]

    candidates = []
    found = ctypes.util.find_library("sqlite3")
    if found:
        candidates.append(found)
    candidates.extend(_LIB_NAMES)

    # CPython's own _sqlite3 extension links SQLite dynamically on most
    # platforms; symbol lookup through its handle reaches the dependency.
    try:
        import _sqlite3
        ext_path = getattr(_sqlite3, "__file__", None)
        if ext_path:
            candidates.append(ext_path)
    except ImportError:
        pass
    return candidates


def _open_library():
    errors = []
    for path in _candidate_paths():
        try:
            lib = ctypes.CDLL(path)
        except OSError as e:
            errors.append(f"{path}: {e}")
            continue
        if not hasattr(lib, "sqlite3_open_v2"):
            errors.append(f"{path}: no sqlite3_open_v2 symbol")
            continue
        logger.debug("Loaded SQLite native library from %s", path)
        return lib
    detail = "; ".join(errors) if errors else "no candidates"
    raise RuntimeError(
        "Could not load the SQLite native library. "
        f"Set SQLEGER_NATIVE_LIB env var. ({detail})"
    )


def load_library():
    global _lib
    if _lib is not None:
        return _lib

    lib = _open_library()

    # Define signatures

    # Library information
    lib.sqlite3_libversion.argtypes = []
    lib.sqlite3_libversion.restype = c_char_p

    lib.sqlite3_libversion_number.argtypes = []
    lib.sqlite3_libversion_number.restype = c_int

    lib.sqlite3_errstr.argtypes = [c_int]
    lib.sqlite3_errstr.restype = c_char_p

    # Memory management for API-allocated buffers
    lib.sqlite3_free.argtypes = [c_void_p]
    lib.sqlite3_free.restype = None

    # Connections
    lib.sqlite3_open_v2.argtypes = [c_char_p, POINTER(c_void_p), c_int, c_char_p]
    lib.sqlite3_open_v2.restype = c_int

    lib.sqlite3_close.argtypes = [c_void_p]
    lib.sqlite3_close.restype = c_int

    lib.sqlite3_close_v2.argtypes = [c_void_p]
    lib.sqlite3_close_v2.restype = c_int

    lib.sqlite3_errcode.argtypes = [c_void_p]
    lib.sqlite3_errcode.restype = c_int

    lib.sqlite3_extended_errcode.argtypes = [c_void_p]
    lib.sqlite3_extended_errcode.restype = c_int

    lib.sqlite3_errmsg.argtypes = [c_void_p]
    lib.sqlite3_errmsg.restype = c_char_p

    lib.sqlite3_extended_result_codes.argtypes = [c_void_p, c_int]
    lib.sqlite3_extended_result_codes.restype = c_int

    lib.sqlite3_busy_timeout.argtypes = [c_void_p, c_int]
    lib.sqlite3_busy_timeout.restype = c_int

    lib.sqlite3_changes.argtypes = [c_void_p]
    lib.sqlite3_changes.restype = c_int

    lib.sqlite3_total_changes.argtypes = [c_void_p]
    lib.sqlite3_total_changes.restype = c_int

    lib.sqlite3_last_insert_rowid.argtypes = [c_void_p]
    lib.sqlite3_last_insert_rowid.restype = c_int64

    lib.sqlite3_get_autocommit.argtypes = [c_void_p]
    lib.sqlite3_get_autocommit.restype = c_int

    lib.sqlite3_db_filename.argtypes = [c_void_p, c_char_p]
    lib.sqlite3_db_filename.restype = c_char_p

    # sqlite3_exec (no row callback is ever passed)
    lib.sqlite3_exec.argtypes = [c_void_p, c_char_p, c_void_p, c_void_p, POINTER(c_void_p)]
    lib.sqlite3_exec.restype = c_int

    # Statements
    lib.sqlite3_prepare_v2.argtypes = [c_void_p, c_void_p, c_int, POINTER(c_void_p), POINTER(c_void_p)]
    lib.sqlite3_prepare_v2.restype = c_int

    lib.sqlite3_prepare_v3.argtypes = [c_void_p, c_void_p, c_int, c_uint, POINTER(c_void_p), POINTER(c_void_p)]
    lib.sqlite3_prepare_v3.restype = c_int

    lib.sqlite3_finalize.argtypes = [c_void_p]
    lib.sqlite3_finalize.restype = c_int

    lib.sqlite3_reset.argtypes = [c_void_p]
    lib.sqlite3_reset.restype = c_int

    lib.sqlite3_clear_bindings.argtypes = [c_void_p]
    lib.sqlite3_clear_bindings.restype = c_int

    lib.sqlite3_step.argtypes = [c_void_p]
    lib.sqlite3_step.restype = c_int

    lib.sqlite3_sql.argtypes = [c_void_p]
    lib.sqlite3_sql.restype = c_char_p

    # Caller frees with sqlite3_free
    lib.sqlite3_expanded_sql.argtypes = [c_void_p]
    lib.sqlite3_expanded_sql.restype = c_void_p

    lib.sqlite3_stmt_readonly.argtypes = [c_void_p]
    lib.sqlite3_stmt_readonly.restype = c_int

    lib.sqlite3_stmt_busy.argtypes = [c_void_p]
    lib.sqlite3_stmt_busy.restype = c_int

    # Bindings
    lib.sqlite3_bind_int.argtypes = [c_void_p, c_int, c_int]
    lib.sqlite3_bind_int.restype = c_int

    lib.sqlite3_bind_int64.argtypes = [c_void_p, c_int, c_int64]
    lib.sqlite3_bind_int64.restype = c_int

    lib.sqlite3_bind_double.argtypes = [c_void_p, c_int, c_double]
    lib.sqlite3_bind_double.restype = c_int

    lib.sqlite3_bind_null.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_null.restype = c_int

    lib.sqlite3_bind_blob.argtypes = [c_void_p, c_int, c_void_p, c_int, c_void_p]
    lib.sqlite3_bind_blob.restype = c_int

    lib.sqlite3_bind_text.argtypes = [c_void_p, c_int, c_void_p, c_int, c_void_p]
    lib.sqlite3_bind_text.restype = c_int

    lib.sqlite3_bind_zeroblob.argtypes = [c_void_p, c_int, c_int]
    lib.sqlite3_bind_zeroblob.restype = c_int

    lib.sqlite3_bind_parameter_count.argtypes = [c_void_p]
    lib.sqlite3_bind_parameter_count.restype = c_int

    lib.sqlite3_bind_parameter_index.argtypes = [c_void_p, c_char_p]
    lib.sqlite3_bind_parameter_index.restype = c_int

    lib.sqlite3_bind_parameter_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_parameter_name.restype = c_char_p

    # Columns
    lib.sqlite3_column_count.argtypes = [c_void_p]
    lib.sqlite3_column_count.restype = c_int

    lib.sqlite3_data_count.argtypes = [c_void_p]
    lib.sqlite3_data_count.restype = c_int

    lib.sqlite3_column_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_name.restype = c_char_p

    lib.sqlite3_column_decltype.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_decltype.restype = c_char_p

    lib.sqlite3_column_type.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_type.restype = c_int

    lib.sqlite3_column_value.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_value.restype = c_void_p

    lib.sqlite3_column_int.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_int.restype = c_int

    lib.sqlite3_column_int64.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_int64.restype = c_int64

    lib.sqlite3_column_double.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_double.restype = c_double

    lib.sqlite3_column_bytes.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_bytes.restype = c_int

    lib.sqlite3_column_blob.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_blob.restype = c_void_p

    lib.sqlite3_column_text.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_text.restype = c_void_p

    # Values
    lib.sqlite3_value_type.argtypes = [c_void_p]
    lib.sqlite3_value_type.restype = c_int

    lib.sqlite3_value_numeric_type.argtypes = [c_void_p]
    lib.sqlite3_value_numeric_type.restype = c_int

    lib.sqlite3_value_int.argtypes = [c_void_p]
    lib.sqlite3_value_int.restype = c_int

    lib.sqlite3_value_int64.argtypes = [c_void_p]
    lib.sqlite3_value_int64.restype = c_int64

    lib.sqlite3_value_double.argtypes = [c_void_p]
    lib.sqlite3_value_double.restype = c_double

    lib.sqlite3_value_bytes.argtypes = [c_void_p]
    lib.sqlite3_value_bytes.restype = c_int

    lib.sqlite3_value_blob.argtypes = [c_void_p]
    lib.sqlite3_value_blob.restype = c_void_p

    lib.sqlite3_value_text.argtypes = [c_void_p]
    lib.sqlite3_value_text.restype = c_void_p

    lib.sqlite3_value_subtype.argtypes = [c_void_p]
    lib.sqlite3_value_subtype.restype = c_uint

    lib.sqlite3_value_dup.argtypes = [c_void_p]
    lib.sqlite3_value_dup.restype = c_void_p

    lib.sqlite3_value_free.argtypes = [c_void_p]
    lib.sqlite3_value_free.restype = None

    _lib = lib
    return _lib


def libversion():
    return load_library().sqlite3_libversion().decode("ascii")


def libversion_number():
    return load_library().sqlite3_libversion_number()


_PyBUF_READ = 0x100

_memory_view_from_memory = ctypes.pythonapi.PyMemoryView_FromMemory
_memory_view_from_memory.argtypes = [c_void_p, ctypes.c_ssize_t, c_int]
_memory_view_from_memory.restype = ctypes.py_object


def native_view(address, length):
    """Read-only, zero-copy byte view over ``length`` bytes of native memory.

    The view does not keep the memory alive: it is valid only as long as the
    native owner leaves the buffer in place.
    """
    if not address or length <= 0:
        return memoryview(b"")
    return _memory_view_from_memory(address, length, _PyBUF_READ)
