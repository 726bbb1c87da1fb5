"""Owning and borrowing wrappers over ``sqlite3_value*`` handles."""

import enum

from .native import load_library, native_view


class Datatype(enum.IntEnum):
    """Fundamental datatypes (SQLITE_INTEGER .. SQLITE_NULL)."""

    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5


class _ValueAccessors:
    # Shared read-only surface of Value and ValueRef.
    #
    # Accessors are pass-through reads: calling one that does not match
    # type() yields SQLite's own conversion (e.g. int64() on TEXT parses a
    # leading integer, text() on an INTEGER renders it). Nothing is checked.

    __slots__ = ()

    def c_ptr(self):
        return self._handle

    def __bool__(self):
        return self._handle is not None

    def _checked(self):
        if self._handle is None:
            raise ValueError(f"{type(self).__name__} is empty")
        return self._handle

    def type(self):
        return Datatype(self._lib.sqlite3_value_type(self._checked()))

    def numeric_type(self):
        """Datatype after SQLite applies numeric affinity (may convert the value)."""
        return Datatype(self._lib.sqlite3_value_numeric_type(self._checked()))

    def int32(self):
        return self._lib.sqlite3_value_int(self._checked())

    def int64(self):
        return self._lib.sqlite3_value_int64(self._checked())

    def double(self):
        return self._lib.sqlite3_value_double(self._checked())

    def bytes(self):
        """Size in bytes of the blob or text representation."""
        return self._lib.sqlite3_value_bytes(self._checked())

    def blob(self):
        """Zero-copy view of the blob; valid until the owning row changes."""
        handle = self._checked()
        # Pointer first, then size: the size call must see the final encoding.
        address = self._lib.sqlite3_value_blob(handle)
        return native_view(address, self._lib.sqlite3_value_bytes(handle))

    def text(self):
        """Zero-copy view of the UTF-8 text; valid until the owning row changes."""
        handle = self._checked()
        address = self._lib.sqlite3_value_text(handle)
        return native_view(address, self._lib.sqlite3_value_bytes(handle))

    def subtype(self):
        return self._lib.sqlite3_value_subtype(self._checked())

    def dup(self):
        """Independent owning copy of this value."""
        handle = self._lib.sqlite3_value_dup(self._checked())
        if not handle:
            raise MemoryError("sqlite3_value_dup failed")
        return Value(handle)


class Value(_ValueAccessors):
    """Owns a ``sqlite3_value*``; released by free(), the context manager, or GC.

    ``Value(handle)`` adopts a raw handle the caller already owns.
    ``Value(other_value)`` moves: ``other_value`` is left empty.
    """

    __slots__ = ("_handle", "_lib")

    def __init__(self, handle=None):
        self._lib = load_library()
        if isinstance(handle, Value):
            handle = handle.take_c_ptr()
        elif isinstance(handle, ValueRef):
            raise TypeError("a ValueRef does not own its handle; use dup()")
        self._handle = handle or None

    def free(self):
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._lib.sqlite3_value_free(handle)

    def take_c_ptr(self):
        handle, self._handle = self._handle, None
        return handle

    def move_from(self, other):
        if other is self:
            return self
        self.free()
        self._handle = other.take_c_ptr()
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.free()

    def __del__(self):
        if getattr(self, "_handle", None) is not None:
            self.free()

    def __repr__(self):
        if self._handle is None:
            return "Value(<empty>)"
        return f"Value({self.type().name} at {self._handle:#x})"


class ValueRef(_ValueAccessors):
    """Borrows a ``sqlite3_value*``; never frees it.

    Valid only while the handle it was built from is alive (for column
    values: until the statement steps, resets or is finalized).
    """

    __slots__ = ("_handle", "_lib")

    def __init__(self, handle=None):
        self._lib = load_library()
        if isinstance(handle, _ValueAccessors):
            handle = handle.c_ptr()
        self._handle = handle or None

    def __eq__(self, other):
        if isinstance(other, ValueRef):
            return self._handle == other._handle
        return NotImplemented

    def __hash__(self):
        return hash(self._handle)

    def __repr__(self):
        if self._handle is None:
            return "ValueRef(<empty>)"
        return f"ValueRef({self.type().name} at {self._handle:#x})"
