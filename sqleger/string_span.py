"""Bounded, non-owning views over text handed to the native library."""

import ctypes

# Zero-length spans still need a non-NULL address: SQLite binds NULL for a
# NULL blob/text pointer.
_EMPTY = ctypes.create_string_buffer(1)
_EMPTY_ADDRESS = ctypes.addressof(_EMPTY)


class StringSpan:
    """A pointer + length over UTF-8 (or arbitrary) bytes.

    ``StringSpan(source)`` derives the length from null termination: it stops
    at the first NUL byte, or at the end of the buffer when there is none.
    ``StringSpan(source, length)`` bounds the view explicitly; bytes past
    ``length`` are never read by the native side.

    ``bytes`` and ``bytearray`` sources (and writable memoryviews) are
    borrowed, not copied. ``str`` sources are encoded once.
    """

    __slots__ = ("_source", "_length", "_address", "_keepalive")

    def __init__(self, source, length=None):
        bound = None
        if isinstance(source, StringSpan):
            # A span of a span never reaches past the parent's end.
            bound = source._length
            if length is None:
                length = bound
            source = source._source
        elif isinstance(source, str):
            source = source.encode("utf-8")
        elif isinstance(source, memoryview):
            if source.readonly or not source.c_contiguous or source.itemsize != 1:
                source = source.tobytes()
            elif source.format != "B":
                source = source.cast("B")
        elif not isinstance(source, (bytes, bytearray)):
            raise TypeError(f"StringSpan expects str or a bytes-like object, got {type(source).__name__}")

        size = len(source) if bound is None else bound
        if length is None:
            nul = source.find(b"\0") if not isinstance(source, memoryview) else _find_nul(source)
            length = size if nul < 0 else nul
        elif length < 0 or length > size:
            raise ValueError(f"length {length} out of range for a buffer of {size} bytes")

        self._source = source
        self._length = length
        self._address = None
        self._keepalive = None

    @classmethod
    def from_zstring(cls, source):
        return cls(source)

    def __len__(self):
        return self._length

    def length(self):
        return self._length

    def data(self):
        """Zero-copy view of the spanned bytes."""
        return memoryview(self._source)[: self._length]

    def __bytes__(self):
        return bytes(self._source[: self._length])

    def __str__(self):
        return bytes(self).decode("utf-8")

    def __repr__(self):
        return f"StringSpan({bytes(self)!r})"

    def c_ptr(self):
        """Address of the first byte, valid for ``len(self)`` bytes while this span lives."""
        if self._length == 0:
            return _EMPTY_ADDRESS
        if self._address is None:
            if isinstance(self._source, bytes):
                ptr = ctypes.c_char_p(self._source)
                self._address = ctypes.cast(ptr, ctypes.c_void_p).value
                self._keepalive = ptr
            else:
                array = (ctypes.c_char * len(self._source)).from_buffer(self._source)
                self._address = ctypes.addressof(array)
                self._keepalive = array
        return self._address

    def __eq__(self, other):
        if isinstance(other, StringSpan):
            return self._length == other._length and bytes(self) == bytes(other)
        if isinstance(other, str):
            other = other.encode("utf-8")
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self._length == len(other) and bytes(self) == bytes(other)
        return NotImplemented

    def __hash__(self):
        return hash(bytes(self))


def _find_nul(view):
    for i, b in enumerate(view):
        if b == 0:
            return i
    return -1


def ss(text, length=None):
    """Short constructor for literal spans: ``ss("SELECT 1")``."""
    return StringSpan(text, length)


def as_span(text):
    """Coerce ``text`` to a StringSpan; spans pass through unchanged."""
    if isinstance(text, StringSpan):
        return text
    return StringSpan(text)
