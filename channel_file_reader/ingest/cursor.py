from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Tuple, Union

import numpy as np

from channel_file_reader.ingest.errors import UnexpectedEndOfInput


BytesLike = Union[bytes, bytearray, memoryview]

# Wire types (little-endian, unsigned unless noted).
_U8 = np.dtype("u1")
_U16 = np.dtype("<u2")
_U32 = np.dtype("<u4")
_F32 = np.dtype("<f4")


class ByteCursor:
    """
    Forward-only cursor over an in-memory channel file.

    Contract:
      - every read consumes exactly the width of its type, or raises
        UnexpectedEndOfInput without moving;
      - peek(n) never moves; skip(n) is the explicit commit after a peek;
      - section()/field names build the path reported with errors
        (e.g. 'indications[2].extended.dfp.marker').

    One cursor belongs to one decode. It is not thread-safe.
    """

    def __init__(self, data: BytesLike) -> None:
        self._buf = bytes(data)
        self._pos = 0
        self._path: List[str] = []

    # -------------------------
    # Position
    # -------------------------
    @property
    def size(self) -> int:
        return len(self._buf)

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def tell(self) -> int:
        return self._pos

    # -------------------------
    # Section path
    # -------------------------
    @property
    def path(self) -> str:
        return self._join(self._path)

    @staticmethod
    def _join(parts: List[str]) -> str:
        out = ""
        for part in parts:
            if not part:
                continue
            if out and not part.startswith("["):
                out += "."
            out += part
        return out

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        self._path.append(name)
        try:
            yield
        finally:
            self._path.pop()

    def _need(self, n: int, field: str) -> None:
        if n > self.remaining:
            raise UnexpectedEndOfInput(
                f"unexpected end of input: need {n} byte(s), {self.remaining} left",
                offset=self._pos,
                section=self._join(self._path + [field]),
                needed=n,
                available=self.remaining,
            )

    # -------------------------
    # Raw bytes
    # -------------------------
    def read(self, n: int, field: str = "") -> bytes:
        self._need(n, field)
        out = self._buf[self._pos : self._pos + n]
        self._pos += n
        return out

    def peek(self, n: int, field: str = "") -> bytes:
        self._need(n, field)
        return self._buf[self._pos : self._pos + n]

    def skip(self, n: int, field: str = "") -> None:
        self._need(n, field)
        self._pos += n

    # -------------------------
    # Primitives
    # -------------------------
    def _scalar(self, dtype: np.dtype, field: str):
        self._need(dtype.itemsize, field)
        value = np.frombuffer(self._buf, dtype=dtype, count=1, offset=self._pos)[0]
        self._pos += dtype.itemsize
        return value

    def read_bool(self, field: str = "") -> bool:
        return bool(self._scalar(_U8, field) != 0)

    def read_byte(self, field: str = "") -> int:
        return int(self._scalar(_U8, field))

    def read_short(self, field: str = "") -> int:
        return int(self._scalar(_U16, field))

    def read_long(self, field: str = "") -> int:
        return int(self._scalar(_U32, field))

    def read_float(self, field: str = "") -> float:
        return float(self._scalar(_F32, field))

    def read_string(self, field: str = "") -> bytes:
        """Length-prefixed (u32) raw bytes; no terminator, no decoding."""
        n = self.read_long(field)
        return self.read(n, field)

    def read_bytes(self, n: int, field: str = "") -> Tuple[int, ...]:
        """Exactly ``n`` unsigned byte values."""
        self._need(n, field)
        arr = np.frombuffer(self._buf, dtype=_U8, count=n, offset=self._pos)
        self._pos += n
        return tuple(int(x) for x in arr)

    def read_longs(self, n: int, field: str = "") -> Tuple[int, ...]:
        """Exactly ``n`` consecutive u32 values."""
        width = n * _U32.itemsize
        self._need(width, field)
        arr = np.frombuffer(self._buf, dtype=_U32, count=n, offset=self._pos)
        self._pos += width
        return tuple(int(x) for x in arr)
