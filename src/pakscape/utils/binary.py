"""Bounds-checked binary I/O utilities for PAK and raster parsing."""

import struct
from enum import Enum
from io import BytesIO
from typing import BinaryIO, Optional


class BufferUnderrun(ValueError):
    """Raised when a read would run past the end of the buffer."""


class ByteOrder(Enum):
    """Byte order enum for struct packing/unpacking."""
    BIG_ENDIAN = ">"
    LITTLE_ENDIAN = "<"


INT32_MAX = 0x7FFFFFFF


def checked_mul(*factors: int, limit: int = INT32_MAX) -> Optional[int]:
    """
    Multiply non-negative factors, returning None if the product exceeds limit.

    Every intermediate product is checked so a huge first factor cannot
    slip through because a later factor is zero.
    """
    result = 1
    for factor in factors:
        if factor < 0:
            return None
        result *= factor
        if result > limit:
            return None
    return result


def slice_checked(data: bytes, offset: int, length: int) -> bytes:
    """Return data[offset:offset+length] or raise BufferUnderrun."""
    if offset < 0 or length < 0 or offset + length > len(data):
        raise BufferUnderrun(
            f"range {offset}+{length} outside buffer of {len(data)} bytes")
    return bytes(data[offset:offset + length])


def read_int32_le(data: bytes, offset: int) -> int:
    """Read a signed little-endian 32-bit integer at offset."""
    return struct.unpack("<i", slice_checked(data, offset, 4))[0]


def write_int32_le(buffer: bytearray, offset: int, value: int):
    """Overwrite 4 bytes of buffer at offset with a signed LE int32."""
    if offset < 0 or offset + 4 > len(buffer):
        raise BufferUnderrun(
            f"write at {offset} outside buffer of {len(buffer)} bytes")
    struct.pack_into("<i", buffer, offset, value)


class IoBuffer:
    """Sequential binary reader with endian support and bounds checking."""

    def __init__(self, stream: BinaryIO, byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN):
        self.stream = stream
        self.byte_order = byte_order
        current = stream.tell()
        stream.seek(0, 2)
        self._size = stream.tell()
        stream.seek(current)

    @classmethod
    def from_bytes(cls, data: bytes, byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN) -> 'IoBuffer':
        """Create from bytes."""
        return cls(BytesIO(data), byte_order)

    @property
    def size(self) -> int:
        """Total length of the underlying buffer."""
        return self._size

    @property
    def position(self) -> int:
        """Current position in stream."""
        return self.stream.tell()

    @position.setter
    def position(self, value: int):
        self.seek(value)

    @property
    def remaining(self) -> int:
        """Bytes left between the position and the end."""
        return max(0, self._size - self.stream.tell())


    def has_bytes(self, num_bytes: int) -> bool:
        """Check if there are at least num_bytes remaining."""
        return num_bytes >= 0 and self.remaining >= num_bytes

    def _require(self, num_bytes: int):
        if not self.has_bytes(num_bytes):
            raise BufferUnderrun(
                f"need {num_bytes} bytes at {self.position}, "
                f"only {self.remaining} left")

    def skip(self, num_bytes: int):
        """Skip bytes from current position."""
        self._require(num_bytes)
        self.stream.seek(num_bytes, 1)

    def seek(self, offset: int, whence: int = 0):
        """Seek in stream (whence: 0=start, 1=current, 2=end)."""
        if whence == 1:
            target = self.position + offset
        elif whence == 2:
            target = self._size + offset
        else:
            target = offset
        if target < 0 or target > self._size:
            raise BufferUnderrun(f"seek to {target} outside buffer of {self._size} bytes")
        self.stream.seek(target)

    def read_bytes(self, count: int) -> bytes:
        """Read exactly count raw bytes."""
        self._require(count)
        return self.stream.read(count)

    def read_byte(self) -> int:
        """Read single byte (0-255)."""
        return self.read_bytes(1)[0]

    def read_uint8(self) -> int:
        return self.read_byte()

    def read_uint16(self) -> int:
        """Read unsigned 16-bit integer."""
        fmt = f"{self.byte_order.value}H"
        return struct.unpack(fmt, self.read_bytes(2))[0]

    def read_int32(self) -> int:
        """Read signed 32-bit integer."""
        fmt = f"{self.byte_order.value}i"
        return struct.unpack(fmt, self.read_bytes(4))[0]

    def read_cstring(self, length: int, trim_null: bool = True) -> str:
        """Read fixed-length ASCII string."""
        data = self.read_bytes(length)
        if trim_null:
            null_idx = data.find(b'\0')
            if null_idx != -1:
                data = data[:null_idx]
        return data.decode('ascii', errors='replace')
