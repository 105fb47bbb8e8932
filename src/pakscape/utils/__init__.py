"""Shared helpers."""
from .binary import (
    IoBuffer, ByteOrder, BufferUnderrun, INT32_MAX,
    checked_mul, slice_checked, read_int32_le, write_int32_le,
)

__all__ = [
    'IoBuffer', 'ByteOrder', 'BufferUnderrun', 'INT32_MAX',
    'checked_mul', 'slice_checked', 'read_int32_le', 'write_int32_le',
]
