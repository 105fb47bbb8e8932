"""
PAK Reader - raw bytes to PakArchive

Every offset and length read from the file is validated against the
buffer before it is used; any violation aborts the parse with BadDirectory.
"""

import logging
from typing import List

from ...utils.binary import BufferUnderrun, IoBuffer
from .pak_file import (
    PAK_MAGIC, HEADER_SIZE, ENTRY_SIZE, NAME_FIELD_SIZE,
    BadDirectory, InvalidHeader, PakArchive, PakEntry, PakTree,
)

logger = logging.getLogger(__name__)


def _check_range(offset: int, length: int, size: int, what: str):
    if offset < 0 or length < 0 or offset + length > size:
        raise BadDirectory(
            f"{what} range {offset}+{length} exceeds archive of {size} bytes")


def read_directory(data: bytes) -> List[PakEntry]:
    """Validate the header and return the flat directory."""
    if len(data) < HEADER_SIZE:
        raise InvalidHeader(f"Not a valid Quake PAK ({len(data)} bytes is shorter than the header).")

    io = IoBuffer.from_bytes(data)
    magic = io.read_bytes(4)
    if magic != PAK_MAGIC:
        raise InvalidHeader(f"Not a valid Quake PAK (header {magic!r}, expected {PAK_MAGIC!r}).")

    dir_offset = io.read_int32()
    dir_length = io.read_int32()
    _check_range(dir_offset, dir_length, len(data), "Directory")

    if dir_length % ENTRY_SIZE != 0:
        raise BadDirectory(
            f"Directory length {dir_length} is not a multiple of {ENTRY_SIZE}")

    count = dir_length // ENTRY_SIZE
    entries: List[PakEntry] = []
    io.seek(dir_offset)
    try:
        for i in range(count):
            name = io.read_cstring(NAME_FIELD_SIZE)
            file_pos = io.read_int32()
            file_len = io.read_int32()
            _check_range(file_pos, file_len, len(data), f"Entry {i} ({name!r})")
            entries.append(PakEntry(name, file_pos, file_len))
    except BufferUnderrun as e:
        raise BadDirectory(f"Directory table is truncated: {e}") from e

    return entries


def build_tree(entries: List[PakEntry]) -> PakTree:
    """Build a folder/file tree from a flat entry list."""
    tree = PakTree()

    for entry in entries:
        parts = [p for p in entry.name.split("/") if p]
        if not parts:
            logger.debug(f"PAK: skipping entry with empty path at offset {entry.offset}")
            continue

        current = tree.root_id
        for folder_name in parts[:-1]:
            folder = tree.find_child(current, folder_name, folders_only=True)
            if folder is None:
                folder = tree.create_node(current, folder_name)
            current = folder.node_id

        tree.create_node(current, parts[-1], entry=entry)

    tree.sort_children()
    return tree


def load_pak(data: bytes, name: str = "") -> PakArchive:
    """
    Parse a PAK image.

    Args:
        data: Whole archive contents
        name: Display name (usually the file name)

    Raises:
        InvalidHeader: buffer too short or magic mismatch
        BadDirectory: any directory offset/length/alignment violation
    """
    data = bytes(data)
    entries = read_directory(data)
    tree = build_tree(entries)
    logger.debug(f"PAK: {name or '<memory>'} has {len(entries)} entries, {len(tree)} nodes")
    return PakArchive(name=name, data=data, entries=entries, tree=tree)
