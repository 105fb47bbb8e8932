"""
PAK Writer - PakTree to a fresh PACK image

Files are written in case-insensitive path order, payloads first, directory
last, then the header is patched in. Each written file node gets its entry
replaced by the new one and loses any pending local data.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ...config import CodecSettings, DEFAULT_SETTINGS
from ...utils.binary import INT32_MAX, write_int32_le
from .pak_file import (
    PAK_MAGIC, HEADER_SIZE, ENTRY_SIZE, NAME_FIELD_SIZE, MAX_NAME_LENGTH,
    PakArchive, PakEntry, PakError, PakNode, PakTree,
)

logger = logging.getLogger(__name__)


@dataclass
class PakWriteResult:
    data: bytes
    entries: List[PakEntry]


def collect_files(tree: PakTree) -> List[Tuple[str, PakNode]]:
    """(path, node) for every file, sorted by path case-insensitively."""
    files: List[Tuple[str, PakNode]] = []

    def visit(node_id: int, current_path: str):
        for child in tree.children(node_id):
            next_path = f"{current_path}/{child.name}" if current_path else child.name
            if child.is_folder:
                visit(child.node_id, next_path)
            else:
                files.append((next_path, child))

    visit(tree.root_id, "")
    files.sort(key=lambda item: item[0].casefold())
    return files


def resolve_payload(node: PakNode, prior_data: Optional[bytes]) -> bytes:
    """Local data, else the node's slice of prior_data, else empty."""
    if node.local_data is not None:
        return bytes(node.local_data)
    entry = node.entry
    if entry is None or prior_data is None:
        return b""
    if entry.offset < 0 or entry.length < 0 or entry.end > len(prior_data):
        logger.warning(
            f"PAK: {entry.name} range {entry.offset}+{entry.length} is outside "
            f"the previous archive ({len(prior_data)} bytes); writing it empty")
        return b""
    return bytes(prior_data[entry.offset:entry.end])


def collect_payloads(tree: PakTree, prior_data: Optional[bytes] = None) -> List[Tuple[str, bytes]]:
    """Flattened (path, payload) list without touching the tree."""
    return [(path, resolve_payload(node, prior_data)) for path, node in collect_files(tree)]


def encode_name(name: str, settings: Optional[CodecSettings] = None) -> bytes:
    """
    Encode a path for the 56-byte name field.

    Printable ASCII is kept, NUL is dropped, anything else becomes the
    sentinel. At most 55 bytes are kept so the field stays NUL terminated.
    """
    sentinel = ord((settings or DEFAULT_SETTINGS).name_sentinel)
    result = bytearray()
    substituted = False
    for ch in name:
        if len(result) >= MAX_NAME_LENGTH:
            break
        code = ord(ch)
        if 0x20 <= code <= 0x7E:
            result.append(code)
        elif code != 0:
            result.append(sentinel)
            substituted = True

    if substituted:
        logger.warning(f"PAK: name {name!r} is not printable ASCII; stored as {result.decode('ascii')!r}")
    return bytes(result).ljust(NAME_FIELD_SIZE, b"\0")


def write_pak(tree: PakTree, prior_data: Optional[bytes] = None,
              settings: Optional[CodecSettings] = None) -> PakWriteResult:
    """
    Serialize tree into a PAK image.

    Args:
        tree: Tree to write; file nodes get their entries refreshed
        prior_data: Bytes the existing entries point into (may be None)
        settings: Name sentinel (DEFAULT_SETTINGS if None)
    """
    output = bytearray(HEADER_SIZE)
    written: List[Tuple[PakNode, PakEntry]] = []

    for path, node in collect_files(tree):
        offset = len(output)
        payload = resolve_payload(node, prior_data)
        output += payload
        written.append((node, PakEntry(path, offset, len(payload))))

    new_entries = [entry for _, entry in written]

    dir_offset = len(output)
    dir_length = len(new_entries) * ENTRY_SIZE
    if dir_offset + dir_length > INT32_MAX:
        raise PakError(f"Archive would be {dir_offset + dir_length:,} bytes; PAK offsets are 32-bit")

    for entry in new_entries:
        record = bytearray(encode_name(entry.name, settings))
        record += bytes(8)
        write_int32_le(record, NAME_FIELD_SIZE, entry.offset)
        write_int32_le(record, NAME_FIELD_SIZE + 4, entry.length)
        output += record

    output[0:4] = PAK_MAGIC
    write_int32_le(output, 4, dir_offset)
    write_int32_le(output, 8, dir_length)

    # Nodes are only touched once the image is complete
    for node, entry in written:
        node.entry = entry
        node.local_data = None

    logger.debug(f"PAK: wrote {len(new_entries)} files, {len(output):,} bytes")
    return PakWriteResult(bytes(output), new_entries)


def save_archive(archive: PakArchive, settings: Optional[CodecSettings] = None) -> bytes:
    """Serialize archive and refresh its data, entries and revision."""
    result = write_pak(archive.tree, archive.data, settings)
    archive.data = result.data
    archive.entries = result.entries
    archive.revision += 1
    return result.data
