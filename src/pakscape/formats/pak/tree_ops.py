"""
Tree Operations - add, rename, delete, move and copy archive nodes

Operations only touch the PakTree. The archive's data and entries are stale
after any of them until the next save_archive().

Operations return a TreeOpResult rather than raising, so a rejected request
(bad name, cyclic move, unknown handle) can be reported to the user.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .pak_file import MAX_NAME_LENGTH, PakArchive, PakEntry, PakNode, PakTree

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT TYPE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class TreeOpResult:
    """Result of a tree operation."""
    success: bool
    message: str
    node_id: Optional[int] = None
    node_ids: List[int] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success


def _reject(message: str) -> TreeOpResult:
    logger.info(f"Tree operation rejected: {message}")
    return TreeOpResult(False, message)


def _clean_name(name: str) -> Optional[str]:
    """Trim whitespace; None if empty or containing a path separator."""
    trimmed = name.strip()
    if not trimmed or "/" in trimmed or "\0" in trimmed:
        return None
    return trimmed


def _folder(tree: PakTree, node_id: int) -> Optional[PakNode]:
    node = tree.get(node_id)
    if node is None or not node.is_folder:
        return None
    return node


def clip_to_bytes(name: str, max_bytes: int) -> str:
    """Longest prefix of name whose UTF-8 encoding fits in max_bytes."""
    if max_bytes <= 0:
        return ""
    encoded = name.encode("utf-8")
    if len(encoded) <= max_bytes:
        return name
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


# ═══════════════════════════════════════════════════════════════════════════════
# ADD / RENAME / DELETE
# ═══════════════════════════════════════════════════════════════════════════════

def add_folder(tree: PakTree, parent_id: int, name: str) -> TreeOpResult:
    """Create a folder under parent_id, or return the existing one."""
    parent = _folder(tree, parent_id)
    if parent is None:
        return _reject(f"node {parent_id} is not a folder")
    clean = _clean_name(name)
    if clean is None:
        return _reject(f"invalid folder name {name!r}")

    existing = tree.find_child(parent_id, clean, folders_only=True)
    if existing is not None:
        return TreeOpResult(True, f"Folder {clean} already exists", existing.node_id)

    node = tree.create_node(parent_id, clean)
    tree.sort_children(parent_id, recursive=False)
    return TreeOpResult(True, f"Created folder {clean}", node.node_id)


def add_file(tree: PakTree, parent_id: int, name: str, data: bytes) -> TreeOpResult:
    """
    Add a file with local data under parent_id.

    An existing file of the same name is overwritten: its local data is
    replaced and its directory entry dropped.
    """
    parent = _folder(tree, parent_id)
    if parent is None:
        return _reject(f"node {parent_id} is not a folder")
    clean = _clean_name(name)
    if clean is None:
        return _reject(f"invalid file name {name!r}")

    payload = bytes(data)
    existing = tree.find_child(parent_id, clean)
    if existing is not None:
        if existing.is_folder:
            return _reject(f"a folder named {clean} already exists")
        existing.local_data = payload
        existing.entry = None
        return TreeOpResult(True, f"Replaced {clean} ({len(payload):,} bytes)", existing.node_id)

    node = tree.create_node(parent_id, clean, local_data=payload)
    tree.sort_children(parent_id, recursive=False)
    return TreeOpResult(True, f"Added {clean} ({len(payload):,} bytes)", node.node_id)


def rename_node(tree: PakTree, node_id: int, new_name: str) -> TreeOpResult:
    """
    Rename a node.

    If the node has a directory entry, the name is clipped so that the
    node's current parent path plus the name fits the 55-byte name field,
    and the entry path is rewritten under that parent.
    """
    node = tree.get(node_id)
    if node is None:
        return _reject(f"unknown node {node_id}")
    if node_id == tree.root_id:
        return _reject("the root folder cannot be renamed")
    clean = _clean_name(new_name)
    if clean is None:
        return _reject(f"invalid name {new_name!r}")

    if node.entry is not None:
        # Prefix comes from the live tree; the entry path is stale after a move.
        # UTF-8 length is never shorter than the written field, which stores
        # one sentinel byte per non-ASCII character.
        parent_path = tree.path_of(node.parent_id) if node.parent_id is not None else ""
        prefix = f"{parent_path}/" if parent_path else ""
        available = MAX_NAME_LENGTH - len(prefix.encode("utf-8"))
        clipped = clip_to_bytes(clean, available)
        if not clipped:
            return _reject(f"no room for a name under {prefix!r}")
        if clipped != clean:
            logger.debug(f"Rename: clipped {clean!r} to {clipped!r} to fit {prefix!r}")
        clean = clipped
        node.entry = PakEntry(prefix + clean, node.entry.offset, node.entry.length)

    node.name = clean
    if node.parent_id is not None:
        tree.sort_children(node.parent_id, recursive=False)
    return TreeOpResult(True, f"Renamed to {clean}", node_id)


def delete_node(tree: PakTree, node_id: int) -> TreeOpResult:
    """Remove a node (and everything below it) from the tree."""
    node = tree.get(node_id)
    if node is None:
        return _reject(f"unknown node {node_id}")
    if node_id == tree.root_id:
        return _reject("the root folder cannot be deleted")

    tree.discard(node_id)
    return TreeOpResult(True, f"Deleted {node.name}", node_id)


# ═══════════════════════════════════════════════════════════════════════════════
# MOVE / COPY
# ═══════════════════════════════════════════════════════════════════════════════

def _check_destination(tree: PakTree, node_id: int, dest_id: int) -> Optional[str]:
    """Reason the node cannot go under dest_id, or None if it can."""
    if node_id not in tree:
        return f"unknown node {node_id}"
    if _folder(tree, dest_id) is None:
        return f"destination {dest_id} is not a folder"
    if node_id == tree.root_id:
        return "the root folder cannot be moved"
    if tree.is_ancestor(node_id, dest_id):
        return f"cannot put {tree.node(node_id).name} inside itself"
    return None


def move_node(tree: PakTree, node_id: int, dest_id: int) -> TreeOpResult:
    """Reparent node_id under dest_id, rejecting cycles."""
    reason = _check_destination(tree, node_id, dest_id)
    if reason:
        return _reject(reason)

    node = tree.node(node_id)
    if node.parent_id == dest_id:
        return TreeOpResult(True, f"{node.name} is already there", node_id)

    tree.detach(node_id)
    tree.attach(node_id, dest_id)
    tree.sort_children(dest_id, recursive=False)
    return TreeOpResult(True, f"Moved {node.name}", node_id)


def _clone_into(source: PakTree, node_id: int, target: PakTree, dest_id: int,
                source_data: Optional[bytes]) -> PakNode:
    """
    Deep-copy a subtree from source into target under dest_id.

    When source_data is given (copying between archives) file payloads are
    materialized as local data, since entries only make sense against the
    bytes they came from.
    """
    original = source.node(node_id)
    entry = original.entry
    local_data = original.local_data
    if source_data is not None and not original.is_folder:
        local_data = extract_node_data(original, source_data) or b""
        entry = None

    clone = target.create_node(dest_id, original.name, entry=entry, local_data=local_data)
    for child_id in list(original.children):
        _clone_into(source, child_id, target, clone.node_id, source_data)
    return clone


def copy_node(tree: PakTree, node_id: int, dest_id: int) -> TreeOpResult:
    """Copy node_id (and its subtree) under dest_id with fresh handles."""
    reason = _check_destination(tree, node_id, dest_id)
    if reason:
        return _reject(reason)

    clone = _clone_into(tree, node_id, tree, dest_id, None)
    tree.sort_children(dest_id, recursive=False)
    return TreeOpResult(True, f"Copied {clone.name}", clone.node_id)


# ═══════════════════════════════════════════════════════════════════════════════
# PAYLOADS
# ═══════════════════════════════════════════════════════════════════════════════

def extract_node_data(node: PakNode, data: bytes) -> Optional[bytes]:
    """Local data, else the node's slice of data if in range."""
    if node.local_data is not None:
        return bytes(node.local_data)
    entry = node.entry
    if entry is None:
        return None
    if entry.offset < 0 or entry.length < 0 or entry.end > len(data):
        return None
    return bytes(data[entry.offset:entry.end])


def extract_data(archive: PakArchive, node_id: int) -> Optional[bytes]:
    """Current contents of a file node, or None for folders and stale ranges."""
    node = archive.tree.get(node_id)
    if node is None:
        return None
    return extract_node_data(node, archive.data)


# ═══════════════════════════════════════════════════════════════════════════════
# CLIPBOARD
# ═══════════════════════════════════════════════════════════════════════════════

class ClipboardMode(Enum):
    CUT = "cut"
    COPY = "copy"


@dataclass
class Clipboard:
    """
    Cut/copy buffer owned by the caller's session.

    Holds handles into source.tree; paste() resolves them at paste time, so
    nodes deleted in the meantime are skipped.
    """
    mode: Optional[ClipboardMode] = None
    node_ids: List[int] = field(default_factory=list)
    source: Optional[PakArchive] = None

    @property
    def is_empty(self) -> bool:
        return self.source is None or not self.node_ids

    def clear(self):
        self.mode = None
        self.node_ids = []
        self.source = None


def _fill(clipboard: Clipboard, mode: ClipboardMode, archive: PakArchive,
          node_ids: List[int]) -> TreeOpResult:
    valid = [nid for nid in node_ids if nid in archive.tree and nid != archive.root_id]
    if not valid:
        return _reject("nothing to put on the clipboard")
    clipboard.mode = mode
    clipboard.node_ids = valid
    clipboard.source = archive
    return TreeOpResult(True, f"{mode.value} {len(valid)} item(s)", node_ids=list(valid))


def cut(clipboard: Clipboard, archive: PakArchive, node_ids: List[int]) -> TreeOpResult:
    return _fill(clipboard, ClipboardMode.CUT, archive, node_ids)


def copy_to_clipboard(clipboard: Clipboard, archive: PakArchive, node_ids: List[int]) -> TreeOpResult:
    return _fill(clipboard, ClipboardMode.COPY, archive, node_ids)


def paste(clipboard: Clipboard, target: PakArchive, dest_id: int) -> TreeOpResult:
    """
    Paste clipboard contents into dest_id of target.

    Within one archive a cut moves and a copy duplicates. Across archives
    payloads are copied as local data and a cut removes the originals.
    A cut is consumed by a successful paste.
    """
    if clipboard.is_empty:
        return _reject("clipboard is empty")
    if _folder(target.tree, dest_id) is None:
        return _reject(f"destination {dest_id} is not a folder")

    source = clipboard.source
    same_archive = source is target
    pasted: List[int] = []
    errors: List[str] = []

    for node_id in clipboard.node_ids:
        if node_id not in source.tree:
            continue
        if same_archive:
            op = move_node if clipboard.mode is ClipboardMode.CUT else copy_node
            result = op(target.tree, node_id, dest_id)
            if result:
                pasted.append(result.node_id)
            else:
                errors.append(result.message)
        else:
            clone = _clone_into(source.tree, node_id, target.tree, dest_id, source.data)
            pasted.append(clone.node_id)
            if clipboard.mode is ClipboardMode.CUT:
                source.tree.discard(node_id)

    target.tree.sort_children(dest_id, recursive=False)
    if clipboard.mode is ClipboardMode.CUT and pasted:
        clipboard.clear()

    if not pasted:
        return _reject("; ".join(errors) or "nothing left to paste")
    message = f"Pasted {len(pasted)} item(s)"
    if errors:
        message += f" ({len(errors)} skipped: {'; '.join(errors)})"
    return TreeOpResult(True, message, pasted[0], pasted)
