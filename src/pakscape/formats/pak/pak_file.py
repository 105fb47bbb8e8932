"""
PAK Archive Model - Quake PACK container

Format:
- Header (12 bytes):
  - Magic: "PACK" (4 bytes)
  - Directory offset (int32)
  - Directory length (int32)
- [File data...]
- Directory at offset, 64 bytes per entry:
  - Name, NUL padded (56 bytes)
  - File offset (int32)
  - File length (int32)

The tree is an arena: nodes are looked up by integer handle, and parents and
children refer to each other only by handle.
"""

import itertools
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


PAK_MAGIC = b"PACK"
HEADER_SIZE = 12
ENTRY_SIZE = 64
NAME_FIELD_SIZE = 56
MAX_NAME_LENGTH = NAME_FIELD_SIZE - 1
ROOT_NAME = "/"


class PakError(ValueError):
    """Base class for archive errors."""


class InvalidHeader(PakError):
    """Buffer too short or missing the PACK magic."""

    def __init__(self, message: str = "Not a valid Quake PAK (missing PACK header)."):
        super().__init__(message)


class BadDirectory(PakError):
    """Directory table offset, length, alignment or bounds are invalid."""

    def __init__(self, message: str = "Directory table is corrupt or truncated."):
        super().__init__(message)


@dataclass(frozen=True)
class PakEntry:
    """A single file entry in a PAK directory."""
    name: str       # full path: "progs/v_shot.mdl"
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass
class PakNode:
    """
    A folder or file in the archive tree.

    A node is a folder iff it carries neither a directory entry nor local
    data. Children are handles into the owning PakTree.
    """
    node_id: int
    name: str
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)
    entry: Optional[PakEntry] = None
    local_data: Optional[bytes] = None  # newly added or replaced content

    @property
    def is_folder(self) -> bool:
        return self.entry is None and self.local_data is None

    @property
    def file_size(self) -> int:
        if self.local_data is not None:
            return len(self.local_data)
        return self.entry.length if self.entry else 0

    @property
    def file_type(self) -> str:
        if self.is_folder:
            return "Folder"
        dot = self.name.rfind(".")
        extension = self.name[dot + 1:].upper() if dot > 0 else ""
        return f"{extension} File".strip()


def folder_first_key(node: PakNode):
    """Sort key: folders before files, then case-insensitive name."""
    return (not node.is_folder, node.name.lower())


class PakTree:
    """Arena of PakNodes rooted at a folder named '/'."""

    def __init__(self):
        self._nodes: Dict[int, PakNode] = {}
        self._next_id = itertools.count(1)
        self.root_id = self._allocate(ROOT_NAME, None).node_id

    def _allocate(self, name: str, parent_id: Optional[int],
                  entry: Optional[PakEntry] = None,
                  local_data: Optional[bytes] = None) -> PakNode:
        node = PakNode(next(self._next_id), name, parent_id, [], entry, local_data)
        self._nodes[node.node_id] = node
        return node

    # ─────────────────────────────────────────────────────────────
    # LOOKUP
    # ─────────────────────────────────────────────────────────────

    @property
    def root(self) -> PakNode:
        return self._nodes[self.root_id]

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: int) -> PakNode:
        """Get a node by handle. Raises KeyError for unknown handles."""
        return self._nodes[node_id]

    def get(self, node_id: Optional[int]) -> Optional[PakNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def parent(self, node_id: int) -> Optional[PakNode]:
        return self.get(self.node(node_id).parent_id)

    def children(self, node_id: int) -> List[PakNode]:
        return [self._nodes[child] for child in self.node(node_id).children]

    def find_child(self, parent_id: int, name: str,
                   folders_only: bool = False) -> Optional[PakNode]:
        for child in self.children(parent_id):
            if child.name == name and (child.is_folder or not folders_only):
                return child
        return None

    def ancestors(self, node_id: int) -> Iterator[PakNode]:
        """Yield the parent chain of node_id, nearest first."""
        current = self.parent(node_id)
        while current is not None:
            yield current
            current = self.get(current.parent_id)

    def is_ancestor(self, ancestor_id: int, node_id: int) -> bool:
        """True if ancestor_id is node_id or one of its ancestors."""
        if ancestor_id == node_id:
            return True
        return any(a.node_id == ancestor_id for a in self.ancestors(node_id))

    def walk(self, node_id: Optional[int] = None) -> Iterator[PakNode]:
        """Depth-first pre-order traversal starting at node_id (root by default)."""
        start = self.root_id if node_id is None else node_id
        stack = [start]
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def path_of(self, node_id: int) -> str:
        """Slash-joined path from the root (root itself is '')."""
        if node_id == self.root_id:
            return ""
        parts = [self.node(node_id).name]
        parts.extend(a.name for a in self.ancestors(node_id) if a.node_id != self.root_id)
        return "/".join(reversed(parts))

    def find_path(self, path: str) -> Optional[PakNode]:
        """Resolve a slash-separated path to a node."""
        current = self.root
        for part in (p for p in path.split("/") if p):
            current = self.find_child(current.node_id, part)
            if current is None:
                return None
        return current

    # ─────────────────────────────────────────────────────────────
    # STRUCTURE
    # ─────────────────────────────────────────────────────────────

    def create_node(self, parent_id: int, name: str,
                    entry: Optional[PakEntry] = None,
                    local_data: Optional[bytes] = None) -> PakNode:
        """Create a node and append it to parent_id's children."""
        parent = self.node(parent_id)
        node = self._allocate(name, parent_id, entry, local_data)
        parent.children.append(node.node_id)
        return node

    def detach(self, node_id: int):
        """Unlink node_id from its parent, keeping the subtree in the arena."""
        node = self.node(node_id)
        parent = self.get(node.parent_id)
        if parent is not None:
            parent.children.remove(node_id)
        node.parent_id = None

    def attach(self, node_id: int, parent_id: int):
        """Append a detached node to parent_id's children."""
        node = self.node(node_id)
        if node.parent_id is not None:
            raise ValueError(f"node {node_id} is still attached to {node.parent_id}")
        self.node(parent_id).children.append(node_id)
        node.parent_id = parent_id

    def discard(self, node_id: int):
        """Detach node_id and drop it and its descendants from the arena."""
        self.detach(node_id)
        for node in list(self.walk(node_id)):
            del self._nodes[node.node_id]

    def sort_children(self, node_id: Optional[int] = None, recursive: bool = True):
        """Sort folders first, then files, each case-insensitively."""
        start = self.root_id if node_id is None else node_id
        targets = self.walk(start) if recursive else [self.node(start)]
        for node in list(targets):
            node.children.sort(key=lambda child: folder_first_key(self._nodes[child]))

    def files(self) -> Iterator[PakNode]:
        return (node for node in self.walk() if not node.is_folder)


@dataclass
class PakArchive:
    """A loaded PAK: last written bytes, their directory, and the live tree."""
    name: str
    data: bytes = b""
    entries: List[PakEntry] = field(default_factory=list)
    tree: PakTree = field(default_factory=PakTree)
    revision: int = 0

    @classmethod
    def empty(cls, name: str = "Untitled.pak") -> "PakArchive":
        return cls(name=name)

    @property
    def root_id(self) -> int:
        return self.tree.root_id

    def __len__(self) -> int:
        return len(self.entries)

    def summary(self) -> str:
        total_size = sum(e.length for e in self.entries)
        return f"PAK: {self.name}\nFiles: {len(self)}\nTotal size: {total_size:,} bytes"
