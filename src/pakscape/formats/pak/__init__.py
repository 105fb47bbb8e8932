"""PAK archive format package."""
from .pak_file import (
    PakArchive, PakEntry, PakNode, PakTree,
    PakError, InvalidHeader, BadDirectory,
    PAK_MAGIC, HEADER_SIZE, ENTRY_SIZE, NAME_FIELD_SIZE, MAX_NAME_LENGTH,
)
from .pak_reader import load_pak, read_directory, build_tree
from .pak_writer import (
    PakWriteResult, write_pak, save_archive, collect_files, collect_payloads, encode_name,
)
from .tree_ops import (
    TreeOpResult, add_file, add_folder, rename_node, delete_node,
    move_node, copy_node, extract_data, Clipboard, ClipboardMode,
    cut, copy_to_clipboard, paste,
)
from .zip_export import export_zip, write_zip

__all__ = [
    'PakArchive', 'PakEntry', 'PakNode', 'PakTree',
    'PakError', 'InvalidHeader', 'BadDirectory',
    'PAK_MAGIC', 'HEADER_SIZE', 'ENTRY_SIZE', 'NAME_FIELD_SIZE', 'MAX_NAME_LENGTH',
    'load_pak', 'read_directory', 'build_tree',
    'PakWriteResult', 'write_pak', 'save_archive', 'collect_files', 'collect_payloads', 'encode_name',
    'TreeOpResult', 'add_file', 'add_folder', 'rename_node', 'delete_node',
    'move_node', 'copy_node', 'extract_data', 'Clipboard', 'ClipboardMode',
    'cut', 'copy_to_clipboard', 'paste',
    'export_zip', 'write_zip',
]
