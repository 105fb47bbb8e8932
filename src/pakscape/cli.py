"""pakscape - command line front end for Quake PAK archives.

Usage:
    pakscape list <archive.pak>
    pakscape info <archive.pak>
    pakscape extract <archive.pak> <output-dir> [paths...]
    pakscape add <archive.pak> <file> [--dest folder] [--name name]
    pakscape mkdir <archive.pak> <folder/path>
    pakscape rename <archive.pak> <path> <new-name>
    pakscape rm <archive.pak> <path>
    pakscape mv <archive.pak> <path> <dest-folder>
    pakscape export-zip <archive.pak> <output.zip>
    pakscape preview <archive.pak> <path> <output.png>
    pakscape repack <archive.pak> [--output <path>]

Output formats (append to any read command):
    --format table    (default, human-readable)
    --format json     (machine-readable)

Commands that edit the archive rewrite it in place unless --output is given.
"""

import sys
import json
import logging
import argparse
from pathlib import Path
from typing import Optional

from .config import CodecSettings, DEFAULT_SETTINGS
from .formats.pak import (
    PakArchive, PakError, PakNode, load_pak, save_archive, export_zip,
    add_file, add_folder, rename_node, delete_node, move_node, extract_data,
)
from .formats.raster import decode_preview

logger = logging.getLogger("pakscape")


def load_archive(path: str) -> PakArchive:
    """Load a PAK file. Exits on failure."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        print(f"ERROR: Cannot read {path}: {e}", file=sys.stderr)
        sys.exit(1)
    try:
        return load_pak(data, Path(path).name)
    except PakError as e:
        print(f"ERROR: {path}: {e}", file=sys.stderr)
        sys.exit(1)


def load_settings(args) -> CodecSettings:
    if getattr(args, "config", None):
        try:
            return CodecSettings.load(args.config)
        except (OSError, ValueError, TypeError) as e:
            print(f"ERROR: Bad settings file {args.config}: {e}", file=sys.stderr)
            sys.exit(1)
    return DEFAULT_SETTINGS


def find_node(archive: PakArchive, path: str) -> PakNode:
    """Resolve an archive path or exit with an error."""
    node = archive.tree.find_path(path)
    if node is None:
        print(f"ERROR: No entry '{path}' in {archive.name}", file=sys.stderr)
        sys.exit(1)
    return node


def write_archive(archive: PakArchive, args, settings: CodecSettings):
    data = save_archive(archive, settings)
    output_path = Path(args.output or args.file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    print(f"Saved {len(archive.entries)} files to {output_path}")


def check(result):
    if not result.success:
        print(f"ERROR: {result.message}", file=sys.stderr)
        sys.exit(1)
    print(result.message)


def extract_target(output_dir: Path, path: str) -> Optional[Path]:
    """Destination for an archive path, or None if it would leave output_dir."""
    parts = path.replace("\\", "/").split("/")
    if any(part in ("", ".", "..") for part in parts) or ":" in parts[0]:
        return None
    target = output_dir / Path(*parts)
    try:
        target.resolve().relative_to(output_dir.resolve())
    except ValueError:
        return None
    return target


def format_listing_table(archive: PakArchive) -> str:
    lines = [f"{'Offset':>10}  {'Size':>10}  Name", f"{'─' * 50}"]
    for entry in archive.entries:
        lines.append(f"{entry.offset:>10}  {entry.length:>10,}  {entry.name}")
    lines.append(f"{'─' * 50}")
    lines.append(f"{len(archive.entries)} files")
    return "\n".join(lines)


def format_listing_json(archive: PakArchive) -> str:
    data = {
        "name": archive.name,
        "entries": [
            {"name": e.name, "offset": e.offset, "length": e.length}
            for e in archive.entries
        ],
    }
    return json.dumps(data, indent=2)


def format_tree(archive: PakArchive) -> str:
    tree = archive.tree
    lines = [archive.name or "/"]

    def visit(node_id: int, depth: int):
        for child in tree.children(node_id):
            if child.is_folder:
                lines.append(f"{'  ' * depth}{child.name}/")
                visit(child.node_id, depth + 1)
            else:
                lines.append(f"{'  ' * depth}{child.name}  ({child.file_size:,} bytes, {child.file_type})")

    visit(tree.root_id, 1)
    return "\n".join(lines)


def cmd_list(args):
    """List directory entries."""
    archive = load_archive(args.file)
    if args.format == "json":
        print(format_listing_json(archive))
    else:
        print(format_listing_table(archive))


def cmd_info(args):
    """Show the folder tree and totals."""
    archive = load_archive(args.file)
    if args.format == "json":
        folders = sum(1 for n in archive.tree.walk() if n.is_folder) - 1
        print(json.dumps({
            "name": archive.name,
            "size": len(archive.data),
            "files": len(archive.entries),
            "folders": folders,
        }, indent=2))
    else:
        print(archive.summary())
        print()
        print(format_tree(archive))


def cmd_extract(args):
    """Extract files to a directory."""
    archive = load_archive(args.file)
    output_dir = Path(args.output_dir)
    wanted = set(args.paths or [])
    extracted = 0

    for node in archive.tree.files():
        path = archive.tree.path_of(node.node_id)
        if wanted and path not in wanted:
            continue
        data = extract_data(archive, node.node_id)
        if data is None:
            logger.warning(f"Skipping {path}: no data")
            continue
        target = extract_target(output_dir, path)
        if target is None:
            logger.warning(f"Skipping {path}: unsafe path outside {output_dir}")
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        extracted += 1

    print(f"Extracted {extracted} files to {output_dir}")


def cmd_add(args):
    """Add or replace a file."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    source = Path(args.source)
    try:
        payload = source.read_bytes()
    except OSError as e:
        print(f"ERROR: Cannot read {source}: {e}", file=sys.stderr)
        sys.exit(1)

    parent_id = archive.root_id
    for part in (p for p in (args.dest or "").split("/") if p):
        result = add_folder(archive.tree, parent_id, part)
        if not result.success:
            check(result)
        parent_id = result.node_id

    check(add_file(archive.tree, parent_id, args.name or source.name, payload))
    write_archive(archive, args, settings)


def cmd_mkdir(args):
    """Create a folder path."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    parent_id = archive.root_id
    for part in (p for p in args.path.split("/") if p):
        result = add_folder(archive.tree, parent_id, part)
        check(result)
        parent_id = result.node_id
    print("Note: empty folders are not stored in PAK files until they hold a file.")
    write_archive(archive, args, settings)


def cmd_rename(args):
    """Rename a file or folder."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    node = find_node(archive, args.path)
    check(rename_node(archive.tree, node.node_id, args.new_name))
    write_archive(archive, args, settings)


def cmd_rm(args):
    """Delete a file or folder."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    node = find_node(archive, args.path)
    check(delete_node(archive.tree, node.node_id))
    write_archive(archive, args, settings)


def cmd_mv(args):
    """Move a file or folder into another folder."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    node = find_node(archive, args.path)
    dest = archive.tree.root if args.dest in ("", "/") else find_node(archive, args.dest)
    check(move_node(archive.tree, node.node_id, dest.node_id))
    write_archive(archive, args, settings)


def cmd_export_zip(args):
    """Export all files as a zip archive."""
    archive = load_archive(args.file)
    data = export_zip(archive)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    print(f"Wrote {output_path} ({len(data):,} bytes)")


def cmd_preview(args):
    """Decode an image entry and save it as PNG."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    node = find_node(archive, args.path)
    data = extract_data(archive, node.node_id)
    raster = decode_preview(node.name, data or b"", settings)
    if raster is None:
        print(f"ERROR: {args.path} is not a previewable image", file=sys.stderr)
        sys.exit(1)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    raster.to_image().save(output_path, format="PNG")
    print(f"Wrote {output_path} ({raster.width}x{raster.height})")


def cmd_repack(args):
    """Rewrite the archive, compacting unused space."""
    settings = load_settings(args)
    archive = load_archive(args.file)
    write_archive(archive, args, settings)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="pakscape",
        description="Inspect, edit and convert Quake PAK archives.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--format", choices=["table", "json"],
                        default="table", help="Output format (default: table)")
    parser.add_argument("--config", help="Codec settings JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    p = sub.add_parser("list", help="List directory entries")
    p.add_argument("file", help="Path to .pak")

    p = sub.add_parser("info", help="Show folder tree and totals")
    p.add_argument("file", help="Path to .pak")

    p = sub.add_parser("extract", help="Extract files")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("output_dir", help="Destination directory")
    p.add_argument("paths", nargs="*", help="Archive paths (default: all)")

    p = sub.add_parser("add", help="Add or replace a file")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("source", help="File on disk")
    p.add_argument("--dest", default="", help="Archive folder (created if missing)")
    p.add_argument("--name", help="Name inside the archive (default: source name)")
    p.add_argument("--output", "-o", help="Write to this path instead")

    p = sub.add_parser("mkdir", help="Create a folder")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("path", help="Folder path")
    p.add_argument("--output", "-o", help="Write to this path instead")

    p = sub.add_parser("rename", help="Rename a file or folder")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("path", help="Archive path")
    p.add_argument("new_name", help="New name")
    p.add_argument("--output", "-o", help="Write to this path instead")

    p = sub.add_parser("rm", help="Delete a file or folder")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("path", help="Archive path")
    p.add_argument("--output", "-o", help="Write to this path instead")

    p = sub.add_parser("mv", help="Move into another folder")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("path", help="Archive path")
    p.add_argument("dest", help="Destination folder ('/' for root)")
    p.add_argument("--output", "-o", help="Write to this path instead")

    p = sub.add_parser("export-zip", help="Export as zip")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("output", help="Output .zip path")

    p = sub.add_parser("preview", help="Decode an image entry to PNG")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("path", help="Archive path of a .lmp, .tga or .mdl")
    p.add_argument("output", help="Output .png path")

    p = sub.add_parser("repack", help="Rewrite the archive")
    p.add_argument("file", help="Path to .pak")
    p.add_argument("--output", "-o", help="Write to this path instead")

    return parser


def main(argv: Optional[list] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "list": cmd_list,
        "info": cmd_info,
        "extract": cmd_extract,
        "add": cmd_add,
        "mkdir": cmd_mkdir,
        "rename": cmd_rename,
        "rm": cmd_rm,
        "mv": cmd_mv,
        "export-zip": cmd_export_zip,
        "preview": cmd_preview,
        "repack": cmd_repack,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        cmd_func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
