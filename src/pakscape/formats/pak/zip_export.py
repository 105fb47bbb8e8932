"""
Zip Export - repackage an archive's files as a .zip (e.g. a .pk3)

Uses the same flattened (path, payload) list the PAK writer produces, so
the zip holds exactly what a save would write. The tree is not modified.
"""

import logging
import zipfile
from io import BytesIO
from typing import List, Optional, Tuple

from .pak_file import PakArchive
from .pak_writer import collect_payloads

logger = logging.getLogger(__name__)


def write_zip(files: List[Tuple[str, bytes]], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """Build a zip image from (path, payload) pairs."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=compression) as zf:
        for path, payload in files:
            zf.writestr(path, payload)
    return buffer.getvalue()


def export_zip(archive: PakArchive, compression: Optional[int] = None) -> bytes:
    """Export every file of archive into an in-memory zip."""
    files = collect_payloads(archive.tree, archive.data)
    data = write_zip(files, zipfile.ZIP_DEFLATED if compression is None else compression)
    logger.debug(f"ZIP: exported {len(files)} files from {archive.name or '<memory>'}")
    return data
