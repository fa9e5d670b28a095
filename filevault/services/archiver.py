from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Iterator

from ..errors import IOFailure
from .sandbox import is_within

log = logging.getLogger(__name__)


class DirectoryArchiver:
    """Zips a directory tree into a spooled temporary file.

    Entries are named ``<dirname>/<relative path>`` so the archive unpacks into
    a folder named after the source directory. The archive is complete before
    anything is returned, so a read error fails the whole download.
    """

    def __init__(self, chunk_size: int = 64 * 1024, spool_max_bytes: int = 16 * 1024 * 1024):
        self.chunk_size = chunk_size
        self.spool_max_bytes = spool_max_bytes

    def build(self, directory: Path, top_name: str | None = None, root: Path | None = None) -> BinaryIO:
        top = top_name or directory.name
        root = root or directory
        spool = tempfile.SpooledTemporaryFile(max_size=self.spool_max_bytes, suffix='.zip')
        try:
            with zipfile.ZipFile(spool, mode='w', compression=zipfile.ZIP_DEFLATED) as zf:
                self._write_tree(zf, directory, top, root)
        except OSError as exc:
            spool.close()
            log.error('Archiving %s failed: %s', directory, exc)
            raise IOFailure('Could not archive directory') from exc

        spool.seek(0)
        return spool

    def _write_tree(self, zf: zipfile.ZipFile, directory: Path, top: str, root: Path) -> None:
        for current, dirnames, filenames in os.walk(directory, onerror=_raise):
            dirnames.sort()
            current_path = Path(current)
            rel_dir = current_path.relative_to(directory).as_posix()
            prefix = top if rel_dir == '.' else f'{top}/{rel_dir}'

            if not dirnames and not filenames:
                zf.writestr(f'{prefix}/', b'')

            for name in sorted(filenames):
                source = current_path / name
                if not _archivable(source, root):
                    log.warning('Skipping %s while archiving', source)
                    continue
                self._write_file(zf, source, f'{prefix}/{name}')

    def _write_file(self, zf: zipfile.ZipFile, source: Path, arcname: str) -> None:
        with source.open('rb') as src, zf.open(arcname, mode='w', force_zip64=True) as dst:
            shutil.copyfileobj(src, dst, self.chunk_size)

    def iter_chunks(self, handle: BinaryIO) -> Iterator[bytes]:
        try:
            while chunk := handle.read(self.chunk_size):
                yield chunk
        finally:
            handle.close()


def _archivable(source: Path, root: Path) -> bool:
    if not source.is_symlink():
        return source.is_file()
    target = source.resolve(strict=False)
    return target.is_file() and is_within(root, target)


def _raise(exc: OSError) -> None:
    raise exc
