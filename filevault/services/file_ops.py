from __future__ import annotations

import logging
import mimetypes
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from ..errors import AlreadyExists, InvalidName, InvalidPath, IOFailure, NotFound
from ..security import Principal
from .archiver import DirectoryArchiver
from .sandbox import PathSandbox, is_within

log = logging.getLogger(__name__)


@dataclass
class Download:
    filename: str
    content_type: str
    size: int
    path: Optional[Path] = None
    archive: Optional[BinaryIO] = None


def validate_new_name(name: str) -> str:
    if not name or name in {'.', '..'}:
        raise InvalidName(f'Invalid name: {name!r}')
    if '/' in name or '\\' in name or '..' in name or '\x00' in name:
        raise InvalidName(f'Invalid name: {name!r}')
    return name


def _atomic_write_stream(target: Path, stream: BinaryIO, chunk_size: int) -> int:
    fd, tmp_path = tempfile.mkstemp(prefix=f'.{target.name}.', suffix='.part', dir=str(target.parent))
    written = 0
    try:
        with os.fdopen(fd, 'wb') as handle:
            while chunk := stream.read(chunk_size):
                handle.write(chunk)
                written += len(chunk)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    return written


class FileOps:
    """File operations confined to each principal's storage root.

    Mutations for one username are serialized by that user's lock; reads and
    other users are never blocked by it.
    """

    def __init__(self, base_dir: str | Path, archiver: Optional[DirectoryArchiver] = None, chunk_size: int = 64 * 1024):
        self.sandbox = PathSandbox(base_dir)
        self.archiver = archiver or DirectoryArchiver(chunk_size=chunk_size)
        self.chunk_size = chunk_size
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, username: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(username)
            if lock is None:
                lock = self._locks[username] = threading.Lock()
            return lock

    @contextmanager
    def _io_errors(self, action: str, principal: Principal) -> Iterator[None]:
        try:
            yield
        except OSError as exc:
            log.error('%s failed for %s: %s', action, principal.username, exc)
            raise IOFailure(f'{action.capitalize()} failed') from exc

    @contextmanager
    def _mutation(self, action: str, principal: Principal) -> Iterator[None]:
        with self.lock_for(principal.username), self._io_errors(action, principal):
            yield

    def safe_path(self, principal: Principal, rel: str) -> Path:
        return self.sandbox.resolve(principal.username, rel)

    def entry_path(self, principal: Principal, rel: str) -> Path:
        return self.sandbox.resolve_entry(principal.username, rel)

    def list_dir(self, principal: Principal, rel: str = '') -> list[dict]:
        root = self.sandbox.root_for(principal.username)
        target = self.safe_path(principal, rel)
        if not target.is_dir():
            raise NotFound('Directory not found')

        items: list[dict] = []
        with self._io_errors('list', principal):
            for entry in target.iterdir():
                if entry.is_symlink() and not is_within(root, entry.resolve(strict=False)):
                    stat = entry.lstat()
                    is_dir = False
                else:
                    try:
                        stat = entry.stat()
                    except FileNotFoundError:
                        stat = entry.lstat()
                    is_dir = entry.is_dir()
                item = {
                    'name': entry.name,
                    'isDirectory': is_dir,
                    'lastModifiedTimestamp': int(stat.st_mtime * 1000),
                    'relativePath': (target / entry.name).relative_to(root).as_posix(),
                }
                if not is_dir:
                    item['size'] = stat.st_size
                items.append(item)

        items.sort(key=lambda i: i['name'])
        log.debug('Listed %s for %s: %d entries', rel or '/', principal.username, len(items))
        return items

    def upload(self, principal: Principal, rel: str, file_name: str, stream: BinaryIO) -> str:
        if not file_name or file_name in {'.', '..'}:
            raise InvalidName(f'Invalid file name: {file_name!r}')

        root = self.sandbox.root_for(principal.username)
        target_dir = self.safe_path(principal, rel)
        combined = f"{rel.rstrip('/')}/{file_name}" if rel else file_name
        dest = self.safe_path(principal, combined)
        if dest == root or not (dest.parent == target_dir or target_dir in dest.parents):
            raise InvalidPath(f'Invalid path: {combined}')

        with self._mutation('upload', principal):
            if target_dir.exists() and not target_dir.is_dir():
                raise InvalidPath('Upload target is not a directory')
            if dest.is_dir():
                raise AlreadyExists('A directory with this name already exists')
            dest.parent.mkdir(parents=True, exist_ok=True)
            written = _atomic_write_stream(dest, stream, self.chunk_size)

        relative = dest.relative_to(root).as_posix()
        log.info('Uploaded %s for %s (%d bytes)', relative, principal.username, written)
        return relative

    def open_download(self, principal: Principal, rel: str) -> Download:
        root = self.sandbox.root_for(principal.username)
        target = self.safe_path(principal, rel)
        if not target.exists():
            raise NotFound('File not found')

        if target.is_dir():
            archive = self.archiver.build(target, root=root)
            archive.seek(0, os.SEEK_END)
            size = archive.tell()
            archive.seek(0)
            log.info('Archived %s for %s (%d bytes)', rel or '/', principal.username, size)
            return Download(filename=f'{target.name}.zip', content_type='application/zip', size=size, archive=archive)

        if not target.is_file():
            raise NotFound('File not found')

        content_type = mimetypes.guess_type(target.name)[0] or 'application/octet-stream'
        with self._io_errors('download', principal):
            size = target.stat().st_size
        log.info('Download of %s for %s', rel, principal.username)
        return Download(filename=target.name, content_type=content_type, size=size, path=target)

    def mkdir(self, principal: Principal, rel: str):
        target = self.safe_path(principal, rel)
        with self._mutation('mkdir', principal):
            if os.path.lexists(target):
                raise AlreadyExists('Folder already exists')
            target.mkdir(parents=True)
        log.info('Created folder %s for %s', rel, principal.username)

    def delete(self, principal: Principal, rel: str):
        root = self.sandbox.root_for(principal.username)
        target = self.entry_path(principal, rel)
        if target == root:
            raise InvalidPath('Cannot delete the storage root')

        with self._mutation('delete', principal):
            if not os.path.lexists(target):
                raise NotFound('Not found')
            if target.is_symlink() or not target.is_dir():
                target.unlink()
            else:
                shutil.rmtree(target)
        log.info('Deleted %s for %s', rel, principal.username)

    def rename(self, principal: Principal, rel: str, new_name: str):
        validate_new_name(new_name)
        root = self.sandbox.root_for(principal.username)
        source = self.entry_path(principal, rel)
        if source == root:
            raise InvalidPath('Cannot rename the storage root')

        dest = source.parent / new_name
        with self._mutation('rename', principal):
            if not os.path.lexists(source):
                raise NotFound('Not found')
            if os.path.lexists(dest):
                raise AlreadyExists(f'{new_name} already exists')
            os.rename(source, dest)
        log.info('Renamed %s to %s for %s', rel, new_name, principal.username)

    def move(self, principal: Principal, source_rel: str, target_rel: str):
        root = self.sandbox.root_for(principal.username)
        source = self.entry_path(principal, source_rel)
        target = self.entry_path(principal, target_rel)
        if source == root:
            raise InvalidPath('Cannot move the storage root')
        if target == source or source in target.parents:
            raise InvalidPath('Cannot move a folder into itself')

        with self._mutation('move', principal):
            if not os.path.lexists(source):
                raise NotFound('Source not found')
            if os.path.lexists(target):
                raise AlreadyExists('Target already exists')
            target.parent.mkdir(parents=True, exist_ok=True)
            os.rename(source, target)
        log.info('Moved %s to %s for %s', source_rel, target_rel, principal.username)
