from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import InvalidPath, IOFailure

log = logging.getLogger(__name__)

_SEGMENT_SPLIT = re.compile(r'[\\/]+')


def has_parent_segment(requested_path: str) -> bool:
    return any(segment == '..' for segment in _SEGMENT_SPLIT.split(requested_path))


def is_within(root: Path, candidate: Path) -> bool:
    return candidate == root or root in candidate.parents


def validate_path(requested_path: str, root: Path) -> Path:
    """Resolve ``requested_path`` below ``root`` or raise ``InvalidPath``.

    ``root`` must already be canonical. The ``..`` check is only a first
    filter: the joined path is resolved (symlinks included) and then compared
    component-wise against ``root``.
    """
    if '\x00' in requested_path or has_parent_segment(requested_path):
        raise InvalidPath(f'Invalid path: {requested_path}')

    try:
        candidate = (root / requested_path.lstrip('/\\')).resolve(strict=False)
    except (OSError, RuntimeError) as exc:
        raise InvalidPath(f'Invalid path: {requested_path}') from exc

    if not is_within(root, candidate):
        raise InvalidPath(f'Invalid path: {requested_path}')
    return candidate


class PathSandbox:
    """Maps a username and an untrusted relative path onto that user's subtree."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir).resolve()

    def root_for(self, username: str) -> Path:
        if not username or has_parent_segment(username) or _SEGMENT_SPLIT.search(username) or username == '.':
            raise InvalidPath('Invalid user root')

        root = self.base_dir / username
        try:
            root.mkdir(parents=True, exist_ok=True)
            resolved = root.resolve(strict=True)
        except OSError as exc:
            log.error('Could not prepare storage root for %s: %s', username, exc)
            raise IOFailure('Could not prepare storage root') from exc

        if resolved.parent != self.base_dir:
            raise InvalidPath('Invalid user root')
        return resolved

    def resolve(self, username: str, requested_path: str) -> Path:
        root = self.root_for(username)
        try:
            return validate_path(requested_path or '', root)
        except InvalidPath:
            log.warning('Rejected path for %s: %r', username, requested_path)
            raise

    def resolve_entry(self, username: str, requested_path: str) -> Path:
        """Like ``resolve`` but leaves the final component unresolved.

        The parent directory is canonicalized and checked against the root; the
        last name is appended as given, so a symlink is addressed as the link
        itself rather than its target.
        """
        requested_path = requested_path or ''
        if '\x00' in requested_path or has_parent_segment(requested_path):
            log.warning('Rejected path for %s: %r', username, requested_path)
            raise InvalidPath(f'Invalid path: {requested_path}')

        segments = [s for s in _SEGMENT_SPLIT.split(requested_path) if s not in {'', '.'}]
        if not segments:
            return self.root_for(username)
        parent = self.resolve(username, '/'.join(segments[:-1]))
        return parent / segments[-1]
