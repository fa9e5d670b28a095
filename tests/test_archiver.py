from __future__ import annotations

import io
import zipfile

import pytest

from filevault.errors import IOFailure
from filevault.services import archiver as archiver_module
from filevault.services.archiver import DirectoryArchiver


def _names(handle) -> list[str]:
    with zipfile.ZipFile(handle) as zf:
        return sorted(zf.namelist())


def test_archive_entries_are_prefixed_with_directory_name(tmp_path):
    docs = tmp_path / 'docs'
    (docs / 'sub').mkdir(parents=True)
    (docs / 'a.txt').write_bytes(b'alpha')
    (docs / 'sub' / 'b.txt').write_bytes(b'beta')

    handle = DirectoryArchiver(chunk_size=2).build(docs)

    with zipfile.ZipFile(handle) as zf:
        assert sorted(zf.namelist()) == ['docs/a.txt', 'docs/sub/b.txt']
        assert zf.read('docs/sub/b.txt') == b'beta'


def test_empty_directories_are_kept(tmp_path):
    docs = tmp_path / 'docs'
    (docs / 'empty').mkdir(parents=True)

    assert _names(DirectoryArchiver().build(docs)) == ['docs/empty/']


def test_symlinks_leaving_the_root_are_skipped(tmp_path):
    secret = tmp_path / 'secret.txt'
    secret.write_text('top secret')
    root = tmp_path / 'alice'
    docs = root / 'docs'
    docs.mkdir(parents=True)
    (docs / 'ok.txt').write_text('fine')
    (docs / 'leak.txt').symlink_to(secret)

    names = _names(DirectoryArchiver().build(docs, root=root))

    assert names == ['docs/ok.txt']


def test_read_failure_fails_the_whole_archive(monkeypatch, tmp_path):
    docs = tmp_path / 'docs'
    docs.mkdir()
    (docs / 'a.txt').write_bytes(b'alpha')

    def _broken(self, zf, source, arcname):
        raise PermissionError('denied')

    monkeypatch.setattr(archiver_module.DirectoryArchiver, '_write_file', _broken)

    with pytest.raises(IOFailure):
        DirectoryArchiver().build(docs)


def test_iter_chunks_closes_handle_when_abandoned():
    handle = io.BytesIO(b'x' * 10)
    chunks = DirectoryArchiver(chunk_size=4).iter_chunks(handle)

    assert next(chunks) == b'xxxx'
    chunks.close()

    assert handle.closed
