from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from dvr_pipeline.errors import LockAcquireError
from dvr_pipeline.runtime.lockfile import LockFile


def test_acquire_writes_owner_and_token(tmp_path: Path) -> None:
    lock = LockFile(tmp_path / "dvrProcessing.lock")
    handle = lock.acquire("Show S01E01")
    text = lock.path.read_text(encoding="utf-8")
    assert text.startswith("Lock file generated by Show S01E01\n")
    assert handle.token in text
    assert lock.owned_by(handle)


def test_second_acquire_is_refused(tmp_path: Path) -> None:
    lock = LockFile(tmp_path / "dvrProcessing.lock")
    lock.acquire("first")
    with pytest.raises(LockAcquireError):
        lock.acquire("second")


def test_release_only_removes_own_lock(tmp_path: Path) -> None:
    lock = LockFile(tmp_path / "dvrProcessing.lock")
    mine = lock.acquire("mine")
    lock.remove()
    theirs = lock.acquire("theirs")

    assert lock.release(mine) is False
    assert lock.exists()
    assert lock.release(theirs) is True
    assert not lock.exists()
    # already gone
    assert lock.release(theirs) is False
    assert lock.remove() is False


def test_staleness_uses_age(tmp_path: Path) -> None:
    lock = LockFile(tmp_path / "dvrProcessing.lock", stale_after_s=3600)
    assert lock.age_s() is None
    assert not lock.is_stale()

    lock.acquire("old job")
    assert not lock.is_stale()

    old = time.time() - 2 * 3600
    os.utime(lock.path, (old, old))
    assert lock.age_s() >= 2 * 3600 - 1
    assert lock.is_stale()


def test_failed_write_leaves_no_lock(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    lock = LockFile(tmp_path / "dvrProcessing.lock")

    def broken_fdopen(fd, *args, **kwargs):
        os.close(fd)
        raise OSError("No space left on device")

    monkeypatch.setattr(os, "fdopen", broken_fdopen)
    with pytest.raises(LockAcquireError, match="Unable to write lock file"):
        lock.acquire("job")
    assert not lock.exists()
