"""
Process-wide "one file at a time" lock.

The lock is a plain file created with O_CREAT|O_EXCL. Its holder is implied by
existence and age; a lock older than the staleness threshold is treated as
left behind by a crashed job. Each acquisition writes an owner token so that
release only ever removes the lock this job created.
"""

from __future__ import annotations

import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from dvr_pipeline.errors import LockAcquireError


@dataclass(frozen=True, slots=True)
class LockHandle:
    path: Path
    token: str


@dataclass(frozen=True, slots=True)
class LockFile:
    path: Path
    stale_after_s: float = 86_400.0

    def exists(self) -> bool:
        return self.path.exists()

    def age_s(self, *, now: float | None = None) -> float | None:
        """Seconds since the lock was written, or None if there is no lock."""
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        # The file is never rewritten after creation, so mtime is its birth time.
        return (time.time() if now is None else now) - st.st_mtime

    def is_stale(self, *, now: float | None = None) -> bool:
        age = self.age_s(now=now)
        return age is not None and age > float(self.stale_after_s)

    def remove(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def acquire(self, owner: str) -> LockHandle:
        token = f"{uuid.uuid4().hex} pid={os.getpid()}"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as ex:
            raise LockAcquireError(
                f"Lock file {self.path} appeared before it could be created",
                suggestions=["Another job started processing at the same moment; re-run later."],
            ) from ex
        except OSError as ex:
            raise LockAcquireError(f"Unable to create lock file {self.path}: {ex}") from ex
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(f"Lock file generated by {owner}\n{token}\n")
        except BaseException as ex:
            # A half-written lock has no token and could never be released.
            self.remove()
            if isinstance(ex, OSError):
                raise LockAcquireError(f"Unable to write lock file {self.path}: {ex}") from ex
            raise
        return LockHandle(path=self.path, token=token)

    def owned_by(self, handle: LockHandle) -> bool:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return False
        return handle.token in text.splitlines()

    def release(self, handle: LockHandle) -> bool:
        """
        Delete the lock if it still carries this handle's token.
        Returns True when a file was removed; a missing lock is not an error.
        """
        if not self.owned_by(handle):
            return False
        return self.remove()
