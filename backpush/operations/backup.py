"""
Run-scoped remote backups of files about to be overwritten or deleted
"""
import posixpath
import shutil
from datetime import datetime
from typing import Optional

from .. import config as _cfg
from ..core.remote import REMOTE_ERRORS, RemoteFilesystem, remote_exists
from ..errors import BackupError, CleanupError
from ..utils.logging import log, vlog, warn


def backup_root_for(base: str, when: Optional[datetime] = None) -> str:
    """Return base/<YYYYmmdd_HHMMSS> for *when* (default: now)."""
    stamp = (when or datetime.now()).strftime(_cfg.BACKUP_TIMESTAMP_FORMAT)
    return posixpath.join(str(base), stamp)


class BackupManager:
    """
    Copies remote files under one backup root per run.

    The root is only a reserved path until the first backup creates it;
    cleanup() removes it again when nothing was saved.
    """

    def __init__(self, remote: RemoteFilesystem, root: str):
        self.remote = remote
        self.root = root
        self.saved: list[str] = []

    def path_for(self, rel: str) -> str:
        return posixpath.join(self.root, rel)

    def backup(self, rel: str, remote_path: str):
        """Preserve *remote_path* as <root>/<rel> with its permission bits."""
        dest = self.path_for(rel)
        try:
            self.remote.makedirs(posixpath.dirname(dest))
            with self.remote.open(remote_path, "rb") as src, self.remote.open(dest, "wb") as dst:
                shutil.copyfileobj(src, dst, 32768)
            mode = self.remote.stat(remote_path).mode
            self.remote.chmod(dest, mode)
        except REMOTE_ERRORS as exc:
            raise BackupError(rel, f"backup of {remote_path} to {dest} failed: {exc}") from exc
        self.saved.append(rel)
        vlog(f"  [BACKUP ✓] {rel} → {dest}")

    def cleanup(self) -> bool:
        """
        Remove the backup root if this run saved nothing into it.
        Returns True when the directory was removed. Never raises.
        """
        if self.saved:
            log(f"[backup] {len(self.saved)} file(s) kept in {self.root}")
            return False
        try:
            if not remote_exists(self.remote, self.root):
                return False
            if self.remote.listdir(self.root):
                log(f"[backup] backup directory is not empty, leaving it: {self.root}")
                return False
            self.remote.rmdir(self.root)
        except REMOTE_ERRORS as exc:
            warn(f"[backup] {CleanupError(f'cannot remove {self.root}: {exc}')}")
            return False
        log(f"[backup] removed empty backup directory {self.root}")
        return True
