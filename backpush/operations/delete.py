"""
Delete operation (remote only, always preceded by a backup)
"""
from ..core.remote import REMOTE_ERRORS, RemoteFilesystem
from ..errors import ApplyError
from .backup import BackupManager


def delete_remote(remote: RemoteFilesystem, backups: BackupManager,
                  rel: str, remote_path: str):
    """
    Back up then remove one remote file. Parent directories are left alone,
    even if they end up empty. A failed backup (BackupError) leaves the file
    in place.
    """
    backups.backup(rel, remote_path)
    try:
        remote.remove(remote_path)
    except REMOTE_ERRORS as exc:
        raise ApplyError(rel, f"remove {remote_path} failed: {exc}") from exc
