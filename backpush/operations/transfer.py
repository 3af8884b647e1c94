"""
File transfer operations (local → remote copy, remote timestamp retouch)
"""
import posixpath
import shutil
import time
from pathlib import Path

from ..core.models import FileMetadata
from ..core.remote import REMOTE_ERRORS, RemoteFilesystem
from ..errors import ApplyError


def push_file(remote: RemoteFilesystem, rel: str, local_path: Path,
              remote_path: str, local: FileMetadata):
    """
    Create parent directories, stream the whole local file over remote_path,
    then give it the local permission bits and mtime so the next run sees it
    as unchanged. Any failure raises ApplyError.
    """
    try:
        remote.makedirs(posixpath.dirname(remote_path))
        with open(local_path, "rb") as src, remote.open(remote_path, "wb") as dst:
            shutil.copyfileobj(src, dst, 32768)
    except REMOTE_ERRORS as exc:
        raise ApplyError(rel, f"copy {local_path} → {remote_path} failed: {exc}") from exc
    try:
        remote.chmod(remote_path, local.mode)
    except REMOTE_ERRORS as exc:
        raise ApplyError(rel, f"chmod {oct(local.mode)} on {remote_path} failed: {exc}") from exc
    retouch(remote, rel, remote_path, local.mtime)


def retouch(remote: RemoteFilesystem, rel: str, remote_path: str, mtime: float):
    """Set the remote mtime to the local one (atime = now); content is untouched."""
    try:
        remote.utime(remote_path, time.time(), mtime)
    except REMOTE_ERRORS as exc:
        raise ApplyError(rel, f"utime on {remote_path} failed: {exc}") from exc
