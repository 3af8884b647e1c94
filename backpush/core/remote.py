"""
The remote filesystem capability used by the scanner, fingerprinter,
backup manager and executor.
"""
from typing import BinaryIO, ContextManager, Protocol

import paramiko

from .models import FileMetadata

# Errors a remote call may raise for one path without the run being over.
# paramiko encodes and decodes path names as strict UTF-8.
REMOTE_ERRORS = (OSError, EOFError, paramiko.SSHException, UnicodeError)


class RemoteFilesystem(Protocol):
    """Blocking operations on absolute posix paths of the remote host."""

    def open(self, path: str, mode: str = "rb") -> ContextManager[BinaryIO]:
        ...

    def stat(self, path: str) -> FileMetadata:
        """Raise FileNotFoundError when *path* does not exist."""
        ...

    def listdir(self, path: str) -> list[tuple[str, FileMetadata]]:
        ...

    def makedirs(self, path: str) -> None:
        """Create *path* and missing parents; existing directories are fine."""
        ...

    def chmod(self, path: str, mode: int) -> None:
        ...

    def utime(self, path: str, atime: float, mtime: float) -> None:
        ...

    def remove(self, path: str) -> None:
        ...

    def rmdir(self, path: str) -> None:
        ...


def remote_exists(remote: RemoteFilesystem, path: str) -> bool:
    try:
        remote.stat(path)
        return True
    except FileNotFoundError:
        return False
