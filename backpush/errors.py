"""
Exception taxonomy for a backpush run

Fatal kinds stop the run; FileActionError subclasses are caught per file.
"""


class SyncError(Exception):
    """Base exception for all backpush errors."""
    pass


class RemoteConnectionError(SyncError):
    """The SSH/SFTP session could not be established."""
    pass


class LocalScanError(SyncError):
    """The local tree could not be fully read."""
    pass


class RemoteScanError(SyncError):
    """A remote directory could not be listed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class CleanupError(SyncError):
    """The unused backup root could not be removed."""
    pass


class FileActionError(SyncError):
    """Base class for errors confined to one relative path."""

    def __init__(self, rel: str, message: str):
        self.rel = rel
        super().__init__(message)


class FingerprintError(FileActionError):
    pass


class BackupError(FileActionError):
    """The remote file could not be preserved; it must not be mutated."""
    pass


class ApplyError(FileActionError):
    """Copy, chmod, utime or remove failed."""
    pass
