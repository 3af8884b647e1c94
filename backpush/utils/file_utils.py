"""
File utilities (MD5 fingerprints, timestamp comparison)
"""
import hashlib
from pathlib import Path
from typing import BinaryIO

from ..core.remote import REMOTE_ERRORS, RemoteFilesystem
from ..errors import FingerprintError

CHUNK_SIZE = 65536


def fingerprint(fh: BinaryIO, chunk_size: int = CHUNK_SIZE) -> str:
    """Stream *fh* to EOF and return its lowercase MD5 hex digest."""
    h = hashlib.md5()
    for chunk in iter(lambda: fh.read(chunk_size), b""):
        h.update(chunk)
    return h.hexdigest()


def md5_local(rel: str, path: Path) -> str:
    """Compute MD5 hash of a local file"""
    try:
        with open(path, "rb") as f:
            return fingerprint(f)
    except OSError as exc:
        raise FingerprintError(rel, f"local hash failed for {path}: {exc}") from exc


def md5_remote(rel: str, remote: RemoteFilesystem, remote_path: str) -> str:
    """Compute MD5 hash of a remote file by streaming it over SFTP"""
    try:
        with remote.open(remote_path, "rb") as f:
            return fingerprint(f)
    except REMOTE_ERRORS as exc:
        raise FingerprintError(rel, f"remote hash failed for {remote_path}: {exc}") from exc


def times_equal(a: float, b: float, tolerance: float) -> bool:
    """True when two mtimes are within *tolerance* seconds, boundary included."""
    return abs(a - b) <= tolerance
