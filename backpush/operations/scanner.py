"""
File scanning operations (local and remote)
"""
import os
import posixpath
import stat
from pathlib import Path
from typing import Optional

from ..core.models import FileMetadata, Inventory, ScanResult
from ..core.remote import REMOTE_ERRORS, RemoteFilesystem
from ..errors import LocalScanError, RemoteScanError
from ..utils.logging import vlog, warn


def _stat_entry(p: Path) -> os.stat_result:
    try:
        return p.stat()
    except FileNotFoundError:
        if not p.is_symlink():
            raise
    # dangling link: listed here, fails on its own when copied
    vlog(f"[scan] dangling symlink {p}")
    return p.lstat()


def local_list_all(root: Path) -> Inventory:
    """
    Returns {rel_posix: FileMetadata} for every non-directory entry under *root*.
    The first unreadable directory or entry raises LocalScanError. A symlink
    whose target is missing is listed with its own lstat data.
    """
    if not root.is_dir():
        raise LocalScanError(f"local root is not a directory: {root}")

    def _raise(exc: OSError):
        raise LocalScanError(f"cannot read {exc.filename}: {exc.strerror or exc}") from exc

    result: Inventory = {}
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for name in filenames:
            p = Path(dirpath) / name
            try:
                st = _stat_entry(p)
            except OSError as exc:
                raise LocalScanError(f"cannot stat {p}: {exc}") from exc
            rel = p.relative_to(root).as_posix()
            result[rel] = FileMetadata(st.st_size, st.st_mtime, False, stat.S_IMODE(st.st_mode))
    return result


def remote_list_all(remote: RemoteFilesystem, root: str,
                    exclude: Optional[str] = None) -> ScanResult:
    """
    Walk *root* on the remote. A directory that cannot be listed is reported
    in ScanResult.errors and its branch skipped; the rest of the walk goes on.
    *exclude* (absolute remote path) prunes that subtree, e.g. the backup base.
    """
    root = posixpath.normpath(root)
    exclude = posixpath.normpath(exclude) if exclude else None
    scan = ScanResult(inventory={})
    pending = [root]
    while pending:
        current = pending.pop()
        try:
            entries = remote.listdir(current)
        except REMOTE_ERRORS as exc:
            err = RemoteScanError(current, str(exc))
            warn(f"[scan] remote directory skipped: {err}")
            scan.errors.append(err)
            continue
        for name, meta in entries:
            full = posixpath.join(current, name)
            if meta.is_dir:
                if full == exclude:
                    vlog(f"[scan] not descending into backup base {full}")
                    continue
                pending.append(full)
                continue
            scan.inventory[posixpath.relpath(full, root)] = meta
    return scan
