"""
Main sync engine - decision logic and orchestration
"""
import posixpath
from pathlib import Path
from typing import Callable, Optional

from .. import config as _cfg
from ..errors import ApplyError, FileActionError, RemoteScanError
from ..operations.backup import BackupManager, backup_root_for
from ..operations.delete import delete_remote
from ..operations.scanner import local_list_all, remote_list_all
from ..operations.transfer import push_file, retouch
from ..utils.file_utils import md5_local, md5_remote, times_equal
from ..utils.logging import log, set_log_file, set_verbose
from ..utils.progress import LogSink, NullSink, ProgressSink, TqdmSink
from .models import Action, ActionEvent, FileMetadata, Inventory, RunResult
from .remote import REMOTE_ERRORS, RemoteFilesystem
from .ssh_manager import SSHManager


def classify(local: FileMetadata, remote: Optional[FileMetadata],
             fingerprints: Callable[[], tuple[str, str]],
             tolerance: float = 2.0) -> Action:
    """
    Decide what to do with one local file given its remote counterpart.

    mtime (within *tolerance*) and size are only a shortcut: when both match
    the file is left alone without reading it. Otherwise *fingerprints* is
    called for (local_md5, remote_md5) and content decides between a real
    update and a timestamp-only retouch. FingerprintError propagates.
    """
    if remote is None:
        return Action.CREATE
    if times_equal(local.mtime, remote.mtime, tolerance) and local.size == remote.size:
        return Action.NOOP
    local_md5, remote_md5 = fingerprints()
    if local_md5 != remote_md5:
        return Action.UPDATE
    return Action.RETOUCH


class Reconciler:
    """
    One local → remote run.

    Scans both trees, applies create/update/retouch/noop for every local file,
    then backs up and deletes remote-only files, then drops the backup root if
    nothing was written to it. Per-file errors become failed events; only
    LocalScanError (and RemoteScanError in strict mode) end the run early.
    """

    def __init__(self, remote: RemoteFilesystem, local_root: Path, remote_root: str,
                 backup_base: str, sink: Optional[ProgressSink] = None,
                 tolerance: float = 2.0, dry_run: bool = False,
                 strict_remote_scan: bool = False, backup_root: Optional[str] = None):
        self.remote = remote
        self.local_root = Path(local_root)
        self.remote_root = posixpath.normpath(str(remote_root))
        self.backup_base = posixpath.normpath(str(backup_base))
        self.sink = sink or NullSink()
        self.tolerance = tolerance
        self.dry_run = dry_run
        self.strict_remote_scan = strict_remote_scan
        # reserved now, created on first backup
        self.backups = BackupManager(remote, backup_root or backup_root_for(self.backup_base))

    # ── phases ──────────────────────────────────────────────────────────────

    def run(self) -> RunResult:
        result = RunResult(backup_root=self.backups.root, dry_run=self.dry_run)

        log(f"[scan] Scanning local files under {self.local_root} …")
        local_files = local_list_all(self.local_root)
        log(f"[scan] {len(local_files)} local file(s) found")

        log(f"[scan] Scanning remote files under {self.remote_root} …")
        scan = remote_list_all(self.remote, self.remote_root, exclude=self.backup_base)
        remote_files = scan.inventory
        result.remote_scan_errors = len(scan.errors)
        if scan.errors and self.strict_remote_scan:
            raise RemoteScanError(scan.errors[0].path,
                                  f"{len(scan.errors)} remote director(ies) unreadable (strict mode)")
        log(f"[scan] {len(remote_files)} remote file(s) found")

        remote_only = sorted(set(remote_files) - set(local_files))
        result.total = len(local_files) + len(remote_only)
        self.sink.start(result.total)
        try:
            for rel in sorted(local_files):
                self._emit(result, self._sync_one(rel, local_files[rel], remote_files))

            for rel in remote_only:
                self._emit(result, self._delete_one(rel))

            result.backed_up = list(self.backups.saved)
            if not self.dry_run:
                result.backup_root_removed = self.backups.cleanup()

            self.sink.finish(result)
        finally:
            self.sink.close()
        return result

    def _emit(self, result: RunResult, ev: ActionEvent):
        result.record(ev)
        self.sink.event(ev)

    # ── per file ────────────────────────────────────────────────────────────

    def _remote_path(self, rel: str) -> str:
        return posixpath.join(self.remote_root, rel)

    def _lookup_remote(self, rel: str, remote_files: Inventory) -> Optional[FileMetadata]:
        """Inventory entry, or a live stat when the (possibly partial) scan lacks it."""
        meta = remote_files.get(rel)
        if meta is not None:
            return meta
        try:
            return self.remote.stat(self._remote_path(rel))
        except FileNotFoundError:
            return None
        except REMOTE_ERRORS as exc:
            raise ApplyError(rel, f"stat {self._remote_path(rel)} failed: {exc}") from exc

    def _sync_one(self, rel: str, local: FileMetadata, remote_files: Inventory) -> ActionEvent:
        local_path = self.local_root / rel
        remote_path = self._remote_path(rel)
        action: Optional[Action] = None
        try:
            remote = self._lookup_remote(rel, remote_files)
            if remote is not None and remote.is_dir:
                raise ApplyError(rel, f"{remote_path} is a directory on the remote")

            action = classify(
                local, remote,
                lambda: (md5_local(rel, local_path), md5_remote(rel, self.remote, remote_path)),
                self.tolerance,
            )
            if self.dry_run:
                return ActionEvent(rel, action)

            if action is Action.UPDATE:
                self.backups.backup(rel, remote_path)
            if action in (Action.CREATE, Action.UPDATE):
                push_file(self.remote, rel, local_path, remote_path, local)
                if action is Action.UPDATE:
                    return ActionEvent(rel, action, reason="backup created")
            elif action is Action.RETOUCH:
                retouch(self.remote, rel, remote_path, local.mtime)
                return ActionEvent(rel, action, reason="content identical")
            return ActionEvent(rel, action)
        except FileActionError as exc:
            return ActionEvent(rel, action, ok=False, reason=str(exc))

    def _delete_one(self, rel: str) -> ActionEvent:
        if self.dry_run:
            return ActionEvent(rel, Action.DELETE)
        try:
            delete_remote(self.remote, self.backups, rel, self._remote_path(rel))
        except FileActionError as exc:
            return ActionEvent(rel, Action.DELETE, ok=False, reason=str(exc))
        return ActionEvent(rel, Action.DELETE, reason="backup created")


def run_sync(dry_run=False, verbose=False, progress=True, strict_remote_scan=None,
             tolerance=None) -> RunResult:
    """
    Connect with the applied profile and reconcile LOCAL_ROOT onto REMOTE_ROOT.
    Fatal errors (connection, local scan) propagate to the caller.
    """
    set_verbose(verbose)
    set_log_file(_cfg.LOG_FILE)
    try:
        log("=" * 41)
        log("sync started")

        print(f"\n{'=' * 64}")
        print(f"  Sync  {_cfg.LOCAL_ROOT}")
        print(f"   →   {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT}:{_cfg.REMOTE_ROOT}")
        print(f"  backups under {_cfg.BACKUP_BASE}")
        print(f"{'=' * 64}")
        if dry_run:
            print("  *** DRY-RUN — no files will be changed ***")
        print()

        sink: ProgressSink = LogSink(dry_run=dry_run)
        if progress:
            sink = TqdmSink(sink)

        with SSHManager() as mgr:
            result = Reconciler(
                mgr, _cfg.LOCAL_ROOT, str(_cfg.REMOTE_ROOT), str(_cfg.BACKUP_BASE),
                sink=sink,
                tolerance=_cfg.MTIME_TOLERANCE if tolerance is None else tolerance,
                dry_run=dry_run,
                strict_remote_scan=(_cfg.STRICT_REMOTE_SCAN if strict_remote_scan is None
                                    else strict_remote_scan),
            ).run()
        log("done")
        return result
    finally:
        set_log_file(None)
