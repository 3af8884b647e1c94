"""
SSH connection manager with auto-reconnect and keep-alive
"""
import posixpath
import stat
from typing import Optional

import paramiko

from .. import config as _cfg
from ..errors import RemoteConnectionError
from ..utils.logging import log, vlog
from ..utils.retry import retried
from .models import FileMetadata


def _metadata(attr: paramiko.SFTPAttributes) -> FileMetadata:
    mode = attr.st_mode or 0
    return FileMetadata(
        size=attr.st_size or 0,
        mtime=float(attr.st_mtime or 0),
        is_dir=stat.S_ISDIR(mode),
        mode=stat.S_IMODE(mode),
    )


class SSHManager:
    """
    Wraps paramiko SSHClient + SFTPClient.
    Automatically reconnects on channel errors.
    Sends SSH keep-alives to reduce mid-transfer drops.
    Implements the RemoteFilesystem protocol.
    """

    def __init__(self):
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, exc_tb):
        self.disconnect()

    # ── connection ─────────────────────────────────────────────────────────

    def connect(self):
        if self._ssh:
            try:
                self._ssh.get_transport().send_ignore()  # test if alive
                return
            except (AttributeError, EOFError, paramiko.SSHException, OSError):
                self._close_quietly()

        log(f"[SSH] connecting to {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT} …")
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=_cfg.SSH_HOST, port=_cfg.SSH_PORT, username=_cfg.SSH_USER,
                        timeout=_cfg.CONNECT_TIMEOUT, banner_timeout=_cfg.CONNECT_TIMEOUT,
                        auth_timeout=_cfg.CONNECT_TIMEOUT)
        if _cfg.SSH_KEY_PATH:
            kw["key_filename"] = _cfg.SSH_KEY_PATH
        if _cfg.SSH_PASSWORD:
            kw["password"] = _cfg.SSH_PASSWORD

        try:
            client.connect(**kw)
            # Keep-alive: send a NOP every 30s
            client.get_transport().set_keepalive(30)
            sftp = client.open_sftp()
        except (paramiko.SSHException, OSError, EOFError) as exc:
            client.close()
            raise RemoteConnectionError(
                f"cannot open SFTP session to {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT}: {exc}"
            ) from exc

        self._ssh = client
        self._sftp = sftp
        log("[SSH] connected ✓")

    def _close_quietly(self):
        for conn in (self._sftp, self._ssh):
            if conn is None:
                continue
            try:
                conn.close()
            except (EOFError, paramiko.SSHException, OSError) as exc:
                vlog(f"[SSH] close failed: {exc}")
        self._ssh = None
        self._sftp = None

    def disconnect(self):
        self._close_quietly()
        log("[SSH] disconnected.")

    def ensure_connected(self):
        """Call before any remote operation."""
        transport = self._ssh.get_transport() if self._ssh else None
        if transport is not None and transport.is_active():
            return
        self.connect()

    # ── sftp ops ────────────────────────────────────────────────────────────

    @retried
    def open(self, path: str, mode: str = "rb") -> paramiko.SFTPFile:
        self.ensure_connected()
        fh = self._sftp.open(path, mode)
        if "w" in mode:
            fh.set_pipelined(True)
        return fh

    @retried
    def stat(self, path: str) -> FileMetadata:
        self.ensure_connected()
        return _metadata(self._sftp.stat(path))

    @retried
    def listdir(self, path: str) -> list[tuple[str, FileMetadata]]:
        self.ensure_connected()
        return [(a.filename, _metadata(a)) for a in self._sftp.listdir_attr(path)]

    def makedirs(self, path: str):
        """mkdir -p: create every missing component, top-down."""
        missing: list[str] = []
        current = posixpath.normpath(path)
        while current not in ("", "/", "."):
            try:
                if self.stat(current).is_dir:
                    break
                raise NotADirectoryError(f"{current} exists and is not a directory")
            except FileNotFoundError:
                missing.append(current)
                current = posixpath.dirname(current)
        for d in reversed(missing):
            self._mkdir(d)

    @retried
    def _mkdir(self, path: str):
        self.ensure_connected()
        try:
            self._sftp.mkdir(path)
        except OSError as exc:
            # lost a race with another writer; fine if it is a directory now
            try:
                mode = self._sftp.stat(path).st_mode or 0
            except OSError:
                raise exc from None
            if not stat.S_ISDIR(mode):
                raise

    @retried
    def chmod(self, path: str, mode: int):
        self.ensure_connected()
        self._sftp.chmod(path, mode)

    @retried
    def utime(self, path: str, atime: float, mtime: float):
        self.ensure_connected()
        self._sftp.utime(path, (atime, mtime))

    @retried
    def remove(self, path: str):
        self.ensure_connected()
        self._sftp.remove(path)

    @retried
    def rmdir(self, path: str):
        self.ensure_connected()
        self._sftp.rmdir(path)
