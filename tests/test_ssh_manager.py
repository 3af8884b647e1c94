"""
Tests for the paramiko-backed SSHManager, with SSHClient and SFTPClient mocked.
"""
import io
import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import paramiko

import backpush.config as cfg
from backpush.core.ssh_manager import SSHManager, _metadata
from backpush.errors import RemoteConnectionError


def _attrs(mode, size=0, mtime=0):
    attr = paramiko.SFTPAttributes()
    attr.st_mode = mode
    attr.st_size = size
    attr.st_mtime = mtime
    return attr


def _manager_with(sftp):
    """An SSHManager wired to a mocked SFTP client, already 'connected'."""
    mgr = SSHManager()
    mgr._sftp = sftp
    mgr.ensure_connected = lambda: None
    return mgr


class TestConnect(unittest.TestCase):

    def setUp(self):
        self._saved = {k: v for k, v in vars(cfg).items() if k.isupper()}

    def tearDown(self):
        for k, v in self._saved.items():
            setattr(cfg, k, v)

    def test_connect_failure_is_remote_connection_error(self):
        with mock.patch("paramiko.SSHClient") as client_cls:
            client = client_cls.return_value
            client.connect.side_effect = paramiko.SSHException("auth failed")
            with self.assertRaises(RemoteConnectionError) as ctx:
                SSHManager().connect()
        self.assertIn("auth failed", str(ctx.exception))
        client.close.assert_called_once()

    def test_refused_connection_is_remote_connection_error(self):
        with mock.patch("paramiko.SSHClient") as client_cls:
            client_cls.return_value.connect.side_effect = ConnectionRefusedError(111, "refused")
            with self.assertRaises(RemoteConnectionError):
                SSHManager().connect()

    def test_sync_command_exits_1_when_host_unreachable(self):
        from backpush.cli import main
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "local").mkdir()
            project = root / ".backpush"
            project.write_text(
                "profiles:\n"
                "  - name: default\n"
                "    server: unreachable.example.com\n"
                f"    local_root: {root / 'local'}\n"
                "    remote_root: /srv/www\n"
                "    backup_base: /srv/backups\n",
                encoding="utf-8",
            )
            stderr = io.StringIO()
            with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": str(root / "xdg")}), \
                    mock.patch("backpush.config.find_project_file", return_value=project), \
                    mock.patch("paramiko.SSHClient") as client_cls, \
                    mock.patch("sys.stdout", new_callable=io.StringIO), \
                    mock.patch("sys.stderr", stderr):
                client_cls.return_value.connect.side_effect = paramiko.SSHException("no route")
                with self.assertRaises(SystemExit) as ctx:
                    main(["sync", "--no-progress"])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("no route", stderr.getvalue())


class TestMakedirs(unittest.TestCase):

    def _sftp(self, existing):
        """Mock SFTP client where *existing* maps path -> st_mode."""
        sftp = mock.Mock()

        def fake_stat(path):
            if path not in existing:
                raise FileNotFoundError(2, "No such file", path)
            return _attrs(existing[path])

        sftp.stat.side_effect = fake_stat
        return sftp

    def test_creates_missing_components_top_down(self):
        sftp = self._sftp({"/a": stat.S_IFDIR | 0o755})

        _manager_with(sftp).makedirs("/a/b/c")

        self.assertEqual(sftp.mkdir.call_args_list, [mock.call("/a/b"), mock.call("/a/b/c")])

    def test_existing_directory_needs_no_mkdir(self):
        sftp = self._sftp({"/a/b": stat.S_IFDIR | 0o755})

        _manager_with(sftp).makedirs("/a/b/")

        sftp.mkdir.assert_not_called()

    def test_file_in_the_way_is_not_a_directory(self):
        sftp = self._sftp({"/a": stat.S_IFDIR | 0o755, "/a/f": stat.S_IFREG | 0o644})

        with self.assertRaises(NotADirectoryError):
            _manager_with(sftp).makedirs("/a/f/sub")
        sftp.mkdir.assert_not_called()

    def test_mkdir_race_with_another_writer_is_fine(self):
        existing = {"/a": stat.S_IFDIR | 0o755}
        sftp = self._sftp(existing)

        def racing_mkdir(path):
            existing[path] = stat.S_IFDIR | 0o755
            raise OSError("Failure")

        sftp.mkdir.side_effect = racing_mkdir

        _manager_with(sftp).makedirs("/a/b")

        sftp.mkdir.assert_called_once_with("/a/b")

    def test_mkdir_failure_keeps_the_original_error(self):
        sftp = self._sftp({"/a": stat.S_IFDIR | 0o755})
        sftp.mkdir.side_effect = PermissionError(13, "Permission denied")

        with self.assertRaises(PermissionError):
            _manager_with(sftp).makedirs("/a/b")


class TestMetadata(unittest.TestCase):

    def test_regular_file(self):
        meta = _metadata(_attrs(stat.S_IFREG | 0o640, size=12, mtime=1_600_000_000))
        self.assertEqual(meta.size, 12)
        self.assertEqual(meta.mtime, 1_600_000_000.0)
        self.assertFalse(meta.is_dir)
        self.assertEqual(meta.mode, 0o640)

    def test_directory(self):
        meta = _metadata(_attrs(stat.S_IFDIR | 0o755))
        self.assertTrue(meta.is_dir)
        self.assertEqual(meta.mode, 0o755)

    def test_missing_fields_default_to_zero(self):
        meta = _metadata(paramiko.SFTPAttributes())
        self.assertEqual((meta.size, meta.mtime, meta.is_dir, meta.mode), (0, 0.0, False, 0))

    def test_listdir_maps_entries(self):
        sftp = mock.Mock()
        entry = _attrs(stat.S_IFREG | 0o600, size=3, mtime=5)
        entry.filename = "x.txt"
        sftp.listdir_attr.return_value = [entry]

        listing = _manager_with(sftp).listdir("/srv")

        self.assertEqual([name for name, _ in listing], ["x.txt"])
        self.assertEqual(listing[0][1].mode, 0o600)


if __name__ == "__main__":
    unittest.main()
