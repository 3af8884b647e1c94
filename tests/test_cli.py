"""
Integration tests for backpush CLI behavior and profile configuration.

Tests:
  - .backpush discovery: searching parent directories upward
  - config loading: apply_profile correctly mutates module variables
  - backpush init: creates a valid .backpush YAML, refuses overwrite without --force
  - backpush sync: fails cleanly without a config
"""
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path, PurePosixPath

import yaml


# ── Helpers ───────────────────────────────────────────────────────────────────

REPO_ROOT = Path(__file__).parent.parent


def run_backpush(*args, cwd=None, input_text=None):
    """Run the backpush CLI and return (returncode, stdout, stderr)."""
    result = subprocess.run(
        [sys.executable, "-m", "backpush", *args],
        cwd=str(cwd or REPO_ROOT),
        capture_output=True,
        text=True,
        input=input_text,
        env={**os.environ, "PYTHONPATH": str(REPO_ROOT)},
    )
    return result.returncode, result.stdout, result.stderr


# ── Tests: .backpush discovery ────────────────────────────────────────────────

class TestFindProjectFile(unittest.TestCase):
    """Tests for find_project_file(): upward search through parent directories."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_find_in_same_directory(self):
        from backpush.config import find_project_file
        (self.root / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        self.assertEqual(find_project_file(self.root), self.root / ".backpush")

    def test_find_in_parent_directory(self):
        from backpush.config import find_project_file
        (self.root / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        subdir = self.root / "a" / "b" / "c"
        subdir.mkdir(parents=True)
        self.assertEqual(find_project_file(subdir), self.root / ".backpush")

    def test_finds_nearest_project_file(self):
        from backpush.config import find_project_file
        (self.root / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        sub_a = self.root / "a"
        sub_a.mkdir()
        (sub_a / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        deep = sub_a / "b" / "c"
        deep.mkdir(parents=True)
        self.assertEqual(find_project_file(deep), sub_a / ".backpush")


# ── Tests: config loading ─────────────────────────────────────────────────────

class TestLoadProfile(unittest.TestCase):
    """Tests for load_project_file, get_profile and apply_profile."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        import backpush.config as cfg
        self._saved = {k: getattr(cfg, k) for k in (
            "SSH_HOST", "SSH_PORT", "LOCAL_ROOT", "REMOTE_ROOT", "BACKUP_BASE",
            "MTIME_TOLERANCE", "STRICT_REMOTE_SCAN", "LOG_FILE", "RETRY_MAX")}

    def tearDown(self):
        import backpush.config as cfg
        for k, v in self._saved.items():
            setattr(cfg, k, v)
        self.tmpdir.cleanup()

    def _load(self, content, name="default"):
        import backpush.config as cfg
        p = self.root / ".backpush"
        p.write_text(content, encoding="utf-8")
        return cfg.get_profile(cfg.load_project_file(p), name)

    def test_load_profile_basic(self):
        import backpush.config as cfg
        cfg.apply_profile(self._load(
            "profiles:\n"
            "  - name: default\n"
            "    server: myhost.example.com\n"
            "    port: 2222\n"
            "    local_root: /tmp/local\n"
            "    remote_root: /remote/path\n"
            "    backup_base: /remote/backups\n"
        ))
        self.assertEqual(cfg.SSH_HOST, "myhost.example.com")
        self.assertEqual(cfg.SSH_PORT, 2222)
        self.assertEqual(cfg.REMOTE_ROOT, PurePosixPath("/remote/path"))
        self.assertEqual(cfg.BACKUP_BASE, PurePosixPath("/remote/backups"))

    def test_base_remote_prefixes_relative_paths(self):
        import backpush.config as cfg
        cfg.apply_profile(self._load(
            "profiles:\n"
            "  - name: default\n"
            "    remote_root: projects/myrepo\n"
            "    backup_base: backups\n"
            "defaults:\n"
            "  base_remote: /home/user\n"
        ))
        self.assertEqual(cfg.REMOTE_ROOT, PurePosixPath("/home/user/projects/myrepo"))
        self.assertEqual(cfg.BACKUP_BASE, PurePosixPath("/home/user/backups"))

    def test_sync_behaviour_keys(self):
        import backpush.config as cfg
        cfg.apply_profile({
            "mtime_tolerance": 0.5,
            "strict_remote_scan": True,
            "log_file": str(self.root / "sync.log"),
            "retry_max": 0,
        })
        self.assertEqual(cfg.MTIME_TOLERANCE, 0.5)
        self.assertTrue(cfg.STRICT_REMOTE_SCAN)
        self.assertEqual(cfg.LOG_FILE, self.root / "sync.log")
        self.assertEqual(cfg.RETRY_MAX, 1)

    def test_default_tolerance_is_two_seconds(self):
        import backpush.config as cfg
        self.assertEqual(cfg.MTIME_TOLERANCE, 2.0)

    def test_get_profile_by_name(self):
        profile = self._load(
            "profiles:\n"
            "  - name: dev\n"
            "    server: dev.example.com\n"
            "  - name: prod\n"
            "    server: prod.example.com\n"
            "    port: 2222\n",
            name="prod",
        )
        self.assertEqual(profile["server"], "prod.example.com")
        self.assertEqual(profile["port"], 2222)

    def test_get_profile_falls_back_to_first(self):
        profile = self._load(
            "profiles:\n"
            "  - name: only\n"
            "    server: only.example.com\n",
            name="nonexistent",
        )
        self.assertEqual(profile["server"], "only.example.com")


# ── Tests: backpush init CLI ──────────────────────────────────────────────────

class TestInitCommand(unittest.TestCase):
    """Tests for the 'backpush init' subcommand."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.cwd = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def _init(self, *extra):
        return run_backpush(
            "init",
            "--server", "myhost.com",
            "--port", "2222",
            "--user", "deploy",
            "--remote", "projects/test",
            "--backup", "/srv/backups",
            *extra,
            cwd=self.cwd,
        )

    def test_init_creates_valid_yaml(self):
        rc, out, err = self._init("--base-remote", "/home/user")
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        data = yaml.safe_load((self.cwd / ".backpush").read_text(encoding="utf-8"))
        profile = data["profiles"][0]
        self.assertEqual(profile["server"], "myhost.com")
        self.assertEqual(profile["port"], 2222)
        self.assertEqual(profile["remote_root"], "projects/test")
        self.assertEqual(profile["backup_base"], "/srv/backups")
        self.assertEqual(profile["mtime_tolerance"], 2.0)
        self.assertEqual(data["defaults"]["base_remote"], "/home/user")

    def test_init_refuses_overwrite(self):
        (self.cwd / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = self._init()
        self.assertNotEqual(rc, 0)
        self.assertIn("already exists", err)

    def test_init_force_overwrites(self):
        (self.cwd / ".backpush").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = self._init("--force")
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertIn("myhost.com", (self.cwd / ".backpush").read_text(encoding="utf-8"))

    def test_init_dry_run_does_not_write(self):
        rc, out, err = self._init("--dry-run")
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertFalse((self.cwd / ".backpush").exists())
        self.assertIn("dry-run", out)


# ── Tests: backpush sync CLI ──────────────────────────────────────────────────

class TestSyncCommand(unittest.TestCase):

    def test_sync_without_config_fails(self):
        with tempfile.TemporaryDirectory() as tmp:
            rc, out, err = run_backpush("sync", cwd=tmp)
        self.assertEqual(rc, 1)
        self.assertIn("backpush init", err)

    def test_negative_tolerance_rejected(self):
        from backpush.cli import main
        with self.assertRaises(SystemExit) as ctx:
            main(["sync", "--tolerance", "-1"])
        self.assertEqual(ctx.exception.code, 2)

    def test_no_command_prints_help(self):
        rc, out, err = run_backpush()
        self.assertEqual(rc, 1)
        self.assertIn("init", out)


if __name__ == "__main__":
    unittest.main()
