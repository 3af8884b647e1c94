"""
Configuration constants for backpush
"""
import os
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or apply_profile()
# ══════════════════════════════════════════════════════════════════════════════

SSH_HOST = "example.com"
SSH_PORT = 22
SSH_USER = "root"
# Path to your private key, or None to use ssh-agent / ~/.ssh/id_*
SSH_KEY_PATH: Optional[str] = None
SSH_PASSWORD: Optional[str] = None
CONNECT_TIMEOUT = 30  # seconds

LOCAL_ROOT = Path(".")
REMOTE_ROOT = PurePosixPath("/")
# Each run writes its backups under BACKUP_BASE/<YYYYmmdd_HHMMSS>
BACKUP_BASE = PurePosixPath("/var/backups/backpush")

LOG_FILE: Optional[Path] = None

# Retry settings
RETRY_MAX = 5
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

# mtime tolerance (seconds): covers timestamp truncation between filesystems
MTIME_TOLERANCE = 2.0

# Abort the run instead of continuing with a partial remote inventory
STRICT_REMOTE_SCAN = False

PROJECT_FILE = ".backpush"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/backpush/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for backpush."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "backpush"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "backpush"
    return Path.home() / ".config" / "backpush"


def load_global_config() -> dict:
    """Load global config; a missing or unreadable file yields {}."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .backpush (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .backpush YAML file.
    Returns the Path if found, or None if no .backpush exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_project_file(path: Path) -> dict:
    """Parse a .backpush YAML file and return its contents as a dict."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a .backpush or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {})
    profiles = data.get("profiles", [])
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


def _under_base(value, base: str) -> PurePosixPath:
    """Prefix *value* with *base* unless it is already absolute."""
    p = str(value)
    if base and not p.startswith("/"):
        p = f"{base}/{p}"
    return PurePosixPath(p)


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY PROFILE  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def apply_profile(profile: dict):
    """
    Apply a profile dict to the module-level config variables.
    Supports keys: server, port, user, ssh_key, ssh_password, connect_timeout,
                   local_root, remote_root, backup_base,
                   base_remote (prepended to relative remote_root / backup_base),
                   log_file, mtime_tolerance, strict_remote_scan,
                   retry_max, retry_base_delay.
    """
    global SSH_HOST, SSH_PORT, SSH_USER, SSH_KEY_PATH, SSH_PASSWORD, CONNECT_TIMEOUT
    global LOCAL_ROOT, REMOTE_ROOT, BACKUP_BASE, LOG_FILE
    global MTIME_TOLERANCE, STRICT_REMOTE_SCAN, RETRY_MAX, RETRY_BASE_DELAY

    if "server" in profile:
        SSH_HOST = str(profile["server"])
    if "port" in profile:
        SSH_PORT = int(profile["port"])
    if "user" in profile:
        SSH_USER = str(profile["user"])
    elif "username" in profile:
        SSH_USER = str(profile["username"])
    if "ssh_key" in profile:
        SSH_KEY_PATH = str(profile["ssh_key"]) if profile["ssh_key"] else None
    if "ssh_password" in profile:
        SSH_PASSWORD = str(profile["ssh_password"]) if profile["ssh_password"] else None
    if "connect_timeout" in profile:
        CONNECT_TIMEOUT = int(profile["connect_timeout"])
    if "local_root" in profile:
        LOCAL_ROOT = Path(profile["local_root"]).expanduser().resolve()

    base = str(profile.get("base_remote", "")).rstrip("/")
    if "remote_root" in profile:
        REMOTE_ROOT = _under_base(profile["remote_root"], base)
    if "backup_base" in profile:
        BACKUP_BASE = _under_base(profile["backup_base"], base)

    if "log_file" in profile:
        LOG_FILE = Path(profile["log_file"]).expanduser() if profile["log_file"] else None
    if "mtime_tolerance" in profile:
        MTIME_TOLERANCE = float(profile["mtime_tolerance"])
    if "strict_remote_scan" in profile:
        STRICT_REMOTE_SCAN = bool(profile["strict_remote_scan"])
    if "retry_max" in profile:
        RETRY_MAX = max(1, int(profile["retry_max"]))
    if "retry_base_delay" in profile:
        RETRY_BASE_DELAY = float(profile["retry_base_delay"])
