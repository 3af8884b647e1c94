"""
Run data model: file metadata, actions, events and the run summary
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import RemoteScanError


@dataclass(frozen=True)
class FileMetadata:
    size: int
    mtime: float
    is_dir: bool = False
    mode: int = 0  # permission bits only


# { rel_posix: FileMetadata }, leaf files only
Inventory = dict[str, FileMetadata]


@dataclass
class ScanResult:
    inventory: Inventory
    errors: list[RemoteScanError] = field(default_factory=list)


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    RETOUCH = "retouch"
    NOOP = "noop"
    DELETE = "delete"


@dataclass(frozen=True)
class ActionEvent:
    rel: str
    action: Optional[Action]  # None when classification itself failed
    ok: bool = True
    reason: str = ""


@dataclass
class RunResult:
    backup_root: str
    total: int = 0
    dry_run: bool = False
    counts: dict[Action, int] = field(default_factory=lambda: {a: 0 for a in Action})
    failures: list[ActionEvent] = field(default_factory=list)
    backed_up: list[str] = field(default_factory=list)
    backup_root_removed: bool = False
    remote_scan_errors: int = 0

    def record(self, event: ActionEvent):
        if event.ok:
            self.counts[event.action] += 1
        else:
            self.failures.append(event)

    @property
    def processed(self) -> int:
        return sum(self.counts.values()) + len(self.failures)
