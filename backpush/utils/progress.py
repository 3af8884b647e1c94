"""
Progress sinks: receive per-file events from a run, never steer it
"""
from typing import Optional, Protocol

from tqdm import tqdm

from ..core.models import Action, ActionEvent, RunResult
from .logging import log, set_console_writer, vlog, warn

_LABELS = {
    Action.CREATE: "NEW",
    Action.UPDATE: "UPDATE",
    Action.RETOUCH: "RETOUCH",
    Action.NOOP: "SKIP",
    Action.DELETE: "DEL-REMOTE",
}


class ProgressSink(Protocol):
    def start(self, total: int) -> None:
        ...

    def event(self, ev: ActionEvent) -> None:
        ...

    def finish(self, result: RunResult) -> None:
        ...

    def close(self) -> None:
        """Release the display; called after finish() and on an aborted run."""
        ...


class NullSink:
    def start(self, total: int):
        pass

    def event(self, ev: ActionEvent):
        pass

    def finish(self, result: RunResult):
        pass

    def close(self):
        pass


class LogSink:
    """Writes one line per event through the log helpers."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def start(self, total: int):
        log(f"[sync] {total} operation(s) to consider")

    def event(self, ev: ActionEvent):
        if not ev.ok:
            what = _LABELS[ev.action] if ev.action else "CHECK"
            warn(f"  [{what} ✗] {ev.rel}: {ev.reason}")
            return
        label = _LABELS[ev.action] + ("-DRY" if self.dry_run else " ✓")
        line = f"  [{label}] {ev.rel}" + (f"  ({ev.reason})" if ev.reason else "")
        if ev.action is Action.NOOP:
            vlog(line)
        else:
            log(line)

    def finish(self, result: RunResult):
        c = result.counts
        print()
        print(f"{'─' * 64}")
        print(" SUMMARY" + ("  (dry-run)" if result.dry_run else ""))
        print(f"  Created    : {c[Action.CREATE]}")
        print(f"  Updated    : {c[Action.UPDATE]}")
        print(f"  Retouched  : {c[Action.RETOUCH]}")
        print(f"  Unchanged  : {c[Action.NOOP]}")
        print(f"  Deleted    : {c[Action.DELETE]}")
        print(f"  Failed     : {len(result.failures)}")
        if result.backed_up:
            print(f"  Backups in : {result.backup_root}")
        print(f"{'─' * 64}")
        if result.remote_scan_errors:
            print()
            print(f"⚠  {result.remote_scan_errors} remote director(ies) could not be read;")
            print("   files below them were neither compared nor deleted.")

    def close(self):
        pass


class TqdmSink:
    """Progress bar over the run; log lines are printed above the bar."""

    def __init__(self, inner: Optional[ProgressSink] = None):
        self.inner = inner or LogSink()
        self._bar: Optional[tqdm] = None

    def start(self, total: int):
        self._bar = tqdm(total=total, desc="Syncing files", unit="file",
                         ncols=80, mininterval=0.1)
        set_console_writer(tqdm.write)
        self.inner.start(total)

    def event(self, ev: ActionEvent):
        self.inner.event(ev)
        if self._bar is not None:
            self._bar.update(1)

    def finish(self, result: RunResult):
        self.close()
        self.inner.finish(result)

    def close(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None
            set_console_writer(None)
        self.inner.close()
