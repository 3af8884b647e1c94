"""
Logging utilities for backpush
"""
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO

_verbose = False
_log_fh: Optional[TextIO] = None
_console: Callable[[str], None] = lambda line: print(line, flush=True)


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def set_console_writer(writer: Optional[Callable[[str], None]]):
    """Route console lines through *writer* (e.g. tqdm.write); None restores print."""
    global _console
    _console = writer or (lambda line: print(line, flush=True))


def set_log_file(path: Optional[Path]):
    """Append every log line to *path* as well; None closes the current file."""
    global _log_fh
    if _log_fh is not None:
        _log_fh.close()
        _log_fh = None
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        _log_fh = path.open("a", encoding="utf-8")


def printable(text: str) -> str:
    """Escape undecodable bytes (surrogates from os.fsdecode) as \\udcXX."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def _emit(msg: str, console: bool):
    msg = printable(msg)
    now = datetime.now()
    if console:
        _console(f"[{now.strftime('%H:%M:%S')}] {msg}")
    if _log_fh is not None:
        _log_fh.write(f"{now.strftime('%Y/%m/%d %H:%M:%S')} {msg}\n")
        _log_fh.flush()


def log(msg: str):
    """Log a message with timestamp"""
    _emit(msg, console=True)


def vlog(msg: str):
    """Log a verbose message; the log file always receives it"""
    _emit(msg, console=_verbose)


def warn(msg: str):
    """Log a warning message"""
    log(f"⚠  {msg}")
