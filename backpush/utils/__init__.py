"""Utilities (logging, retry, fingerprints)"""
from .logging import log, vlog, warn, set_verbose, set_log_file
from .retry import retried
from .file_utils import fingerprint, times_equal

__all__ = [
    "log", "vlog", "warn", "set_verbose", "set_log_file",
    "retried",
    "fingerprint", "times_equal",
]
