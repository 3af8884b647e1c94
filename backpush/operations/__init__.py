"""Operations (scan, backup, transfer, delete)"""
from .scanner import local_list_all, remote_list_all
from .backup import BackupManager, backup_root_for
from .transfer import push_file, retouch
from .delete import delete_remote

__all__ = [
    "local_list_all", "remote_list_all",
    "BackupManager", "backup_root_for",
    "push_file", "retouch",
    "delete_remote",
]
