"""Core functionality (data model, remote capability)"""
from .models import Action, ActionEvent, FileMetadata, Inventory, RunResult, ScanResult
from .remote import RemoteFilesystem

__all__ = ["Action", "ActionEvent", "FileMetadata", "Inventory", "RunResult", "ScanResult",
           "RemoteFilesystem"]
