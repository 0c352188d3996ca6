from .history import BackupHistoryAction

__all__ = ["BackupHistoryAction"]
