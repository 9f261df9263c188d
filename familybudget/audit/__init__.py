"""Edit history logging package."""

from familybudget.audit.logger import EditHistoryLogger, configure_logging, edit_history_path

__all__ = ["EditHistoryLogger", "configure_logging", "edit_history_path"]
