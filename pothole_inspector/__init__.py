"""Top-level package for the Pothole Inspector library."""

from .config import AppConfig
from .services.workflow import WorkflowController, WorkflowState
from .settings_store import SettingsStore

__all__ = ["AppConfig", "SettingsStore", "WorkflowController", "WorkflowState"]
