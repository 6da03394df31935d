"""Download the UE-V configuration script and keep its scheduled task current."""

from .blobs import BlobRecord, list_blobs
from .config import Config, get_config
from .main import main, run_once
from .scheduler import ReconcileOutcome, TaskDescriptor, reconcile_task

__all__ = [
    "BlobRecord",
    "Config",
    "ReconcileOutcome",
    "TaskDescriptor",
    "get_config",
    "list_blobs",
    "main",
    "reconcile_task",
    "run_once",
]

__version__ = "1.0.0"
