from __future__ import annotations

"""Configuration helpers for the UE-V template deployment run."""

import os
import logging
import tempfile
from dataclasses import dataclass, replace
from datetime import datetime, time
from functools import lru_cache
from pathlib import Path
from typing import Any, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env either from project root or current working directory.
_ENV_PATH_CANDIDATES: Tuple[Path, ...] = (
    Path(__file__).resolve().parents[2] / ".env",
    Path.cwd() / ".env",
)
for candidate in _ENV_PATH_CANDIDATES:
    if candidate.exists():
        load_dotenv(candidate)
        break
else:
    load_dotenv()

DEFAULT_LISTING_URL = (
    "https://uevtemplates.blob.core.windows.net/templates?restype=container&comp=list"
)
DEFAULT_SCRIPT_NAME = "Set-Uev.ps1"
DEFAULT_TASK_NAME = "Download and Register UE-V Templates"
DEFAULT_TASK_PATH = "\\"
DEFAULT_EXECUTABLE = r"%SystemRoot%\System32\WindowsPowerShell\v1.0\powershell.exe"
DEFAULT_ARGUMENTS = "-NonInteractive -WindowStyle Hidden -ExecutionPolicy Bypass -File"
DEFAULT_TRIGGER_TIME = "09:00"


def parse_time(value: str) -> time:
    # Accept HH:MM or H:MM
    return datetime.strptime(value.strip(), "%H:%M").time()


def _default_target_dir() -> Path:
    program_data = os.getenv("ProgramData")
    if program_data:
        return Path(program_data) / "Scripts"
    return Path.cwd() / "Scripts"


def _default_transcript_dir() -> Path:
    system_root = os.getenv("SystemRoot")
    if system_root:
        return Path(system_root) / "Temp"
    return Path(tempfile.gettempdir())


@dataclass(frozen=True)
class Config:
    """Container for runtime configuration."""

    listing_url: str
    script_name: str
    task_name: str
    task_path: str
    executable: str
    arguments: str
    target_dir: Path
    trigger_time: time
    transcript_dir: Path
    http_timeout: int

    def __post_init__(self) -> None:
        if self.http_timeout <= 0:
            raise ValueError(f"HTTP timeout must be a positive number of seconds, got {self.http_timeout}")

    @staticmethod
    def from_env() -> "Config":
        """Build a :class:`Config` from environment variables."""

        target_override = os.getenv("UEV_TARGET_DIR")
        transcript_override = os.getenv("UEV_TRANSCRIPT_DIR")

        target_dir = (
            Path(target_override).expanduser() if target_override else _default_target_dir()
        )
        transcript_dir = (
            Path(transcript_override).expanduser()
            if transcript_override
            else _default_transcript_dir()
        )

        return Config(
            listing_url=os.getenv("UEV_LISTING_URL", DEFAULT_LISTING_URL).strip(),
            script_name=os.getenv("UEV_SCRIPT_NAME", DEFAULT_SCRIPT_NAME).strip(),
            task_name=os.getenv("UEV_TASK_NAME", DEFAULT_TASK_NAME).strip(),
            task_path=os.getenv("UEV_TASK_PATH", DEFAULT_TASK_PATH).strip() or DEFAULT_TASK_PATH,
            executable=os.getenv("UEV_EXECUTABLE", DEFAULT_EXECUTABLE).strip(),
            arguments=os.getenv("UEV_ARGUMENTS", DEFAULT_ARGUMENTS).strip(),
            target_dir=target_dir,
            trigger_time=parse_time(os.getenv("UEV_TRIGGER_TIME", DEFAULT_TRIGGER_TIME)),
            transcript_dir=transcript_dir,
            http_timeout=int(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        )

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if isinstance(changes.get("trigger_time"), str):
            changes["trigger_time"] = parse_time(changes["trigger_time"])
        for key in ("target_dir", "transcript_dir"):
            if key in changes:
                changes[key] = Path(changes[key]).expanduser()
        return replace(self, **changes)

    def ensure_directories(self) -> None:
        """Ensure the script target and transcript directories exist."""

        for directory in (self.target_dir, self.transcript_dir):
            if not directory.exists():
                logger.info("📁 Creating directory: %s", directory)
                directory.mkdir(parents=True, exist_ok=True)

    @property
    def script_path(self) -> Path:
        return self.target_dir / self.script_name


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Return a cached :class:`Config` instance."""
    return Config.from_env()


__all__ = ["Config", "get_config", "parse_time"]
