from __future__ import annotations

"""Windows Task Scheduler reconciliation via the ScheduledTasks cmdlets."""

import json
import logging
import subprocess
from dataclasses import dataclass
from datetime import time
from enum import Enum
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

SYSTEM_ACCOUNT = "NT AUTHORITY\\SYSTEM"
TASK_COMPATIBILITY = "V1"


class TaskError(Exception):
    pass


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class TaskAction:
    executable: str
    arguments: str


@dataclass
class TaskDescriptor:
    """
    Desired state of the scheduled task.

    Only ``executable`` and ``arguments`` are compared against a live task;
    the daily trigger, settings bundle and SYSTEM principal are applied on
    creation only.
    """

    name: str
    executable: str
    arguments: str
    task_path: str = "\\"
    at: time = time(9, 0)
    description: str = "Downloads the UE-V configuration script and registers templates"

    @property
    def action(self) -> TaskAction:
        return TaskAction(self.executable, self.arguments)

    def matches(self, live: TaskAction) -> bool:
        return live == self.action


def _quote_ps(value: str) -> str:
    # Single-quoted PowerShell literal: no expansion, quotes doubled
    return "'" + str(value).replace("'", "''") + "'"


def _normalise_task_path(task_path: str) -> str:
    stripped = task_path.strip("\\")
    return f"\\{stripped}\\" if stripped else "\\"


def _run_powershell(script: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            [
                "powershell.exe",
                "-NoProfile",
                "-NonInteractive",
                "-ExecutionPolicy",
                "Bypass",
                "-Command",
                script,
            ],
            text=True,
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise TaskError(f"Failed to launch powershell.exe: {exc}") from exc


def _check(res: subprocess.CompletedProcess, message: str) -> None:
    if res.returncode != 0:
        raise TaskError(f"{message}:\n{res.stderr.strip()}\n{res.stdout.strip()}")


def build_command_line(base_arguments: str, script_path: Union[str, Path]) -> str:
    """Append the quoted script path to the base argument string."""

    quoted = '"' + str(script_path).replace('"', '\\"') + '"'
    base = base_arguments.strip()
    return f"{base} {quoted}" if base else quoted


def _lookup_prefix(name: str, task_path: str) -> str:
    return (
        "$ErrorActionPreference = 'Stop'; "
        f"$task = Get-ScheduledTask -TaskName {_quote_ps(name)} "
        f"-TaskPath {_quote_ps(_normalise_task_path(task_path))}; "
    )


def get_task_action(name: str, task_path: str = "\\") -> Optional[TaskAction]:
    """Return the first action of the named task, or ``None`` if it is absent.

    Any query failure counts as absent.
    """

    script = (
        _lookup_prefix(name, task_path)
        + "$action = @($task.Actions)[0]; "
        + "[pscustomobject]@{ Execute = $action.Execute; Arguments = $action.Arguments } "
        + "| ConvertTo-Json -Compress"
    )
    try:
        res = _run_powershell(script)
    except TaskError as exc:
        logger.debug("Task query for '%s' failed: %s", name, exc)
        return None
    if res.returncode != 0:
        logger.debug("Task query for '%s' failed: %s", name, res.stderr.strip())
        return None
    txt = (res.stdout or "").strip()
    if not txt:
        return None
    try:
        data = json.loads(txt)
    except ValueError:
        logger.debug("Unreadable task query output for '%s': %r", name, txt)
        return None
    if not isinstance(data, dict):
        return None
    return TaskAction(
        executable=str(data.get("Execute") or ""),
        arguments=str(data.get("Arguments") or ""),
    )


def _build_register(desc: TaskDescriptor) -> str:
    return (
        "$ErrorActionPreference = 'Stop'; "
        f"$action = New-ScheduledTaskAction -Execute {_quote_ps(desc.executable)} "
        f"-Argument {_quote_ps(desc.arguments)}; "
        f"$trigger = New-ScheduledTaskTrigger -Daily -At {desc.at.strftime('%H:%M')}; "
        "$settings = New-ScheduledTaskSettingsSet -AllowStartIfOnBatteries -Hidden "
        "-DontStopIfGoingOnBatteries -RunOnlyIfNetworkAvailable "
        f"-Compatibility {TASK_COMPATIBILITY}; "
        f"$principal = New-ScheduledTaskPrincipal -UserId {_quote_ps(SYSTEM_ACCOUNT)} "
        "-LogonType ServiceAccount -RunLevel Highest; "
        f"Register-ScheduledTask -TaskName {_quote_ps(desc.name)} "
        f"-TaskPath {_quote_ps(_normalise_task_path(desc.task_path))} "
        f"-Description {_quote_ps(desc.description)} "
        "-Action $action -Trigger $trigger -Settings $settings -Principal $principal "
        "| Out-Null"
    )


def create_task(desc: TaskDescriptor) -> None:
    res = _run_powershell(_build_register(desc))
    _check(res, f"Failed to register task '{desc.name}'")


def update_task_action(desc: TaskDescriptor) -> None:
    """Rewrite the first action of an existing task, leaving everything else."""

    script = (
        _lookup_prefix(desc.name, desc.task_path)
        + f"$task.Actions[0].Execute = {_quote_ps(desc.executable)}; "
        + f"$task.Actions[0].Arguments = {_quote_ps(desc.arguments)}; "
        + "$task | Set-ScheduledTask | Out-Null"
    )
    res = _run_powershell(script)
    _check(res, f"Failed to update task '{desc.name}'")


def reconcile_task(desc: TaskDescriptor, *, dry_run: bool = False) -> ReconcileOutcome:
    """Create, update or leave the named task so its action matches ``desc``."""

    live = get_task_action(desc.name, desc.task_path)

    if live is None:
        if dry_run:
            logger.info("🧪 Dry-run: would create task '%s'", desc.name)
        else:
            logger.info("🗓️ Creating scheduled task '%s'", desc.name)
            create_task(desc)
            logger.info("✅ Task '%s' registered (daily at %s)", desc.name, desc.at.strftime("%H:%M"))
        return ReconcileOutcome.CREATED

    if desc.matches(live):
        logger.info("⏭️ Task '%s' already up to date", desc.name)
        return ReconcileOutcome.UNCHANGED

    logger.debug("Live action: %s %s", live.executable, live.arguments)
    logger.debug("Desired action: %s %s", desc.executable, desc.arguments)
    if dry_run:
        logger.info("🧪 Dry-run: would update action of task '%s'", desc.name)
    else:
        logger.info("🔁 Updating action of task '%s'", desc.name)
        update_task_action(desc)
        logger.info("✅ Task '%s' updated", desc.name)
    return ReconcileOutcome.UPDATED


__all__ = [
    "ReconcileOutcome",
    "TaskAction",
    "TaskDescriptor",
    "TaskError",
    "build_command_line",
    "create_task",
    "get_task_action",
    "reconcile_task",
    "update_task_action",
]
