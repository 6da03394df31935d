from __future__ import annotations

"""Command-line entry point for the UE-V template deployment run."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


if __package__ in (None, ""):
    package_root = Path(__file__).resolve().parent
    sys.path.insert(0, str(package_root.parent))

    from uev_deploy.blobs import list_blobs  # type: ignore[import-not-found]
    from uev_deploy.config import Config, get_config  # type: ignore[import-not-found]
    from uev_deploy.fetcher import ScriptNotFoundError, fetch_script  # type: ignore[import-not-found]
    from uev_deploy.scheduler import (  # type: ignore[import-not-found]
        ReconcileOutcome,
        TaskDescriptor,
        TaskError,
        build_command_line,
        reconcile_task,
    )
else:
    from .blobs import list_blobs
    from .config import Config, get_config
    from .fetcher import ScriptNotFoundError, fetch_script
    from .scheduler import (
        ReconcileOutcome,
        TaskDescriptor,
        TaskError,
        build_command_line,
        reconcile_task,
    )

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"


def transcript_path(directory: Path, started: datetime) -> Path:
    return directory / f"uev-deploy-{started.strftime('%Y%m%d-%H%M%S')}.log"


def configure_logging(
    verbose: bool = False,
    transcript_dir: Optional[Path] = None,
    started: Optional[datetime] = None,
) -> Optional[Path]:
    """Set up console logging and, when possible, a per-run transcript file."""

    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(console)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    transcript: Optional[Path] = None
    if transcript_dir is not None:
        transcript = transcript_path(transcript_dir, started or datetime.now())
        try:
            transcript.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(transcript, encoding="utf-8")
        except OSError as exc:
            logging.warning("⚠️ Transcript unavailable at %s: %s", transcript, exc)
            transcript = None
        else:
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)

    logging.info("🧠 UE-V template deployment initialising…")
    if transcript is not None:
        logging.info("📝 Transcript: %s", transcript)
    return transcript


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Download the UE-V configuration script and keep its scheduled task current"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Download the script but only report the scheduled task change.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the container listing and exit.",
    )
    parser.add_argument("--listing-url", help="Container listing URL.")
    parser.add_argument("--script-name", help="Blob name of the script to download.")
    parser.add_argument("--task-name", help="Scheduled task name.")
    parser.add_argument("--task-path", help="Task Scheduler folder for the task.")
    parser.add_argument("--executable", help="Program the task runs.")
    parser.add_argument("--arguments", help="Base arguments placed before the script path.")
    parser.add_argument("--target-dir", help="Directory the script is downloaded to.")
    parser.add_argument("--at", dest="trigger_time", help="Daily trigger time HH:MM (24h).")
    parser.add_argument("--transcript-dir", help="Directory for the run transcript.")
    parser.add_argument("--timeout", dest="http_timeout", type=int, help="HTTP timeout in seconds.")
    return parser.parse_args(argv if argv is not None else sys.argv[1:])


def print_listing(config: Config) -> int:
    records = list_blobs(config.listing_url, timeout=config.http_timeout)
    for record in records:
        stamp = record.last_modified.isoformat() if record.last_modified else "-"
        print(f"{record.name}\t{record.size}\t{stamp}\t{record.url}")
    return 0


def run_once(config: Config, *, dry_run: bool = False) -> ReconcileOutcome:
    """List the container, fetch the script and reconcile the scheduled task."""

    records = list_blobs(config.listing_url, timeout=config.http_timeout)
    script_path = fetch_script(
        records,
        config.script_name,
        config.target_dir,
        timeout=config.http_timeout,
    )
    if not script_path.exists():
        logging.warning("⚠️ %s is not on disk; the task will reference a missing file.", script_path)

    descriptor = TaskDescriptor(
        name=config.task_name,
        executable=config.executable,
        arguments=build_command_line(config.arguments, script_path),
        task_path=config.task_path,
        at=config.trigger_time,
    )
    outcome = reconcile_task(descriptor, dry_run=dry_run)
    logging.info("🏁 Run complete: task %s.", outcome.value)
    return outcome


def main(argv=None) -> int:
    args = parse_args(argv)
    started = datetime.now()
    try:
        config = get_config().with_overrides(
            listing_url=args.listing_url,
            script_name=args.script_name,
            task_name=args.task_name,
            task_path=args.task_path,
            executable=args.executable,
            arguments=args.arguments,
            target_dir=args.target_dir,
            trigger_time=args.trigger_time,
            transcript_dir=args.transcript_dir,
            http_timeout=args.http_timeout,
        )
    except ValueError as exc:
        configure_logging(args.verbose)
        logging.error("❌ Invalid configuration: %s", exc)
        return 2

    configure_logging(args.verbose, config.transcript_dir, started)

    if args.list:
        return print_listing(config)

    config.ensure_directories()
    try:
        run_once(config, dry_run=args.dry_run)
    except ScriptNotFoundError as exc:
        logging.error("❌ %s", exc)
        return 1
    except TaskError as exc:
        logging.error("❌ %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
