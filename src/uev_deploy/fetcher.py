from __future__ import annotations

"""Select and download the configuration script from a blob listing."""

import logging
from pathlib import Path
from typing import Iterable

import requests

from .blobs import BlobRecord

logger = logging.getLogger(__name__)

STORAGE_API_VERSION = "2017-11-09"
HEADERS = {"x-ms-version": STORAGE_API_VERSION}
CHUNK_SIZE = 64 * 1024


class ScriptNotFoundError(LookupError):
    """Raised when the listing has no blob with the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No blob named '{name}' in container listing")
        self.name = name


def select_blob(records: Iterable[BlobRecord], name: str) -> BlobRecord:
    """Return the first record whose name equals ``name``."""

    for record in records:
        if record.name == name:
            return record
    raise ScriptNotFoundError(name)


def download_blob(record: BlobRecord, destination: Path, *, timeout: int = 30) -> bool:
    """Download ``record`` to ``destination``; errors are logged, never raised."""

    temp = destination.with_name(destination.name + ".part")
    try:
        with requests.get(record.url, headers=HEADERS, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with temp.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
        temp.replace(destination)
    except (requests.RequestException, OSError) as exc:
        logger.warning("⚠️ Download of %s failed: %s", record.url, exc)
        temp.unlink(missing_ok=True)
        return False

    logger.info("⬇️ Downloaded %s → %s", record.name, destination)
    return True


def fetch_script(
    records: Iterable[BlobRecord],
    name: str,
    target_dir: Path,
    *,
    timeout: int = 30,
) -> Path:
    """Download the blob called ``name`` into ``target_dir`` and return its path.

    The path is returned whether or not the download succeeded.
    """

    record = select_blob(records, name)
    if not target_dir.exists():
        logger.info("📁 Creating directory: %s", target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
    destination = target_dir / record.name
    download_blob(record, destination, timeout=timeout)
    return destination


__all__ = ["ScriptNotFoundError", "select_blob", "download_blob", "fetch_script"]
