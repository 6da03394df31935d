from __future__ import annotations

"""Anonymous blob container listing."""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import List, Optional, Union
from urllib.parse import quote, urlsplit, urlunsplit

import requests

logger = logging.getLogger(__name__)

XML_MARKER = b"<?xml"
HEADERS = {"Accept": "application/xml"}


@dataclass(frozen=True)
class BlobRecord:
    name: str
    url: str
    size: int
    last_modified: Optional[datetime]


def _strip_preamble(body: bytes) -> bytes:
    """Drop anything (BOM, transport junk) ahead of the ``<?xml`` marker."""

    index = body.find(XML_MARKER)
    if index > 0:
        logger.debug("✂️ Discarding %d preamble bytes before XML marker", index)
        return body[index:]
    if index < 0:
        # No declaration at all; a bare document may still follow a BOM.
        return body.lstrip(b"\xef\xbb\xbf").strip()
    return body


def _container_url(base_url: str) -> str:
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def _parse_size(text: Optional[str]) -> int:
    try:
        return int((text or "0").strip())
    except ValueError:
        logger.debug("Unreadable blob size: %r", text)
        return 0


def _parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        return parsedate_to_datetime(text.strip())
    except (TypeError, ValueError):
        logger.debug("Unreadable LastModified value: %r", text)
        return None


def _record_from_node(node: ET.Element, container_url: str) -> BlobRecord:
    name = node.findtext("Name") or ""
    url = node.findtext("Url") or ""
    if not url and container_url:
        url = f"{container_url}/{quote(name)}"
    size = node.findtext("Size")
    if size is None:
        size = node.findtext("Properties/Content-Length")
    last_modified = node.findtext("LastModified")
    if last_modified is None:
        last_modified = node.findtext("Properties/Last-Modified")
    return BlobRecord(
        name=name,
        url=url,
        size=_parse_size(size),
        last_modified=_parse_timestamp(last_modified),
    )


def parse_listing(body: Union[bytes, str], *, base_url: str = "") -> List[BlobRecord]:
    """Project a container listing document into :class:`BlobRecord` items.

    Records keep document order. An empty or malformed document yields an
    empty list rather than an error.
    """

    if isinstance(body, str):
        body = body.encode("utf-8")
    payload = _strip_preamble(body or b"")
    if not payload:
        logger.warning("⚠️ Blob listing was empty.")
        return []

    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        logger.warning("⚠️ Blob listing is not valid XML: %s", exc)
        return []

    container_url = _container_url(base_url) if base_url else ""
    records = [_record_from_node(node, container_url) for node in root.findall("./Blobs/Blob")]
    logger.debug("📄 Parsed %d blob entries", len(records))
    return records


def list_blobs(listing_url: str, *, timeout: int = 30) -> List[BlobRecord]:
    """Fetch and parse the container listing at ``listing_url``.

    Network failures are logged as warnings and produce an empty list; any
    other failure is logged and re-raised.
    """

    logger.info("🌐 Listing blobs at %s", listing_url)
    try:
        response = requests.get(listing_url, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
        records = parse_listing(response.content, base_url=listing_url)
    except requests.RequestException as exc:
        logger.warning("⚠️ Blob listing failed: %s", exc)
        return []
    except Exception as exc:
        logger.exception("💥 Unexpected error while listing blobs: %s", exc)
        raise

    logger.info("📦 Found %d blob(s) in container", len(records))
    return records


__all__ = ["BlobRecord", "list_blobs", "parse_listing"]
