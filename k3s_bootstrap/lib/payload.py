from __future__ import annotations

import logging
from pathlib import Path

from ..errors import PayloadInvalid
from .command import CommandError, run_cmd

logger = logging.getLogger(__name__)


def validate_payload(path: str, *, min_bytes: int) -> int:
    """Check the installer ISO by size only (no checksum). Returns its size."""

    p = Path(path)
    if not p.is_file():
        raise PayloadInvalid(f"Installer payload not found: {path}")
    size = p.stat().st_size
    if size < min_bytes:
        raise PayloadInvalid(f"Installer payload seems too small: {size} bytes (need >= {min_bytes})")
    logger.info("Payload ready: %s (%.2f GB)", path, size / 1e9)
    return size


def fetch_payload(url: str, dest: str, *, dry_run: bool = False) -> None:
    """Download the installer ISO unless it is already present."""

    if Path(dest).exists():
        logger.info("Payload already present: %s", dest)
        return

    Path(dest).parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading installer ISO %s -> %s", url, dest)
    try:
        run_cmd(["curl", "-fL", "-o", dest, url], dry_run=dry_run)
    except CommandError as e:
        # curl leaves partial files behind
        Path(dest).unlink(missing_ok=True)
        raise PayloadInvalid(f"Failed to download installer ISO from {url}") from e
