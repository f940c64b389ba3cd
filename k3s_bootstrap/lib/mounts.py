from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


@contextmanager
def scoped_mount(
    source: str,
    mountpoint: Path,
    *,
    options: Sequence[str] = (),
    dry_run: bool = False,
) -> Iterator[Path]:
    """Mount source at mountpoint for the duration of the block.

    Unmount is always attempted on exit, including when the body raises.
    The mount point directory is removed afterwards if it is empty.
    """

    created = not mountpoint.exists()
    mountpoint.mkdir(parents=True, exist_ok=True)

    argv = ["mount"]
    if options:
        argv += ["-o", ",".join(options)]
    run_cmd([*argv, source, str(mountpoint)], dry_run=dry_run)

    try:
        yield mountpoint
    finally:
        run_cmd(["sync"], check=False, dry_run=dry_run)
        r = run_cmd(["umount", str(mountpoint)], check=False, dry_run=dry_run)
        if not r.ok:
            logger.error("Failed to unmount %s (%s): %s", mountpoint, source, r.stderr.strip())
        elif created and not any(mountpoint.iterdir()):
            mountpoint.rmdir()
