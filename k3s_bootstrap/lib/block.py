from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from typing import List

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetMedium:
    device_path: str
    size_bytes: int

    @property
    def size_gib(self) -> float:
        return self.size_bytes / (1024 ** 3)


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def device_size_bytes(dev: str) -> int:
    """Return the size of a whole disk in bytes (first lsblk row)."""

    r = run_cmd(["lsblk", "-b", "-d", "-n", "-o", "SIZE", dev])
    lines = [ln.strip() for ln in (r.stdout or "").splitlines() if ln.strip()]
    if not lines or not lines[0].isdigit():
        raise RuntimeError(f"Unable to determine size of {dev}: {r.stdout!r}")
    return int(lines[0])


def part_path(disk: str, n: int) -> str:
    # nvme/mmcblk/loop devices use a p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def mounted_partitions(dev: str) -> List[str]:
    """Mount points of the device and any of its partitions."""

    r = run_cmd(["lsblk", "-n", "-r", "-o", "MOUNTPOINT", dev], check=False)
    return [ln.strip() for ln in (r.stdout or "").splitlines() if ln.strip()]
