from __future__ import annotations

import logging
from dataclasses import dataclass

from .block import mounted_partitions, part_path
from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    esp_size_mib: int = 511
    esp_label: str = "EFI"
    root_label: str = "K3SROOT"


@dataclass(frozen=True)
class PartitionLayout:
    disk: str
    # Partition 1 is always the ESP, partition 2 always the payload root.
    esp_part: str
    root_part: str


def unmount_device(disk: str, *, dry_run: bool = False) -> None:
    for mp in mounted_partitions(disk):
        logger.info("Unmounting %s from %s", mp, disk)
        run_cmd(["umount", mp], dry_run=dry_run)


def partition_and_format(*, plan: PartitionPlan, dry_run: bool = False) -> PartitionLayout:
    """Write a GPT with ESP + root and create both filesystems.

    Layout:
    - 1: ESP (EF00, FAT32), first aligned sector (1 MiB)
    - 2: root (8300, ext4), rest of the disk

    Destructive and not undone on failure.
    """

    disk = plan.disk
    logger.info("Partitioning disk=%s esp=%sMiB", disk, plan.esp_size_mib)

    # Wipe + GPT
    run_cmd(["sgdisk", "--zap-all", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "--clear", disk], dry_run=dry_run)

    run_cmd(
        [
            "sgdisk",
            f"--new=1:0:+{plan.esp_size_mib}MiB",
            "--typecode=1:ef00",
            f"--change-name=1:{plan.esp_label}",
            disk,
        ],
        dry_run=dry_run,
    )
    run_cmd(
        [
            "sgdisk",
            "--new=2:0:0",
            "--typecode=2:8300",
            f"--change-name=2:{plan.root_label}",
            disk,
        ],
        dry_run=dry_run,
    )

    # Inform kernel
    run_cmd(["partprobe", disk], dry_run=dry_run)

    layout = PartitionLayout(disk=disk, esp_part=part_path(disk, 1), root_part=part_path(disk, 2))

    run_cmd(["mkfs.vfat", "-F", "32", "-n", plan.esp_label, layout.esp_part], dry_run=dry_run)
    run_cmd(["mkfs.ext4", "-F", "-L", plan.root_label, layout.root_part], dry_run=dry_run)

    logger.info("Formatted esp=%s root=%s", layout.esp_part, layout.root_part)
    return layout
