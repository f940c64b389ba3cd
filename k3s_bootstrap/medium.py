from __future__ import annotations

import logging
import tempfile
from contextlib import ExitStack
from pathlib import Path
from typing import Optional

from .artifacts import InstallArtifactSet, generate_artifacts, stage_driver_package, write_artifacts
from .bootmenu import install_efi_binary
from .errors import DeviceInvalid, PartitionOrFormatFailure
from .lib.assets import copy_tree
from .lib.block import TargetMedium, device_size_bytes, is_block_device
from .lib.command import CommandError
from .lib.env import MEDIUM, MediumLayout
from .lib.mounts import scoped_mount
from .lib.payload import validate_payload
from .lib.storage import PartitionLayout, PartitionPlan, partition_and_format, unmount_device
from .site_config import SiteConfig

logger = logging.getLogger(__name__)


def validate_target(device: str, *, layout: MediumLayout = MEDIUM) -> TargetMedium:
    if not is_block_device(device):
        raise DeviceInvalid(f"Invalid USB device (not a block device): {device}")

    try:
        size = device_size_bytes(device)
    except RuntimeError as e:  # includes CommandError
        raise DeviceInvalid(f"Unable to read size of {device}: {e}") from e

    target = TargetMedium(device_path=device, size_bytes=size)
    if size < layout.min_device_bytes:
        raise DeviceInvalid(
            f"USB device too small. Need at least {layout.min_device_bytes // 1024 ** 3}GiB, "
            f"got {target.size_gib:.1f}GiB"
        )
    logger.info("USB device: %s (%.1fGiB)", device, target.size_gib)
    return target


def _populate(
    *,
    partitions: PartitionLayout,
    payload: str,
    artifacts: InstallArtifactSet,
    work_dir: Path,
    layout: MediumLayout,
    dry_run: bool,
) -> None:
    with ExitStack() as stack:
        esp_mnt = stack.enter_context(scoped_mount(partitions.esp_part, work_dir / "efi", dry_run=dry_run))
        root_mnt = stack.enter_context(scoped_mount(partitions.root_part, work_dir / "root", dry_run=dry_run))

        logger.info("Copying installer ISO content...")
        with scoped_mount(payload, work_dir / "iso", options=("loop", "ro"), dry_run=dry_run) as iso_mnt:
            copy_tree(str(iso_mnt), str(root_mnt / layout.payload_dir), dry_run=dry_run)

        logger.info("Writing boot and autoinstall configuration...")
        write_artifacts(artifacts, esp_root=str(esp_mnt), root_root=str(root_mnt), layout=layout, dry_run=dry_run)
        stage_driver_package(str(root_mnt), layout=layout, dry_run=dry_run)
        install_efi_binary(str(esp_mnt), layout=layout, dry_run=dry_run)


def build_medium(
    *,
    device: str,
    payload: str,
    site_cfg: SiteConfig,
    work_dir: Optional[str] = None,
    layout: MediumLayout = MEDIUM,
    dry_run: bool = False,
) -> PartitionLayout:
    """Validate, partition, format and populate the bootstrap medium.

    Every precondition is checked before the first write. Once partitioning
    has started, failures surface as PartitionOrFormatFailure and the device
    is left as-is.
    """

    target = validate_target(device, layout=layout)
    validate_payload(payload, min_bytes=layout.min_payload_bytes)

    # Rendered before the first write to the device.
    artifacts = generate_artifacts(site_cfg, layout=layout)

    base = Path(work_dir) if work_dir else Path(tempfile.mkdtemp(prefix="k3s-usb-"))
    logger.info("Creating bootable USB drive on %s (mounts under %s)...", target.device_path, base)

    try:
        unmount_device(target.device_path, dry_run=dry_run)
        partitions = partition_and_format(
            plan=PartitionPlan(disk=target.device_path, esp_size_mib=layout.esp_size_mib),
            dry_run=dry_run,
        )
        _populate(
            partitions=partitions,
            payload=payload,
            artifacts=artifacts,
            work_dir=base,
            layout=layout,
            dry_run=dry_run,
        )
    except (CommandError, OSError) as e:
        logger.error("Medium build failed after destructive steps began; %s left partially provisioned", device)
        raise PartitionOrFormatFailure(f"{device}: {e}") from e
    finally:
        if not work_dir and base.exists() and not any(base.iterdir()):
            base.rmdir()

    logger.info("Medium ready: esp=%s root=%s", partitions.esp_part, partitions.root_part)
    return partitions
