from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Sequence

from .lib.assets import write_file
from .lib.env import MEDIUM, MediumLayout
from .site_config import SiteConfig

logger = logging.getLogger(__name__)

CONSOLE_ARGS = "console=tty0 console=ttyS0,115200 net.ifnames=0 biosdevname=0"

GRUB_EFI_CANDIDATES = (
    "/usr/lib/grub/x86_64-efi/monolithic/grubx64.efi",
    "/usr/lib/grub/x86_64-efi/grub.efi",
    "/usr/lib/grub/x86_64-efi-signed/grubx64.efi.signed",
)


def _menuentry(title: str, kernel_args: str, layout: MediumLayout) -> str:
    casper = f"/{layout.payload_dir}/casper"
    # casper defaults to /casper; the payload sits under payload_dir.
    return (
        f'menuentry "{title}" {{\n'
        f"    search --set=root --file {casper}/vmlinuz\n"
        f"    linux {casper}/vmlinuz live-media-path={casper} {kernel_args}\n"
        f"    initrd {casper}/initrd\n"
        "}\n"
    )


def render_boot_descriptor(site_cfg: SiteConfig, layout: MediumLayout = MEDIUM) -> str:
    """GRUB menu with exactly two entries: unattended K3s install and manual install."""

    # GRUB treats ';' as a command separator, so the nocloud source is quoted.
    seed = f"{layout.live_mount}/{layout.autoinstall_dir}/"
    auto_args = (
        f"{CONSOLE_ARGS} k3s-cluster=true site-config=/{layout.site_config} "
        f"autoinstall \"ds=nocloud;s={seed}\" ---"
    )
    title = "Ubuntu K3s Cluster Installation"
    if site_cfg.site_name:
        title = f"{title} ({site_cfg.site_name})"

    return (
        "set timeout=5\n"
        "set default=0\n"
        "\n"
        + _menuentry(title, auto_args, layout)
        + "\n"
        + _menuentry("Ubuntu Server (Manual Installation)", f"{CONSOLE_ARGS} ---", layout)
    )


def write_boot_descriptor(esp_root: str, text: str, *, layout: MediumLayout = MEDIUM, dry_run: bool = False) -> Path:
    return write_file(esp_root, layout.grub_cfg, text, dry_run=dry_run)


def install_efi_binary(
    esp_root: str,
    *,
    layout: MediumLayout = MEDIUM,
    candidates: Sequence[str] = GRUB_EFI_CANDIDATES,
    dry_run: bool = False,
) -> Optional[str]:
    """Best effort: copy a host GRUB EFI image to the removable-media path."""

    src = next((c for c in candidates if Path(c).is_file()), None)
    if src is None:
        logger.warning("No GRUB EFI binary found on host (tried: %s); medium relies on firmware fallback", ", ".join(candidates))
        return None

    dst = Path(esp_root) / layout.efi_binary
    if dry_run:
        logger.info("Would copy %s -> %s", src, str(dst))
        return src
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    logger.info("Installed EFI binary %s -> %s", src, str(dst))
    return src
