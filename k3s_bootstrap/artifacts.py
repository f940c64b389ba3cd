from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from .autoinstall import render_driver_script, render_meta_data, render_site_config, render_user_data
from .bootmenu import render_boot_descriptor, write_boot_descriptor
from .lib.assets import copy_tree, write_file
from .lib.env import DRIVER_PATHS, MEDIUM, DriverPaths, MediumLayout
from .site_config import SiteConfig

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class InstallArtifactSet:
    boot_descriptor: str
    user_data: str
    meta_data: str
    site_config: str
    driver_script: str

    def root_files(self, layout: MediumLayout = MEDIUM) -> Dict[str, str]:
        """Files for the root filesystem, keyed by medium-relative path."""
        return {
            layout.user_data: self.user_data,
            layout.meta_data: self.meta_data,
            layout.site_config: self.site_config,
            layout.driver_script: self.driver_script,
        }


def generate_artifacts(
    site_cfg: SiteConfig,
    *,
    layout: MediumLayout = MEDIUM,
    paths: DriverPaths = DRIVER_PATHS,
) -> InstallArtifactSet:
    # Single SiteConfig instance in, so the artifacts cannot disagree.
    return InstallArtifactSet(
        boot_descriptor=render_boot_descriptor(site_cfg, layout),
        user_data=render_user_data(site_cfg, layout=layout, paths=paths),
        meta_data=render_meta_data(site_cfg),
        site_config=render_site_config(site_cfg),
        driver_script=render_driver_script(paths),
    )


def write_artifacts(
    artifacts: InstallArtifactSet,
    *,
    esp_root: str,
    root_root: str,
    layout: MediumLayout = MEDIUM,
    dry_run: bool = False,
) -> None:
    write_boot_descriptor(esp_root, artifacts.boot_descriptor, layout=layout, dry_run=dry_run)
    for rel, text in artifacts.root_files(layout).items():
        mode = 0o755 if rel == layout.driver_script else None
        write_file(root_root, rel, text, mode=mode, dry_run=dry_run)


def stage_driver_package(root_root: str, *, layout: MediumLayout = MEDIUM, dry_run: bool = False) -> None:
    """Copy this package onto the medium so the driver can run in the target."""

    dst = Path(root_root) / layout.driver_package_dir / PACKAGE_DIR.name
    copy_tree(str(PACKAGE_DIR), str(dst), ignore=("__pycache__",), dry_run=dry_run)
