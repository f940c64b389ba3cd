from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from .errors import BootstrapError
from .lib.env import DEFAULT_BUILD_LOG, DEFAULT_ISO_PATH, DEFAULT_ISO_URL
from .lib.payload import fetch_payload
from .logging_utils import configure_logging
from .medium import build_medium, validate_target
from .site_config import load_site_config

logger = logging.getLogger(__name__)


def run_build(
    *,
    site_config_path: str,
    device: str,
    iso_path: str,
    iso_url: Optional[str],
    keep_iso: bool,
    work_dir: Optional[str],
    log_path: str,
    dry_run: bool,
) -> None:
    configure_logging(log_path=log_path)

    site_cfg = load_site_config(site_config_path)
    if site_cfg.degraded:
        logger.warning("site_name is empty; building a degraded medium (hostname will be the bare prefix)")

    downloaded = False
    if iso_url and not Path(iso_path).exists():
        # Fail on a bad device before spending time on the download.
        validate_target(device)
        fetch_payload(iso_url, iso_path, dry_run=dry_run)
        downloaded = True

    build_medium(
        device=device,
        payload=iso_path,
        site_cfg=site_cfg,
        work_dir=work_dir,
        dry_run=dry_run,
    )

    if downloaded and not keep_iso and not dry_run:
        logger.info("Removing downloaded ISO %s", iso_path)
        Path(iso_path).unlink(missing_ok=True)

    logger.info("K3s cluster bootstrap USB created successfully on %s", device)
    logger.info("Boot the target node from it; the cluster descriptor is written to /boot on the node.")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="k3s-bootstrap-usb", description="Create a K3s cluster bootstrap USB drive")
    p.add_argument("--site-config", required=True, help="Path to site configuration YAML file")
    p.add_argument("--usb-device", required=True, help="USB block device (e.g. /dev/sdb); will be wiped")
    p.add_argument("--iso", default=DEFAULT_ISO_PATH, help="Ubuntu live-server ISO path")
    p.add_argument(
        "--iso-url",
        default=DEFAULT_ISO_URL,
        help="Download the ISO from here when --iso does not exist (empty string disables)",
    )
    p.add_argument("--keep-iso", action="store_true", help="Keep a downloaded ISO after the build")
    p.add_argument("--work-dir", default=None, help="Directory for temporary mount points")
    p.add_argument("--log", default=DEFAULT_BUILD_LOG)
    p.add_argument("--dry-run", action="store_true")

    args = p.parse_args(argv)

    try:
        run_build(
            site_config_path=args.site_config,
            device=args.usb_device,
            iso_path=args.iso,
            iso_url=args.iso_url or None,
            keep_iso=bool(args.keep_iso),
            work_dir=args.work_dir,
            log_path=args.log,
            dry_run=bool(args.dry_run),
        )
    except BootstrapError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
