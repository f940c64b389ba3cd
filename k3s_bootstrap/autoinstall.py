"""Autoinstall (subiquity/cloud-init nocloud) artifacts.

Every function here is pure: the same SiteConfig always renders the same
bytes, so two builds of one site can be diffed.
"""

from __future__ import annotations

from typing import Any, Dict, List

import yaml

from .lib.env import DRIVER_PATHS, MEDIUM, DriverPaths, MediumLayout
from .site_config import SiteConfig

HOSTNAME_PREFIX = "k3s-master-"
INSTANCE_ID_PREFIX = "k3s-cluster-"

DEFAULT_USERNAME = "ubuntu"
# Placeholder credential (sha512-crypt, fixed salt). Operators are expected
# to replace it or rely on SSH keys.
DEFAULT_PASSWORD_HASH = (
    "$6$exDY1mhS4KUYCE/2$zmn9ToZwTKLhCw.b4/b.ZRTIZM30JZ4QrOQ2aOXJ8yk96xpcCof0kxKwuX1kqLG/ygbJ1f8wxED22bTL4F46P0"
)

PACKAGES = ["curl", "wget", "git", "htop", "vim", "python3-yaml", "ufw"]


def hostname_for(site_cfg: SiteConfig) -> str:
    return HOSTNAME_PREFIX + site_cfg.site_name


def instance_id_for(site_cfg: SiteConfig) -> str:
    return INSTANCE_ID_PREFIX + site_cfg.site_name


def late_commands(layout: MediumLayout = MEDIUM, paths: DriverPaths = DRIVER_PATHS) -> List[str]:
    medium = layout.live_mount
    install_dir = f"/target{paths.install_dir}"
    return [
        f"mkdir -p {install_dir}",
        f"cp -r {medium}/{layout.driver_package_dir}/. {install_dir}/",
        f"cp {medium}/{layout.site_config} /target{paths.site_config}",
        f"cp {medium}/{layout.driver_script} /target{paths.driver_script}",
        # These two must stay last.
        f"curtin in-target --target=/target -- chmod +x {paths.driver_script}",
        f"curtin in-target --target=/target -- {paths.driver_script}",
    ]


def user_data_document(
    site_cfg: SiteConfig,
    *,
    layout: MediumLayout = MEDIUM,
    paths: DriverPaths = DRIVER_PATHS,
) -> Dict[str, Any]:
    return {
        "autoinstall": {
            "version": 1,
            "identity": {
                "hostname": hostname_for(site_cfg),
                "username": DEFAULT_USERNAME,
                "password": DEFAULT_PASSWORD_HASH,
            },
            "ssh": {"install-server": True, "authorized-keys": []},
            "network": {
                "version": 2,
                "ethernets": {
                    "any-nic": {"match": {"name": "e*"}, "dhcp4": True},
                },
            },
            "storage": {"layout": {"name": "lvm"}},
            "packages": list(PACKAGES),
            "user-data": {
                "disable_root": False,
                "package_update": True,
                "package_upgrade": True,
                "packages": ["curl", "wget", "git"],
            },
            "late-commands": late_commands(layout, paths),
        }
    }


def _dump(doc: Dict[str, Any]) -> str:
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False, width=1000)


def render_user_data(site_cfg: SiteConfig, *, layout: MediumLayout = MEDIUM, paths: DriverPaths = DRIVER_PATHS) -> str:
    return "#cloud-config\n" + _dump(user_data_document(site_cfg, layout=layout, paths=paths))


def render_meta_data(site_cfg: SiteConfig) -> str:
    return _dump({"instance-id": instance_id_for(site_cfg), "local-hostname": hostname_for(site_cfg)})


def render_site_config(site_cfg: SiteConfig) -> str:
    """Verbatim copy of the loaded document; rendered from fields if there is none."""

    if site_cfg.source_text:
        return site_cfg.source_text
    return _dump(site_cfg.to_document())


def render_driver_script(paths: DriverPaths = DRIVER_PATHS) -> str:
    return (
        "#!/bin/sh\n"
        "# Executed once by the installer's late-commands inside the target root.\n"
        "set -e\n"
        f"export PYTHONPATH={paths.install_dir}${{PYTHONPATH:+:$PYTHONPATH}}\n"
        "exec python3 -m k3s_bootstrap.driver \\\n"
        f"    --site-config {paths.site_config} \\\n"
        f"    --state {paths.state_default} \\\n"
        f"    --log {paths.log_default}\n"
    )
