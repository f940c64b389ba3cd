from __future__ import annotations

from dataclasses import dataclass

GIB = 1024 * 1024 * 1024


@dataclass(frozen=True)
class MediumLayout:
    """Fixed locations on the medium. The boot loader and installer find
    everything through these, so they never take extra parameters."""

    # ESP tree (partition 1)
    grub_cfg: str = "EFI/BOOT/grub.cfg"
    efi_binary: str = "EFI/BOOT/BOOTX64.EFI"

    # root filesystem (partition 2)
    payload_dir: str = "ubuntu"
    site_config: str = "ubuntu/site-config.yml"
    autoinstall_dir: str = "ubuntu/autoinstall"
    user_data: str = "ubuntu/autoinstall/user-data"
    meta_data: str = "ubuntu/autoinstall/meta-data"
    driver_script: str = "ubuntu/post-install.sh"
    driver_package_dir: str = "ubuntu/k3s-bootstrap"

    # Where the live installer mounts the root partition.
    live_mount: str = "/cdrom"

    min_device_bytes: int = 8 * GIB
    min_payload_bytes: int = 1_000_000_000
    esp_size_mib: int = 511


@dataclass(frozen=True)
class DriverPaths:
    """Locations inside the installed target root."""

    install_dir: str = "/opt/k3s-bootstrap"
    site_config: str = "/opt/k3s-bootstrap/site-config.yml"
    driver_script: str = "/root/post-install.sh"
    state_default: str = "/var/lib/k3s-bootstrap/state.json"
    log_default: str = "/var/log/k3s-bootstrap.log"

    k3s_installer_url: str = "https://get.k3s.io"
    k3s_installer_script: str = "/tmp/k3s-install.sh"
    node_token: str = "/var/lib/rancher/k3s/server/node-token"
    kubeconfig: str = "/etc/rancher/k3s/k3s.yaml"
    k3s_bin: str = "/usr/local/bin/k3s"

    helm_bin: str = "/usr/local/bin/helm"
    descriptor: str = "/boot/k3s-cluster-info.yaml"
    monitoring_unit: str = "/etc/systemd/system/k3s-monitoring.service"


MEDIUM = MediumLayout()
DRIVER_PATHS = DriverPaths()

DEFAULT_BUILD_LOG = "/var/log/k3s-bootstrap-usb.log"
DEFAULT_ISO_PATH = "/tmp/ubuntu-k3s.iso"
DEFAULT_ISO_URL = "https://releases.ubuntu.com/22.04/ubuntu-22.04.3-live-server-amd64.iso"
