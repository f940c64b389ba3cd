from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from k3s_bootstrap.artifacts import generate_artifacts, write_artifacts
from k3s_bootstrap.autoinstall import (
    HOSTNAME_PREFIX,
    hostname_for,
    render_meta_data,
    render_site_config,
    render_user_data,
)
from k3s_bootstrap.bootmenu import render_boot_descriptor
from k3s_bootstrap.lib.env import MEDIUM
from k3s_bootstrap.site_config import SiteConfig, load_site_config


@pytest.mark.parametrize("site_name", ["lab1", "", "edge-02", "x"])
def test_hostname_is_prefix_plus_site_name(site_name: str) -> None:
    cfg = SiteConfig(site_name=site_name)

    user_data = yaml.safe_load(render_user_data(cfg))
    meta_data = yaml.safe_load(render_meta_data(cfg))

    assert hostname_for(cfg) == HOSTNAME_PREFIX + site_name
    assert user_data["autoinstall"]["identity"]["hostname"] == "k3s-master-" + site_name
    assert meta_data["local-hostname"] == "k3s-master-" + site_name
    assert meta_data["instance-id"] == "k3s-cluster-" + site_name


def test_renders_are_byte_identical_across_builds(site_file: Path) -> None:
    first = load_site_config(str(site_file))
    second = load_site_config(str(site_file))

    assert render_user_data(first) == render_user_data(second)
    assert render_meta_data(first) == render_meta_data(second)
    assert generate_artifacts(first) == generate_artifacts(second)


def test_user_data_shape() -> None:
    text = render_user_data(SiteConfig(site_name="lab1"))
    doc = yaml.safe_load(text)["autoinstall"]

    assert text.startswith("#cloud-config\n")
    assert doc["version"] == 1
    assert doc["identity"]["username"] == "ubuntu"
    assert doc["identity"]["password"].startswith("$6$")
    assert doc["storage"]["layout"]["name"] == "lvm"
    assert doc["network"]["ethernets"]["any-nic"]["dhcp4"] is True
    assert "python3-yaml" in doc["packages"]


def test_late_commands_end_by_running_the_driver() -> None:
    doc = yaml.safe_load(render_user_data(SiteConfig(site_name="lab1")))
    cmds = doc["autoinstall"]["late-commands"]

    assert cmds[-2] == "curtin in-target --target=/target -- chmod +x /root/post-install.sh"
    assert cmds[-1] == "curtin in-target --target=/target -- /root/post-install.sh"
    assert any("/cdrom/ubuntu/site-config.yml" in c for c in cmds[:-2])


def test_site_config_copy_is_verbatim(site_file: Path) -> None:
    cfg = load_site_config(str(site_file))

    assert render_site_config(cfg) == site_file.read_text(encoding="utf-8")


def test_site_config_copy_without_source_round_trips() -> None:
    cfg = SiteConfig(site_name="lab9", vlan_id=9, node_count=5)

    doc = yaml.safe_load(render_site_config(cfg))

    assert doc["site_name"] == "lab9"
    assert doc["network"] == {"vlan_id": 9}
    assert doc["kubernetes"] == {"nodes": 5, "version": "v1.28.0"}


def test_boot_descriptor_has_exactly_two_entries() -> None:
    text = render_boot_descriptor(SiteConfig(site_name="lab1"))

    entries = text.split("menuentry ")[1:]
    assert len(entries) == 2
    auto, manual = entries

    for entry in entries:
        assert "search --set=root --file /ubuntu/casper/vmlinuz" in entry
        assert "live-media-path=/ubuntu/casper" in entry

    assert "k3s-cluster=true" in auto
    assert "site-config=/ubuntu/site-config.yml" in auto
    assert '"ds=nocloud;s=/cdrom/ubuntu/autoinstall/"' in auto
    assert "console=ttyS0,115200" in auto and "console=tty0" in auto

    assert "console=ttyS0,115200" in manual
    assert "k3s-cluster" not in manual
    assert "autoinstall" not in manual


def test_write_artifacts_uses_fixed_paths(tmp_path: Path) -> None:
    artifacts = generate_artifacts(SiteConfig(site_name="lab1"))
    esp, root = tmp_path / "esp", tmp_path / "root"

    write_artifacts(artifacts, esp_root=str(esp), root_root=str(root))

    assert (esp / MEDIUM.grub_cfg).read_text() == artifacts.boot_descriptor
    assert (root / "ubuntu/autoinstall/user-data").read_text() == artifacts.user_data
    assert (root / "ubuntu/autoinstall/meta-data").read_text() == artifacts.meta_data
    assert (root / "ubuntu/site-config.yml").read_text() == artifacts.site_config
    driver = root / "ubuntu/post-install.sh"
    assert driver.stat().st_mode & 0o111
    assert "python3 -m k3s_bootstrap.driver" in driver.read_text()


def test_dry_run_writes_nothing(tmp_path: Path) -> None:
    artifacts = generate_artifacts(SiteConfig(site_name="lab1"))

    write_artifacts(artifacts, esp_root=str(tmp_path / "esp"), root_root=str(tmp_path / "root"), dry_run=True)

    assert list(tmp_path.iterdir()) == []
