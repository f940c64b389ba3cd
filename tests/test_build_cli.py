from __future__ import annotations

import subprocess
from pathlib import Path
from types import SimpleNamespace
from typing import List

import pytest

from k3s_bootstrap import build, medium
from k3s_bootstrap.lib import command

GIB = 1024 ** 3
ISO_URL = "https://releases.example.test/ubuntu-22.04.3-live-server-amd64.iso"


@pytest.fixture
def usb(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    dev = tmp_path / "sdz"
    dev.write_bytes(b"\0" * 512)
    monkeypatch.setattr(medium, "is_block_device", lambda path: path == str(dev))
    return dev


@pytest.fixture
def downloads(fake_run, monkeypatch: pytest.MonkeyPatch):
    """fake_run, except curl actually leaves a full-size ISO behind."""

    def run(argv, **kwargs):
        result = fake_run(argv, **kwargs)
        if argv[0] == "curl" and result.returncode == 0:
            with open(argv[argv.index("-o") + 1], "wb") as fh:
                fh.truncate(1_000_000_000)
        return result

    monkeypatch.setattr(command, "subprocess", SimpleNamespace(run=run, PIPE=subprocess.PIPE))
    return fake_run


def _argv(site_file: Path, usb: Path, tmp_path: Path, *extra: str) -> List[str]:
    return [
        "--site-config",
        str(site_file),
        "--usb-device",
        str(usb),
        "--work-dir",
        str(tmp_path / "mnt"),
        "--log",
        str(tmp_path / "build.log"),
        *extra,
    ]


def test_missing_site_config_exits_non_zero(fake_run, usb, tmp_path, capsys) -> None:
    rc = build.main(_argv(tmp_path / "absent.yml", usb, tmp_path, "--iso-url", ""))

    assert rc == 1
    assert "ConfigNotFound" in capsys.readouterr().err
    assert fake_run.calls == []
    assert "ConfigNotFound" in (tmp_path / "build.log").read_text()


def test_small_device_exits_non_zero_before_download(fake_run, usb, site_file, tmp_path, capsys) -> None:
    fake_run.respond("lsblk", "-b", stdout=f"{4 * GIB}\n")

    rc = build.main(_argv(site_file, usb, tmp_path, "--iso", str(tmp_path / "u.iso"), "--iso-url", ISO_URL))

    assert rc == 1
    assert "too small" in capsys.readouterr().err
    assert fake_run.tools() == ["lsblk"]


def test_downloaded_iso_is_removed_after_build(downloads, usb, site_file, tmp_path) -> None:
    downloads.respond("lsblk", "-b", stdout=f"{16 * GIB}\n")
    iso = tmp_path / "dl" / "ubuntu-k3s.iso"

    rc = build.main(_argv(site_file, usb, tmp_path, "--iso", str(iso), "--iso-url", ISO_URL))

    assert rc == 0
    assert downloads.find("curl") == [["curl", "-fL", "-o", str(iso), ISO_URL]]
    tools = downloads.tools()
    assert tools.index("curl") < tools.index("sgdisk")
    assert not iso.exists()


def test_keep_iso_keeps_the_download(downloads, usb, site_file, tmp_path) -> None:
    downloads.respond("lsblk", "-b", stdout=f"{16 * GIB}\n")
    iso = tmp_path / "ubuntu-k3s.iso"

    rc = build.main(_argv(site_file, usb, tmp_path, "--iso", str(iso), "--iso-url", ISO_URL, "--keep-iso"))

    assert rc == 0
    assert iso.stat().st_size == 1_000_000_000


def test_existing_iso_is_used_and_kept(fake_run, usb, site_file, tmp_path) -> None:
    fake_run.respond("lsblk", "-b", stdout=f"{16 * GIB}\n")
    iso = tmp_path / "local.iso"
    with open(iso, "wb") as fh:
        fh.truncate(1_000_000_000)

    rc = build.main(_argv(site_file, usb, tmp_path, "--iso", str(iso)))

    assert rc == 0
    assert fake_run.find("curl") == []
    assert iso.exists()


def test_failed_download_leaves_device_untouched(fake_run, usb, site_file, tmp_path, capsys) -> None:
    fake_run.respond("lsblk", "-b", stdout=f"{16 * GIB}\n")
    fake_run.respond("curl", returncode=22, stderr="404 Not Found")

    rc = build.main(_argv(site_file, usb, tmp_path, "--iso", str(tmp_path / "u.iso"), "--iso-url", ISO_URL))

    assert rc == 1
    assert "PayloadInvalid" in capsys.readouterr().err
    assert "sgdisk" not in fake_run.tools()
    assert usb.read_bytes() == b"\0" * 512


def test_missing_required_arguments_is_a_usage_error(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        build.main(["--site-config", str(tmp_path / "x.yml")])

    assert exc.value.code == 2
