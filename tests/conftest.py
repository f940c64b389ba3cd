"""Shared fixtures: a scripted stand-in for external commands and tmp paths."""

from __future__ import annotations

import dataclasses
import logging
import subprocess
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest

from k3s_bootstrap.lib import command
from k3s_bootstrap.lib.env import DRIVER_PATHS, DriverPaths


LAB1_CONFIG = """\
site_name: "lab1"
network:
  vlan_id: 20
  ip_range: "10.20.0.0/24"
kubernetes:
  nodes: 3
  version: "v1.28.0"
storage:
  backend: ceph
"""


class FakeRun:
    """Records every argv and answers from scripted responses (latest wins)."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []
        self._responses: List[Tuple[Tuple[str, ...], int, str, str]] = []

    def respond(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self._responses.insert(0, (tuple(prefix), returncode, stdout, stderr))

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(kwargs.get("env"))
        for prefix, rc, out, err in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(argv, rc, out, err)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def tools(self) -> List[str]:
        return [c[0] for c in self.calls]

    def find(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    fake = FakeRun()
    monkeypatch.setattr(command, "subprocess", SimpleNamespace(run=fake, PIPE=subprocess.PIPE))
    return fake


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_k3s_bootstrap_handler", False):
            root.removeHandler(h)
            h.close()


@pytest.fixture
def site_file(tmp_path: Path) -> Path:
    p = tmp_path / "k3s-cluster.yml"
    p.write_text(LAB1_CONFIG, encoding="utf-8")
    return p


@pytest.fixture
def driver_paths(tmp_path: Path) -> DriverPaths:
    root = tmp_path / "target"
    return dataclasses.replace(
        DRIVER_PATHS,
        install_dir=str(root / "opt/k3s-bootstrap"),
        site_config=str(root / "opt/k3s-bootstrap/site-config.yml"),
        state_default=str(root / "var/lib/k3s-bootstrap/state.json"),
        log_default=str(root / "var/log/k3s-bootstrap.log"),
        k3s_installer_script=str(root / "tmp/k3s-install.sh"),
        node_token=str(root / "var/lib/rancher/k3s/server/node-token"),
        helm_bin=str(root / "usr/local/bin/helm"),
        descriptor=str(root / "boot/k3s-cluster-info.yaml"),
        monitoring_unit=str(root / "etc/systemd/system/k3s-monitoring.service"),
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
