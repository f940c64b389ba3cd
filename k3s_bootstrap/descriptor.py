from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

K3S_API_PORT = 6443

HEADER = (
    "# K3s cluster information, written once by the post-install driver.\n"
    "# Contains the cluster join token: copy it to joining nodes by hand.\n"
)


@dataclass(frozen=True)
class ClusterDescriptor:
    master_address: str
    join_token: str
    k8s_version: str
    expected_node_count: int

    @property
    def server_url(self) -> str:
        return f"https://{self.master_address}:{K3S_API_PORT}"

    @property
    def join_command(self) -> str:
        return (
            f"curl -sfL https://get.k3s.io | INSTALL_K3S_VERSION={self.k8s_version} "
            f"K3S_URL={self.server_url} K3S_TOKEN={self.join_token} sh -"
        )

    @property
    def dashboard_url(self) -> str:
        return f"https://{self.master_address}/kubernetes-dashboard/"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "master_address": self.master_address,
            "join_token": self.join_token,
            "k8s_version": self.k8s_version,
            "expected_node_count": self.expected_node_count,
            "join_command": self.join_command,
            "dashboard_url": self.dashboard_url,
        }

    def render(self) -> str:
        return HEADER + yaml.safe_dump(self.to_dict(), sort_keys=False, width=1000)


def load_descriptor(path: str) -> ClusterDescriptor:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Cluster descriptor must be a mapping: {path}")
    return ClusterDescriptor(
        master_address=str(data["master_address"]),
        join_token=str(data["join_token"]),
        k8s_version=str(data["k8s_version"]),
        expected_node_count=int(data["expected_node_count"]),
    )
