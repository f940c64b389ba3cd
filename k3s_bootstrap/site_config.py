from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import ConfigInvalid, ConfigNotFound

logger = logging.getLogger(__name__)

DEFAULT_NODE_COUNT = 3
DEFAULT_K8S_VERSION = "v1.28.0"


@dataclass(frozen=True)
class SiteConfig:
    site_name: str = ""
    vlan_id: Optional[int] = None
    ip_range: Optional[str] = None
    node_count: int = DEFAULT_NODE_COUNT
    k8s_version: str = DEFAULT_K8S_VERSION
    # Verbatim document text; embedded on the medium as-is.
    source_text: str = field(default="", compare=False, repr=False)
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def degraded(self) -> bool:
        return not self.site_name

    def to_document(self) -> Dict[str, Any]:
        network: Dict[str, Any] = {}
        if self.vlan_id is not None:
            network["vlan_id"] = self.vlan_id
        if self.ip_range is not None:
            network["ip_range"] = self.ip_range
        doc: Dict[str, Any] = {"site_name": self.site_name}
        if network:
            doc["network"] = network
        doc["kubernetes"] = {"nodes": self.node_count, "version": self.k8s_version}
        return doc

    def summary(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("source_text")
        d["warnings"] = list(self.warnings)
        return d


def _section(doc: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = doc.get(key)
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> Optional[int]:
    # bool is an int subclass; "true" is not a count.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def site_config_from_document(doc: Dict[str, Any], *, source_text: str = "") -> SiteConfig:
    """Apply the extraction and defaulting rules to a parsed document.

    Unknown keys are ignored. Missing fields take their defaults; present but
    unusable values are reported (ConfigInvalid, logged) and defaulted.
    """

    if not isinstance(doc, dict):
        raise ConfigInvalid(f"site config must contain a mapping/object, got {type(doc).__name__}")

    warnings: list[str] = []
    network = _section(doc, "network")
    kube = _section(doc, "kubernetes")

    raw_name = doc.get("site_name")
    site_name = "" if raw_name is None else str(raw_name).strip()
    if not site_name:
        warnings.append("site_name missing; hostname will be the bare prefix")

    vlan_id = None
    if network.get("vlan_id") is not None:
        vlan_id = _as_int(network.get("vlan_id"))
        if vlan_id is None:
            warnings.append(f"network.vlan_id is not an integer: {network.get('vlan_id')!r}")

    ip_range = network.get("ip_range")
    ip_range = None if ip_range is None else str(ip_range).strip()

    node_count = DEFAULT_NODE_COUNT
    if kube.get("nodes") is not None:
        parsed = _as_int(kube.get("nodes"))
        if parsed is None or parsed < 1:
            warnings.append(
                f"kubernetes.nodes must be an integer >= 1, got {kube.get('nodes')!r}; using {DEFAULT_NODE_COUNT}"
            )
        else:
            node_count = parsed

    version = kube.get("version")
    k8s_version = DEFAULT_K8S_VERSION if version is None or not str(version).strip() else str(version).strip()

    for w in warnings:
        logger.warning("%s: %s", ConfigInvalid.__name__, w)

    return SiteConfig(
        site_name=site_name,
        vlan_id=vlan_id,
        ip_range=ip_range,
        node_count=node_count,
        k8s_version=k8s_version,
        source_text=source_text,
        warnings=tuple(warnings),
    )


def load_site_config(path: str) -> SiteConfig:
    p = Path(path)
    if not p.is_file():
        raise ConfigNotFound(f"Site configuration file not found: {path}")

    text = p.read_text(encoding="utf-8")
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigInvalid(f"Site configuration is not valid YAML: {path}: {e}") from e

    cfg = site_config_from_document(doc if doc is not None else {}, source_text=text)
    logger.info(
        "Loaded site config %s: site=%s vlan=%s range=%s nodes=%s version=%s",
        path,
        cfg.site_name or "<empty>",
        cfg.vlan_id,
        cfg.ip_range,
        cfg.node_count,
        cfg.k8s_version,
    )
    return cfg
