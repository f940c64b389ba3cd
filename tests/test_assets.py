from __future__ import annotations

import os
from pathlib import Path

from k3s_bootstrap.lib.assets import copy_tree, write_file


def _iso_tree(root: Path) -> Path:
    """Minimal live-server layout, including the self-referencing `ubuntu -> .` link."""
    (root / "casper").mkdir(parents=True)
    (root / "casper" / "vmlinuz").write_bytes(b"kernel")
    (root / "dists" / "jammy").mkdir(parents=True)
    (root / "dists" / "jammy" / "Release").write_text("Suite: jammy\n")
    os.symlink(".", root / "ubuntu")
    os.symlink("jammy", root / "dists" / "stable")
    os.symlink("casper/vmlinuz", root / "vmlinuz")
    return root


def test_copy_tree_keeps_symlinks_as_links(tmp_path: Path) -> None:
    src = _iso_tree(tmp_path / "iso")
    dst = tmp_path / "out"

    count = copy_tree(str(src), str(dst))

    assert (dst / "ubuntu").is_symlink()
    assert os.readlink(dst / "ubuntu") == "."
    assert os.readlink(dst / "dists" / "stable") == "jammy"
    assert os.readlink(dst / "vmlinuz") == "casper/vmlinuz"
    assert (dst / "casper" / "vmlinuz").read_bytes() == b"kernel"
    assert not (dst / "casper" / "vmlinuz").is_symlink()
    # two regular files, three links
    assert count == 5


def test_copy_tree_skips_ignored_components(tmp_path: Path) -> None:
    src = tmp_path / "pkg"
    (src / "__pycache__").mkdir(parents=True)
    (src / "__pycache__" / "mod.cpython-311.pyc").write_bytes(b"\0")
    (src / "sub" / "__pycache__").mkdir(parents=True)
    (src / "sub" / "mod.py").write_text("x = 1\n")
    (src / "mod.py").write_text("y = 2\n")

    copy_tree(str(src), str(tmp_path / "out"), ignore=("__pycache__",))

    assert sorted(p.relative_to(tmp_path / "out").as_posix() for p in (tmp_path / "out").rglob("*")) == [
        "mod.py",
        "sub",
        "sub/mod.py",
    ]


def test_copy_tree_merges_into_existing_links(tmp_path: Path) -> None:
    src = _iso_tree(tmp_path / "iso")
    dst = tmp_path / "out"

    copy_tree(str(src), str(dst))
    copy_tree(str(src), str(dst))

    assert os.readlink(dst / "ubuntu") == "."


def test_write_file_sets_mode(tmp_path: Path) -> None:
    p = write_file(str(tmp_path), "/boot/info.yaml", "a: 1\n", mode=0o600)

    assert p == tmp_path / "boot" / "info.yaml"
    assert p.stat().st_mode & 0o777 == 0o600
