from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def copy_tree(src: str, dst: str, *, ignore: Iterable[str] = (), dry_run: bool = False) -> int:
    """Copy src into dst (merging), skipping any path with a component in ignore.

    Symlinks are recreated as links (like `cp -r`), never followed.
    Returns the number of files and links copied.
    """

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return 0

    skip = set(ignore)
    count = 0
    for dirpath, dirnames, filenames in os.walk(s):
        here = Path(dirpath)
        out_dir = d / here.relative_to(s)
        out_dir.mkdir(parents=True, exist_ok=True)

        links = [n for n in dirnames if (here / n).is_symlink()]
        dirnames[:] = sorted(n for n in dirnames if n not in skip and n not in links)

        for name in sorted(links + filenames):
            if name in skip:
                continue
            item, out = here / name, out_dir / name
            if item.is_symlink():
                if os.path.lexists(out):
                    out.unlink()
                os.symlink(os.readlink(item), out)
            else:
                shutil.copy2(item, out)
            count += 1
    logger.info("Copied %d files %s -> %s", count, str(s), str(d))
    return count


def write_file(root: str, rel: str, contents: str, *, mode: int | None = None, dry_run: bool = False) -> Path:
    p = Path(root) / rel.lstrip("/")
    if dry_run:
        logger.info("Would write %s", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        p.chmod(mode)
    logger.info("Wrote %s", str(p))
    return p
